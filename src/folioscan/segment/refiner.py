"""严格模式：对异常长的片段以递减阈值重扫，找回漏检的慢速翻页。"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from folioscan.core import ExtractionCancelled, get_logger
from folioscan.core.config import DetectionConfig, RefineConfig

from .change_detector import scan_range, segments_from_change_points
from .types import SampledFrame, Segment

logger = get_logger(__name__)


@dataclass(slots=True)
class RefineResult:
    """细化结果：新的换页点集合、本次新增的点以及实际执行的轮数。"""

    change_points: List[int]
    added: List[int] = field(default_factory=list)
    passes_run: int = 0


def segment_duration(frames: Sequence[SampledFrame], segment: Segment) -> float:
    return frames[segment.end - 1].timestamp - frames[segment.start].timestamp


def pass_threshold(detection: DetectionConfig, refine: RefineConfig, pass_index: int) -> float:
    """第 pass_index 轮（0 起）的降低阈值，不低于 floor_threshold。"""

    return max(refine.floor_threshold, detection.change_threshold * refine.decay ** (pass_index + 1))


def find_long_segments(
    frames: Sequence[SampledFrame],
    segments: Sequence[Segment],
    long_mult: float,
) -> List[Segment]:
    """时长超过 long_mult × 中位时长的片段；中位数取排序后的第 n // 2 个。"""

    if not segments:
        return []
    durations = [segment_duration(frames, segment) for segment in segments]
    median = sorted(durations)[len(durations) // 2]
    return [segment for segment, duration in zip(segments, durations) if duration > long_mult * median]


def refine_change_points(
    frames: Sequence[SampledFrame],
    change_points: Sequence[int],
    detection: DetectionConfig,
    refine: RefineConfig,
    *,
    on_pass: Optional[Callable[[int], None]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> RefineResult:
    """最多执行 strict_passes 轮；只插入新点，从不删除。"""

    points = sorted(set(change_points))
    result = RefineResult(change_points=points)
    if not frames or refine.strict_passes <= 0:
        return result

    known = set(points)
    relaxed_gap = detection.min_gap_sec * refine.gap_scale
    for pass_index in range(refine.strict_passes):
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelled(f"严格模式在第 {pass_index} 轮前被取消")

        segments = segments_from_change_points(points, len(frames))
        long_segments = find_long_segments(frames, segments, refine.long_mult)
        if not long_segments:
            logger.debug("Refine pass %d: no long segments, stopping", pass_index)
            break

        low = pass_threshold(detection, refine, pass_index)
        inserted = 0
        for segment in long_segments:
            for idx in scan_range(frames, segment.start, segment.end, threshold=low, min_gap_sec=relaxed_gap):
                if idx in known:
                    continue
                known.add(idx)
                points.append(idx)
                result.added.append(idx)
                inserted += 1
        points.sort()
        result.passes_run = pass_index + 1
        logger.debug(
            "Refine pass %d: threshold=%.3f, long segments=%d, inserted=%d",
            pass_index,
            low,
            len(long_segments),
            inserted,
        )
        if on_pass is not None:
            on_pass(pass_index)

    if result.added:
        logger.info("Strict mode recovered %d change points in %d passes", len(result.added), result.passes_run)
    return result
