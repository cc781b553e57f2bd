"""封装从视频到页面列表的完整流程：采样 -> 特征 -> 检测 -> 细化 -> 选帧 -> 去重。"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

import cv2
import numpy as np
from numpy.typing import NDArray

from folioscan.core import FolioscanError, Page, PageCandidate, PipelineConfig, SourceError, get_logger
from folioscan.dedup import DuplicateFilter, perceptual_hash

from .change_detector import change_score, detect_change_points, segments_from_change_points
from .features import extract_features, to_luma
from .loader import OpenCVVideoSource, VideoSource, estimate_sample_count, iter_rasters, target_size
from .refiner import refine_change_points
from .selector import select_frames, settle_offset
from .types import SampledFrame

logger = get_logger(__name__)

# 进度区间划分：采样 0-0.6，严格模式 0.6-0.8，页面接纳 0.8-1.0
SAMPLING_SHARE = 0.6
REFINE_SHARE = 0.2
ADMIT_SHARE = 1.0 - SAMPLING_SHARE - REFINE_SHARE

ProgressCallback = Callable[[float], None]


@dataclass(slots=True)
class ExtractionResult:
    """单次提取的结果，页面按时间顺序排列。"""

    pages: List[Page]
    width: int
    height: int
    duration: float
    frame_count: int
    change_points: List[int] = field(default_factory=list)
    refined_points: List[int] = field(default_factory=list)
    duplicates_dropped: int = 0


def _report(callback: Optional[ProgressCallback], value: float) -> None:
    if callback is not None:
        callback(min(max(value, 0.0), 1.0))


def encode_png(raster: NDArray[np.uint8]) -> bytes:
    ok, buffer = cv2.imencode(".png", raster)
    if not ok:
        raise FolioscanError("PNG 编码失败")
    return buffer.tobytes()


def sample_frames(
    source: VideoSource,
    config: PipelineConfig,
    *,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[SampledFrame]:
    """按固定步长采样并计算特征与相邻帧分数；retain_luma 关闭时只保留上一帧亮度。"""

    sampling = config.sampling
    total = estimate_sample_count(source.duration, sampling.sample_rate_hz)
    step = max(total // 100, 1)

    frames: List[SampledFrame] = []
    prev_hist = None
    prev_luma = None
    for index, timestamp, raster in iter_rasters(
        source,
        sampling.sample_rate_hz,
        sampling.max_width_px,
        cancel_event=cancel_event,
    ):
        features = extract_features(raster)
        score = 0.0
        if prev_hist is not None and prev_luma is not None:
            score = change_score(prev_hist, prev_luma, features.histogram, features.luma)
        frames.append(
            SampledFrame(
                index=index,
                timestamp=timestamp,
                histogram=features.histogram,
                sharpness=features.sharpness,
                change_score=score,
                luma=features.luma if config.retain_luma else None,
            )
        )
        prev_hist, prev_luma = features.histogram, features.luma
        processed = index + 1
        if total and (processed % step == 0 or processed == total):
            _report(progress_callback, SAMPLING_SHARE * min(processed / total, 1.0))
    return frames


def extract_pages(
    source: VideoSource,
    config: PipelineConfig,
    *,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ExtractionResult:
    """主入口：对已打开的视频源执行完整提取。

    SourceError 直接向上抛出，不返回部分结果；取消只在采样迭代之间与细化轮次之间生效。
    """

    width, height = target_size(source.width, source.height, config.sampling.max_width_px)
    frames = sample_frames(source, config, progress_callback=progress_callback, cancel_event=cancel_event)
    if not frames:
        raise SourceError("视频中没有可采样的帧")
    logger.info("Sampled %d frames at %.1f Hz (%dx%d)", len(frames), config.sampling.sample_rate_hz, width, height)
    _report(progress_callback, SAMPLING_SHARE)

    change_points = detect_change_points(frames, config.detection)
    passes = max(config.refine.strict_passes, 1)
    refined = refine_change_points(
        frames,
        change_points,
        config.detection,
        config.refine,
        on_pass=lambda p: _report(progress_callback, SAMPLING_SHARE + REFINE_SHARE * (p + 1) / passes),
        cancel_event=cancel_event,
    )
    segments = segments_from_change_points(refined.change_points, len(frames))
    settle = settle_offset(config.select.settle_sec, config.sampling.sample_rate_hz)
    chosen = select_frames(segments, frames, settle)
    logger.info("%d segments after refinement, settle window %d samples", len(segments), settle)

    dedup = DuplicateFilter(config.dedup.dup_hash)
    pages: List[Page] = []
    for position, frame_index in enumerate(chosen):
        frame = frames[frame_index]
        raster: Optional[NDArray[np.uint8]] = None
        luma = frame.luma
        if luma is None:
            raster = source.read_frame(frame.timestamp, width, height)
            luma = to_luma(raster)
        candidate = PageCandidate(
            source_frame_index=frame_index,
            timestamp=frame.timestamp,
            fingerprint=perceptual_hash(luma),
        )
        if not dedup.admit(candidate):
            continue
        if raster is None:
            raster = source.read_frame(frame.timestamp, width, height)
        pages.append(
            Page(
                index=len(pages),
                timestamp=frame.timestamp,
                image=encode_png(raster),
                width=int(raster.shape[1]),
                height=int(raster.shape[0]),
                source_frame_index=frame_index,
                fingerprint=candidate.fingerprint,
            )
        )
        _report(progress_callback, SAMPLING_SHARE + REFINE_SHARE + ADMIT_SHARE * (position + 1) / len(chosen))

    logger.info("Admitted %d pages, dropped %d duplicates", len(pages), dedup.rejected)
    _report(progress_callback, 1.0)
    return ExtractionResult(
        pages=pages,
        width=width,
        height=height,
        duration=source.duration,
        frame_count=len(frames),
        change_points=list(refined.change_points),
        refined_points=list(refined.added),
        duplicates_dropped=dedup.rejected,
    )


def extract_pages_from_file(
    video_path: str | Path,
    config: PipelineConfig,
    *,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ExtractionResult:
    """打开本地视频文件并提取页面，结束后释放解码器。"""

    with OpenCVVideoSource(video_path) as source:
        return extract_pages(source, config, progress_callback=progress_callback, cancel_event=cancel_event)
