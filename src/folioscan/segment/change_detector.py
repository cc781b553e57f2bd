"""换页检测：直方图相关性与平均像素差的混合分数。"""

from __future__ import annotations

import math
from typing import List, Sequence

import numpy as np
from numpy.typing import NDArray

from folioscan.core.config import DetectionConfig
from folioscan.core import get_logger

from .types import SampledFrame, Segment

logger = get_logger(__name__)

HIST_WEIGHT = 0.65
MOTION_WEIGHT = 0.35
MOTION_GAIN = 5.0


def histogram_difference(a: NDArray[np.float64], b: NDArray[np.float64]) -> float:
    """1 - 余弦相似度（夹到 [-1, 1]），零向量时分母按 1 处理。"""

    denom = math.sqrt(float(np.dot(a, a)) * float(np.dot(b, b))) or 1.0
    corr = float(np.dot(a, b)) / denom
    return 1.0 - max(-1.0, min(1.0, corr))


def motion_magnitude(a: NDArray[np.float32], b: NDArray[np.float32]) -> float:
    """平均绝对亮度差，归一化到约 0..1。"""

    if a.size == 0:
        return 0.0
    return float(np.mean(np.abs(a - b), dtype=np.float64)) / 255.0


def change_score(
    prev_hist: NDArray[np.float64],
    prev_luma: NDArray[np.float32],
    hist: NDArray[np.float64],
    luma: NDArray[np.float32],
) -> float:
    """相邻两帧的混合分数：0.65 * 直方图差 + 0.35 * tanh(5 * 运动幅度)。"""

    hdiff = histogram_difference(prev_hist, hist)
    mdiff = motion_magnitude(prev_luma, luma)
    return HIST_WEIGHT * hdiff + MOTION_WEIGHT * math.tanh(MOTION_GAIN * mdiff)


def scan_range(
    frames: Sequence[SampledFrame],
    start: int,
    end: int,
    *,
    threshold: float,
    min_gap_sec: float,
) -> List[int]:
    """在 (start, end) 内找出分数越过阈值且与上一个边界间隔足够的帧。

    上一个边界的时间从 frames[start] 开始计；阈值与间隔都是 >= 比较。
    """

    hits: List[int] = []
    last_t = frames[start].timestamp
    for idx in range(start + 1, end):
        frame = frames[idx]
        if frame.change_score >= threshold and frame.timestamp - last_t >= min_gap_sec:
            hits.append(idx)
            last_t = frame.timestamp
    return hits


def detect_change_points(frames: Sequence[SampledFrame], config: DetectionConfig) -> List[int]:
    """首轮检测，返回严格递增且包含 0 的换页点索引。"""

    if not frames:
        return []
    change_points = [0] + scan_range(
        frames,
        0,
        len(frames),
        threshold=config.change_threshold,
        min_gap_sec=config.min_gap_sec,
    )
    logger.info("Initial pass: %d change points over %d frames", len(change_points), len(frames))
    return change_points


def segments_from_change_points(change_points: Sequence[int], total: int) -> List[Segment]:
    """换页点转为首尾相接、覆盖 [0, total) 的片段列表。"""

    ends = list(change_points[1:]) + [total]
    return [Segment(start, end) for start, end in zip(change_points, ends)]
