"""每个片段跳过换页后的抖动窗口，挑选清晰度最高的帧作为页面代表。"""

from __future__ import annotations

import math
from typing import List, Sequence

from .types import SampledFrame, Segment


def settle_offset(settle_sec: float, sample_rate_hz: float) -> int:
    return int(math.floor(settle_sec * sample_rate_hz))


def select_best_frame(segment: Segment, sharpness: Sequence[float], settle: int) -> int:
    """在 [min(start + settle, end - 1), end) 中取清晰度最大者，并列时取最先出现的。"""

    start, end = segment
    scan_start = min(start + settle, end - 1)
    best = scan_start
    best_sharp = -1.0
    for idx in range(scan_start, end):
        if sharpness[idx] > best_sharp:
            best_sharp = sharpness[idx]
            best = idx
    return best


def select_frames(segments: Sequence[Segment], frames: Sequence[SampledFrame], settle: int) -> List[int]:
    sharpness = [frame.sharpness for frame in frames]
    return [select_best_frame(segment, sharpness, settle) for segment in segments]
