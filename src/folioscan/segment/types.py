"""切分阶段内部使用的结构体。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True, slots=True)
class SampledFrame:
    """单个采样帧的特征记录，计算完成后不可变。

    change_score 是与前一采样帧的混合差异分数（第 0 帧为 0），
    首轮检测与严格模式重扫都直接读取它。luma 在 retain_luma 关闭时为 None。
    """

    index: int
    timestamp: float
    histogram: NDArray[np.float64]
    sharpness: float
    change_score: float
    luma: Optional[NDArray[np.float32]] = None


class Segment(NamedTuple):
    """采样帧序列上的半开区间 [start, end)。"""

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start
