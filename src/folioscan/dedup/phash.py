"""感知哈希：32x32 最近邻重采样 -> 正交 DCT-II -> 8x8 低频块（去掉 DC）-> 63 bit。"""

from __future__ import annotations

import cv2
import numpy as np
from numpy.typing import NDArray

GRID_SIZE = 32
LOW_FREQ = 8
FINGERPRINT_BITS = LOW_FREQ * LOW_FREQ - 1

def resample_nearest(luma: NDArray[np.float32], size: int = GRID_SIZE) -> NDArray[np.float64]:
    """最近像素重采样（不插值）。结果按 [列, 行] 索引：cell[i, j] 取 (x=i*W/N, y=j*H/N)。"""

    height, width = luma.shape
    xs = (np.arange(size) * width) // size
    ys = (np.arange(size) * height) // size
    return luma[np.ix_(ys, xs)].T.astype(np.float64)

def dct2(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """二维 DCT-II，正交归一化（零频分量乘 1/sqrt(2)），由 cv2.dct 完成。"""

    return cv2.dct(np.ascontiguousarray(matrix, dtype=np.float64))

def perceptual_hash(luma: NDArray[np.float32]) -> int:
    """返回 63 bit 指纹：低频系数严格大于中位数的位置置 1。"""

    coeffs = dct2(resample_nearest(luma))
    values = coeffs[:LOW_FREQ, :LOW_FREQ].ravel()[1:]
    median = np.sort(values)[values.size // 2]
    bits = 0
    for k, value in enumerate(values):
        if value > median:
            bits |= 1 << k
    return bits

def hamming_distance(a: int, b: int) -> int:
    return (a ^ b).bit_count()
