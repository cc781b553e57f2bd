"""逐帧特征：BT.709 亮度、64 bin 直方图、盒式模糊与拉普拉斯方差清晰度。"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np
from numpy.typing import NDArray

HIST_BINS = 64

# BT.709 权重，按 OpenCV 的 BGR 通道顺序排列
_BT709_BGR = np.array([0.0722, 0.7152, 0.2126], dtype=np.float32)


@dataclass(frozen=True, slots=True)
class FrameFeatures:
    luma: NDArray[np.float32]
    histogram: NDArray[np.float64]
    sharpness: float


def to_luma(raster: NDArray[np.uint8]) -> NDArray[np.float32]:
    """BGR(A) 帧转亮度；单通道输入直接转 float32。"""

    if raster.ndim == 2:
        return raster.astype(np.float32)
    bgr = raster[..., :3].astype(np.float32)
    return bgr @ _BT709_BGR


def histogram64(luma: NDArray[np.float32]) -> NDArray[np.float64]:
    """[0,255] 线性分 64 bin 后做 L2 归一化；能量为 0 时范数按 1 处理。"""

    bins = np.minimum(HIST_BINS - 1, (luma.ravel() * HIST_BINS).astype(np.uint32) >> 8)
    hist = np.bincount(bins, minlength=HIST_BINS).astype(np.float64)
    norm = float(np.sqrt(np.dot(hist, hist))) or 1.0
    return hist / norm


def box_blur(luma: NDArray[np.float32]) -> NDArray[np.float32]:
    """3x3 均值模糊，忽略 1 像素边框（边框保持 0）。"""

    height, width = luma.shape
    if height < 3 or width < 3:
        return np.zeros_like(luma, dtype=np.float32)
    out = cv2.blur(luma.astype(np.float32), (3, 3))
    out[0, :] = out[-1, :] = 0.0
    out[:, 0] = out[:, -1] = 0.0
    return out


def laplacian_variance(buffer: NDArray[np.float32]) -> float:
    """四邻域拉普拉斯（ksize=1）响应在内部像素上的总体方差，越大越清晰。"""

    if buffer.shape[0] < 3 or buffer.shape[1] < 3:
        return 0.0
    response = cv2.Laplacian(buffer.astype(np.float64), cv2.CV_64F, ksize=1)
    return float(response[1:-1, 1:-1].var())


def extract_features(raster: NDArray[np.uint8]) -> FrameFeatures:
    luma = to_luma(raster)
    return FrameFeatures(
        luma=luma,
        histogram=histogram64(luma),
        sharpness=laplacian_variance(box_blur(luma)),
    )
