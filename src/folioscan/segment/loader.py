"""视频采样：按固定时间步长 seek 并栅格化为限定宽度的帧。"""

from __future__ import annotations

import math
import threading
from pathlib import Path
from typing import Generator, Optional, Protocol, Tuple

import cv2
import ffmpeg
import numpy as np
from numpy.typing import NDArray

from folioscan.core import ExtractionCancelled, SourceError, get_logger

logger = get_logger(__name__)

# 浮点累计误差容忍，保证 duration 本身也能被采到
_END_EPSILON = 1e-3


class VideoSource(Protocol):
    """视频源协议：提供元数据与按时间戳 seek+栅格化。"""

    duration: float
    width: int
    height: int

    def read_frame(self, timestamp: float, width: int, height: int) -> NDArray[np.uint8]:
        """返回指定时间戳、指定尺寸的 BGR 帧；失败时抛出 SourceError。"""

    def close(self) -> None:
        ...


class OpenCVVideoSource:
    """基于 cv2.VideoCapture 的视频源，元数据缺失时回退到 ffprobe。"""

    def __init__(self, video_path: str | Path) -> None:
        self.path = Path(video_path)
        self._capture = cv2.VideoCapture(str(self.path))
        if not self._capture.isOpened():
            raise SourceError(f"无法打开视频: {self.path}")
        try:
            self.width, self.height, self.fps, self.duration = self._read_metadata()
        except SourceError:
            self._capture.release()
            raise
        frame_count = int(round(self.duration * self.fps))
        self._last_instant = max(0.0, (frame_count - 1) / self.fps) if frame_count > 0 else 0.0
        logger.info(
            "Opened %s: %dx%d, %.2f fps, %.2fs",
            self.path.name,
            self.width,
            self.height,
            self.fps,
            self.duration,
        )

    def _read_metadata(self) -> Tuple[int, int, float, float]:
        width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
        fps = float(self._capture.get(cv2.CAP_PROP_FPS) or 0.0)
        frame_count = float(self._capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0)
        duration = frame_count / fps if fps > 0 and frame_count > 0 else 0.0
        if width <= 0 or height <= 0 or duration <= 0:
            # webm 等容器下 OpenCV 常报不出时长，改由 ffprobe 读取
            width, height, fps, duration = _probe_metadata(self.path, width, height, fps)
        return width, height, fps, duration

    def read_frame(self, timestamp: float, width: int, height: int) -> NDArray[np.uint8]:
        target = min(max(0.0, timestamp), self._last_instant)
        self._capture.set(cv2.CAP_PROP_POS_MSEC, target * 1000.0)
        success, frame = self._capture.read()
        if not success or frame is None:
            raise SourceError(f"解码失败: {self.path}", timestamp=timestamp)
        if frame.shape[1] != width or frame.shape[0] != height:
            frame = cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)
        return frame

    def close(self) -> None:
        self._capture.release()

    def __enter__(self) -> "OpenCVVideoSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _probe_metadata(path: Path, width: int, height: int, fps: float) -> Tuple[int, int, float, float]:
    try:
        probe = ffmpeg.probe(str(path))
    except (ffmpeg.Error, FileNotFoundError) as exc:
        raise SourceError(f"无法读取视频元数据: {path}") from exc

    stream = next((s for s in probe.get("streams", []) if s.get("codec_type") == "video"), None)
    if stream is None:
        raise SourceError(f"视频中没有视频流: {path}")
    width = width or int(stream.get("width") or 0)
    height = height or int(stream.get("height") or 0)
    if fps <= 0:
        num, _, den = str(stream.get("avg_frame_rate", "0/1")).partition("/")
        fps = float(num) / float(den or 1) if float(den or 1) else 0.0
    duration = float(stream.get("duration") or probe.get("format", {}).get("duration") or 0.0)
    if width <= 0 or height <= 0 or duration <= 0 or fps <= 0:
        raise SourceError(f"无法读取视频元数据: {path}")
    return width, height, fps, duration


def target_size(width: int, height: int, max_width: int) -> Tuple[int, int]:
    """保持宽高比缩放到不超过 max_width；原宽度不超过上限时不缩放。"""

    if width <= max_width:
        return width, height
    scale = max_width / width
    return int(math.floor(width * scale)), int(math.floor(height * scale))


def sample_times(duration: float, sample_rate_hz: float) -> Generator[float, None, None]:
    """生成 0, dt, 2dt, ... 直到并包含 duration 的采样时刻。"""

    if sample_rate_hz <= 0:
        raise ValueError("sample_rate_hz must be positive")
    dt = 1.0 / sample_rate_hz
    k = 0
    while k * dt <= duration + _END_EPSILON:
        yield k * dt
        k += 1


def estimate_sample_count(duration: float, sample_rate_hz: float) -> int:
    if sample_rate_hz <= 0 or duration < 0:
        return 0
    return int(math.floor((duration + _END_EPSILON) * sample_rate_hz)) + 1


def iter_rasters(
    source: VideoSource,
    sample_rate_hz: float,
    max_width_px: int,
    *,
    cancel_event: Optional[threading.Event] = None,
) -> Generator[Tuple[int, float, NDArray[np.uint8]], None, None]:
    """逐个采样时刻 seek 并栅格化，严格按时间顺序，一次只占用一个解码请求。"""

    width, height = target_size(source.width, source.height, max_width_px)
    for index, timestamp in enumerate(sample_times(source.duration, sample_rate_hz)):
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelled(f"采样在第 {index} 帧处被取消")
        yield index, timestamp, source.read_frame(timestamp, width, height)
