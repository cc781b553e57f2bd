"""端到端提取测试：用合成视频源验证换页、选帧、去重、进度与取消。"""

import threading
from typing import Dict, List, Optional

import numpy as np
import pytest

from folioscan.core import ExtractionCancelled, PipelineConfig, SourceError
from folioscan.segment import extract_pages


def _texture(seed: int, low: int, high: int, size=(48, 64)) -> np.ndarray:
    gray = np.random.default_rng(seed).integers(low, high, size=size, dtype=np.uint8)
    return np.repeat(gray[:, :, None], 3, axis=2)


PAGE_A = _texture(1, 0, 100)
PAGE_B = _texture(2, 150, 256)


class FakeVideoSource:
    """按时间区间返回固定纹理的假视频源；所有请求都会被记录。"""

    def __init__(self, schedule, duration: float, fail_at: Optional[float] = None) -> None:
        self.schedule = schedule
        self.duration = duration
        self.width = 64
        self.height = 48
        self.fail_at = fail_at
        self.reads: List[float] = []

    def read_frame(self, timestamp: float, width: int, height: int) -> np.ndarray:
        self.reads.append(timestamp)
        if self.fail_at is not None and timestamp >= self.fail_at:
            raise SourceError("decode failed", timestamp=timestamp)
        for end, raster in self.schedule:
            if timestamp < end:
                return raster.copy()
        return self.schedule[-1][1].copy()

    def close(self) -> None:
        pass


def two_page_source() -> FakeVideoSource:
    return FakeVideoSource([(5.0, PAGE_A), (float("inf"), PAGE_B)], duration=10.0)


def test_single_turn_yields_two_pages() -> None:
    result = extract_pages(two_page_source(), PipelineConfig())

    assert result.frame_count == 81
    assert result.change_points == [0, 40]
    assert result.refined_points == []
    assert len(result.pages) == 2
    assert [page.index for page in result.pages] == [0, 1]
    # 稳定窗口 floor(0.25 * 8) = 2 个采样
    assert result.pages[0].timestamp == pytest.approx(0.25)
    assert result.pages[1].timestamp == pytest.approx(5.25)
    assert result.pages[0].image.startswith(b"\x89PNG")
    assert (result.pages[0].width, result.pages[0].height) == (64, 48)
    assert result.pages[0].fingerprint != result.pages[1].fingerprint


def test_returning_to_earlier_page_is_deduplicated() -> None:
    source = FakeVideoSource([(3.0, PAGE_A), (6.0, PAGE_B), (float("inf"), PAGE_A)], duration=9.0)

    result = extract_pages(source, PipelineConfig())

    assert result.change_points == [0, 24, 48]
    assert len(result.pages) == 2
    assert result.duplicates_dropped == 1
    assert [page.source_frame_index for page in result.pages] == [2, 26]


def test_static_video_yields_single_page() -> None:
    source = FakeVideoSource([(float("inf"), PAGE_A)], duration=3.0)

    result = extract_pages(source, PipelineConfig())

    assert result.change_points == [0]
    assert len(result.pages) == 1


def test_dropping_luma_buffers_gives_same_pages() -> None:
    kept = extract_pages(two_page_source(), PipelineConfig())
    source = two_page_source()
    dropped = extract_pages(source, PipelineConfig(retain_luma=False))

    assert dropped.change_points == kept.change_points
    assert [p.fingerprint for p in dropped.pages] == [p.fingerprint for p in kept.pages]
    # 81 次采样 + 每个选中帧一次重读
    assert len(source.reads) == 81 + 2


def test_progress_is_monotonic_and_completes() -> None:
    values: List[float] = []

    extract_pages(two_page_source(), PipelineConfig(), progress_callback=values.append)

    assert values
    assert all(a <= b for a, b in zip(values, values[1:]))
    assert values[-1] == pytest.approx(1.0)
    assert any(v == pytest.approx(0.6) for v in values)


def test_cancellation_during_sampling() -> None:
    cancel = threading.Event()

    def on_progress(value: float) -> None:
        if value > 0.1:
            cancel.set()

    with pytest.raises(ExtractionCancelled):
        extract_pages(two_page_source(), PipelineConfig(), progress_callback=on_progress, cancel_event=cancel)


def test_source_error_propagates_without_partial_result() -> None:
    source = FakeVideoSource([(float("inf"), PAGE_A)], duration=5.0, fail_at=3.0)

    with pytest.raises(SourceError) as excinfo:
        extract_pages(source, PipelineConfig())

    assert excinfo.value.timestamp == pytest.approx(3.0)


def test_strict_mode_off_keeps_detector_output() -> None:
    config = PipelineConfig().with_overrides("refine", strict_passes=0)

    result = extract_pages(two_page_source(), config)

    assert result.change_points == [0, 40]
    assert len(result.pages) == 2
