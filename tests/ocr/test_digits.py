"""页码 OCR 测试：区域裁剪、数字解析与 pytesseract 调用。"""

import io

import pytest
from PIL import Image

from folioscan.core import RecognitionMiss
from folioscan.core.config import OcrConfig
from folioscan.ocr import TesseractDigitReader, parse_page_number, region_box
from folioscan.ocr.digits import DIGIT_WHITELIST_CONFIG


def _png(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.mark.parametrize(
    ("region", "expected"),
    [
        ("bottom", (0, 1560, 1000, 440)),
        ("top", (0, 0, 1000, 440)),
        ("left", (0, 0, 220, 2000)),
        ("right", (780, 0, 220, 2000)),
        ("center", (200, 780, 600, 440)),
        ("full", (0, 0, 1000, 2000)),
    ],
)
def test_region_box(region, expected) -> None:
    assert region_box(1000, 2000, region, 0.22) == expected


def test_region_fraction_is_clamped() -> None:
    assert region_box(1000, 2000, "bottom", 0.9) == (0, 1000, 1000, 1000)
    assert region_box(1000, 2000, "bottom", 0.01) == (0, 1900, 1000, 100)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("p. 12", 12),
        ("3 145", 145),
        ("007\n", 7),
        ("12345", 1234),
        ("0", None),
        ("", None),
        ("abc", None),
    ],
)
def test_parse_page_number(text, expected) -> None:
    assert parse_page_number(text) == expected


def test_reader_crops_bottom_band(monkeypatch) -> None:
    calls = []

    def fake_image_to_string(image, lang, config):
        calls.append((image.size, lang, config))
        return " 42\n"

    monkeypatch.setattr("folioscan.ocr.digits.pytesseract.image_to_string", fake_image_to_string)
    reader = TesseractDigitReader.from_config(OcrConfig())

    assert reader.read_number(_png(100, 200)) == 42
    assert calls == [((100, 44), "eng", DIGIT_WHITELIST_CONFIG)]


def test_reader_raises_on_empty_text(monkeypatch) -> None:
    monkeypatch.setattr("folioscan.ocr.digits.pytesseract.image_to_string", lambda *a, **k: "\x0c")
    reader = TesseractDigitReader(region="full")

    with pytest.raises(RecognitionMiss):
        reader.read_number(_png(50, 50))
