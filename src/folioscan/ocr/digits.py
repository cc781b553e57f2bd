"""页码 OCR：按配置区域裁剪页面，仅识别数字。"""

from __future__ import annotations

import io
import math
import re
from typing import Optional, Protocol, Tuple

import pytesseract
from PIL import Image

from folioscan.core import RecognitionMiss
from folioscan.core.config import OcrConfig, OcrRegion

DIGIT_WHITELIST_CONFIG = "-c tessedit_char_whitelist=0123456789"
_NUMBER_PATTERN = re.compile(r"\d{1,4}")


class DigitReader(Protocol):
    """页码识别协议：返回正整数，读不到时抛出 RecognitionMiss。"""

    def read_number(self, image: bytes) -> int:
        ...


def region_box(width: int, height: int, region: OcrRegion, frac: float) -> Tuple[int, int, int, int]:
    """返回 (x, y, w, h)；frac 会被夹到 [0.05, 0.5]。"""

    f = max(0.05, min(0.5, frac))
    x, y, w, h = 0, 0, width, height
    if region == "bottom":
        y = math.floor(height * (1 - f))
        h = math.floor(height * f)
    elif region == "top":
        h = math.floor(height * f)
    elif region == "left":
        w = math.floor(width * f)
    elif region == "right":
        x = math.floor(width * (1 - f))
        w = math.floor(width * f)
    elif region == "center":
        x = math.floor(width * 0.2)
        w = math.floor(width * 0.6)
        y = math.floor(height * (0.5 - f / 2))
        h = math.floor(height * f)
    return x, y, w, h


def parse_page_number(text: str) -> Optional[int]:
    """取最长的数字串（长度相同取先出现者），只接受正整数。"""

    matches = _NUMBER_PATTERN.findall(text or "")
    if not matches:
        return None
    value = int(sorted(matches, key=len, reverse=True)[0])
    return value if value > 0 else None


class TesseractDigitReader:
    """pytesseract 实现，限定数字白名单。"""

    def __init__(self, lang: str = "eng", region: OcrRegion = "bottom", frac: float = 0.22) -> None:
        self.lang = lang
        self.region = region
        self.frac = frac

    @classmethod
    def from_config(cls, config: OcrConfig) -> "TesseractDigitReader":
        return cls(lang=config.digits_lang, region=config.region, frac=config.region_frac)

    def read_number(self, image: bytes) -> int:
        with Image.open(io.BytesIO(image)) as img:
            page = img.convert("RGB")
        x, y, w, h = region_box(page.width, page.height, self.region, self.frac)
        if w <= 0 or h <= 0:
            raise RecognitionMiss("页码区域为空")
        crop = page.crop((x, y, x + w, y + h))
        text = pytesseract.image_to_string(crop, lang=self.lang, config=DIGIT_WHITELIST_CONFIG)
        number = parse_page_number(text)
        if number is None:
            raise RecognitionMiss(f"未识别到页码: {text.strip()!r}")
        return number
