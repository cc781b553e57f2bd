"""全文 OCR：返回单词及其在源图像中的包围盒，供 PDF 文字层使用。"""

from __future__ import annotations

import io
from typing import List, Protocol

import pytesseract
from PIL import Image

from folioscan.core import OcrWord


class FullTextRecognizer(Protocol):
    def recognize(self, image: bytes) -> List[OcrWord]:
        ...


class TesseractFullText:
    """pytesseract image_to_data 封装，丢弃空词与 conf=-1 的结构行。"""

    def __init__(self, lang: str = "spa") -> None:
        self.lang = lang

    def recognize(self, image: bytes) -> List[OcrWord]:
        with Image.open(io.BytesIO(image)) as img:
            page = img.convert("RGB")
        data = pytesseract.image_to_data(page, lang=self.lang, output_type=pytesseract.Output.DICT)
        words: List[OcrWord] = []
        for idx, text in enumerate(data.get("text", [])):
            text = (text or "").strip()
            if not text or float(data["conf"][idx]) < 0:
                continue
            left, top = float(data["left"][idx]), float(data["top"][idx])
            words.append(
                OcrWord(
                    text=text,
                    x0=left,
                    y0=top,
                    x1=left + float(data["width"][idx]),
                    y1=top + float(data["height"][idx]),
                )
            )
        return words
