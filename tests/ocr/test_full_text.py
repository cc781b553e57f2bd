"""全文 OCR 封装测试。"""

import io

from PIL import Image

from folioscan.core import OcrWord
from folioscan.ocr import TesseractFullText


def test_recognize_filters_structural_rows(monkeypatch) -> None:
    data = {
        "text": ["", "Hola", "  ", "mundo"],
        "conf": ["-1", "91.5", "-1", "88"],
        "left": [0, 10, 0, 60],
        "top": [0, 20, 0, 20],
        "width": [100, 40, 0, 50],
        "height": [100, 12, 0, 14],
    }
    seen = {}

    def fake_image_to_data(image, lang, output_type):
        seen["lang"] = lang
        seen["size"] = image.size
        return data

    monkeypatch.setattr("folioscan.ocr.full_text.pytesseract.image_to_data", fake_image_to_data)
    buffer = io.BytesIO()
    Image.new("L", (120, 80), 255).save(buffer, format="PNG")

    words = TesseractFullText(lang="spa").recognize(buffer.getvalue())

    assert seen == {"lang": "spa", "size": (120, 80)}
    assert words == [OcrWord("Hola", 10, 20, 50, 32), OcrWord("mundo", 60, 20, 110, 34)]
