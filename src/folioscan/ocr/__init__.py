"""OCR 协作方：页码核对与全文识别。"""

from .digits import DigitReader, TesseractDigitReader, parse_page_number, region_box
from .full_text import FullTextRecognizer, TesseractFullText
from .numbering import build_report, check_numbering

__all__ = [
    "DigitReader",
    "TesseractDigitReader",
    "parse_page_number",
    "region_box",
    "FullTextRecognizer",
    "TesseractFullText",
    "build_report",
    "check_numbering",
]
