from __future__ import annotations

# 本模块负责把页面图像组装为可检索 PDF（PyMuPDF）：
# 1) 每页尺寸等于图像像素尺寸，图像铺满整页
# 2) OCR 单词以不可见文字（render_mode=3）写在包围盒左下角，可被选中与搜索
# 3) 字号取包围盒高度，夹到 [font_min, font_max]

import io
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import fitz
import pytesseract
from PIL import Image, UnidentifiedImageError

from folioscan.core import AssemblyError, OcrWord, Page, PipelineConfig, get_logger
from folioscan.core.config import ExportConfig
from folioscan.ocr import FullTextRecognizer, TesseractFullText

logger = get_logger(__name__)

INVISIBLE_TEXT = 3

PageInput = Tuple[bytes, Optional[Sequence[OcrWord]]]


@dataclass(slots=True)
class ExportResult:
    """导出结果：PDF 字节与全文 OCR 失败的页序号（1 起始）。"""

    pdf: bytes
    page_count: int
    ocr_failures: List[int] = field(default_factory=list)


class PdfAssembler:
    """图像层 + 透明文字层的 PDF 组装器。"""

    def __init__(self, config: ExportConfig | None = None) -> None:
        self.config = config or ExportConfig()

    def font_size(self, word: OcrWord) -> float:
        return max(self.config.font_min, min(self.config.font_max, word.height))

    def assemble(self, pages: Sequence[PageInput]) -> bytes:
        """按顺序组装页面；任何 PyMuPDF 错误都转换为 AssemblyError。"""

        if not pages:
            raise AssemblyError("没有可导出的页面")
        doc = fitz.open()
        try:
            for idx, (image, words) in enumerate(pages):
                width, height = _image_size(image, idx)
                page = doc.new_page(width=width, height=height)
                try:
                    page.insert_image(page.rect, stream=image)
                    for word in words or ():
                        self._insert_word(page, word)
                except (RuntimeError, ValueError) as exc:
                    raise AssemblyError(f"第 {idx + 1} 页写入失败: {exc}") from exc
            return doc.tobytes(garbage=3, deflate=True)
        finally:
            doc.close()

    def _insert_word(self, page: "fitz.Page", word: OcrWord) -> None:
        text = word.text.strip()
        if not text:
            return
        # PyMuPDF 坐标原点在左上角，(x0, y1) 即 PDF 坐标系下包围盒的左下角
        page.insert_text(
            fitz.Point(word.x0, word.y1),
            text,
            fontsize=self.font_size(word),
            fontname="helv",
            render_mode=INVISIBLE_TEXT,
        )


def _image_size(image: bytes, idx: int) -> Tuple[int, int]:
    try:
        with Image.open(io.BytesIO(image)) as img:
            img.verify()
            return img.size
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise AssemblyError(f"第 {idx + 1} 页图像格式不受支持: {exc}") from exc


def export_searchable_pdf(
    pages: Sequence[Page],
    config: PipelineConfig,
    *,
    recognizer: Optional[FullTextRecognizer] = None,
) -> ExportResult:
    """逐页全文 OCR 后组装 PDF；单页 OCR 失败时降级为纯图像页并记录。"""

    if recognizer is None and config.ocr.full_enabled:
        recognizer = TesseractFullText(lang=config.ocr.full_lang)

    inputs: List[PageInput] = []
    failures: List[int] = []
    for page in pages:
        words: Optional[List[OcrWord]] = None
        if recognizer is not None:
            try:
                words = recognizer.recognize(page.image)
            except (pytesseract.TesseractError, OSError) as exc:
                logger.warning("Page %d: full OCR failed, exporting image only: %s", page.index + 1, exc)
                failures.append(page.index + 1)
        inputs.append((page.image, words))

    pdf = PdfAssembler(config.export).assemble(inputs)
    logger.info("Exported %d pages (%d without text layer)", len(inputs), len(failures))
    return ExportResult(pdf=pdf, page_count=len(inputs), ocr_failures=failures)
