"""页码连续性核对：只报告异常，不改变切分结果。"""

from __future__ import annotations

from typing import List, Optional, Sequence

import pytesseract

from folioscan.core import DigitSequenceReport, Page, RecognitionMiss, get_logger

from .digits import DigitReader

logger = get_logger(__name__)


def build_report(numbers: Sequence[Optional[int]]) -> DigitSequenceReport:
    """根据逐页识别结果生成报告，位置编号从 1 开始。"""

    report = DigitSequenceReport(numbers=list(numbers))
    report.unread = [pos + 1 for pos, value in enumerate(numbers) if value is None]
    for idx in range(1, len(numbers)):
        prev, cur = numbers[idx - 1], numbers[idx]
        if prev is None or cur is None:
            continue
        if cur == prev:
            report.duplicates.append((idx, prev))
        elif cur != prev + 1:
            report.gaps.append((idx, prev, cur))
    return report


def check_numbering(pages: Sequence[Page], reader: DigitReader) -> DigitSequenceReport:
    """对每个已接纳页面调用一次页码识别；识别失败记为未读。"""

    numbers: List[Optional[int]] = []
    for page in pages:
        try:
            numbers.append(reader.read_number(page.image))
        except RecognitionMiss as exc:
            logger.debug("Page %d: %s", page.index + 1, exc)
            numbers.append(None)
        except (pytesseract.TesseractError, OSError) as exc:
            logger.warning("Page %d: digit OCR failed: %s", page.index + 1, exc)
            numbers.append(None)
    report = build_report(numbers)
    if not report.ok:
        logger.warning("Numbering anomalies: %d gaps, %d duplicates", len(report.gaps), len(report.duplicates))
    return report
