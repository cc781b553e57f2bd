"""核心数据结构定义，覆盖页面、候选帧与页码报告。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True, slots=True)
class PageCandidate:
    """FrameSelector + PerceptualHasher 的产物，只被 DuplicateFilter 消费一次。"""

    source_frame_index: int
    timestamp: float
    fingerprint: int


@dataclass(frozen=True, slots=True)
class Page:
    """最终输出单元：按接纳顺序排列，创建后不再修改。"""

    index: int
    timestamp: float
    image: bytes = field(repr=False)
    width: int
    height: int
    source_frame_index: int
    fingerprint: int

    def to_dict(self) -> Dict[str, Any]:
        """辅助序列化：不含图像字节，便于写日志或返回 JSON。"""

        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "width": self.width,
            "height": self.height,
            "source_frame_index": self.source_frame_index,
            "fingerprint": f"{self.fingerprint:016x}",
        }


@dataclass(frozen=True, slots=True)
class OcrWord:
    """全文 OCR 的单词，坐标为源图像像素（左上角为原点）。"""

    text: str
    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def height(self) -> float:
        return self.y1 - self.y0


@dataclass(slots=True)
class DigitSequenceReport:
    """页码核对报告，所有位置均为 1 起始的页序号。

    - unread: OCR 未读到页码的页面。
    - duplicates: (i, n) 表示第 i 页与第 i+1 页都读到 n。
    - gaps: (i, a, b) 表示第 i 页读到 a，第 i+1 页读到 b 且 b != a + 1。
    """

    numbers: List[Optional[int]] = field(default_factory=list)
    unread: List[int] = field(default_factory=list)
    duplicates: List[Tuple[int, int]] = field(default_factory=list)
    gaps: List[Tuple[int, int, int]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.gaps and not self.duplicates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "numbers": list(self.numbers),
            "unread": list(self.unread),
            "duplicates": [list(item) for item in self.duplicates],
            "gaps": [list(item) for item in self.gaps],
        }

    def summary_lines(self) -> List[str]:
        """生成人类可读的异常摘要，供 CLI 输出。"""

        if self.ok and not self.unread:
            return ["页码连续，无跳页/重复"]
        lines: List[str] = []
        if self.gaps:
            lines.append("跳页: " + ", ".join(f"p{i} ({a}) -> p{i + 1} ({b})" for i, a, b in self.gaps))
        if self.duplicates:
            lines.append("重复: " + ", ".join(f"p{i} = p{i + 1} ({n})" for i, n in self.duplicates))
        if self.unread:
            lines.append("未识别: " + ", ".join(str(i) for i in self.unread))
        return lines
