"""异常分层：区分致命的视频/配置错误与可降级的 OCR/导出错误。"""

from __future__ import annotations


class FolioscanError(RuntimeError):
    """所有 folioscan 异常的基类，便于 CLI/服务端统一捕获。"""


class SourceError(FolioscanError):
    """视频无法打开、元数据不可读或 seek/解码失败，整次提取直接中止。"""

    def __init__(self, message: str, *, timestamp: float | None = None) -> None:
        if timestamp is not None:
            message = f"{message} (t={timestamp:.3f}s)"
        super().__init__(message)
        self.timestamp = timestamp


class ConfigError(FolioscanError, ValueError):
    """参数越界，在任何采样开始前拒绝。"""

    def __init__(self, message: str, *, parameter: str | None = None) -> None:
        if parameter:
            message = f"{parameter}: {message}"
        super().__init__(message)
        self.parameter = parameter


class RecognitionMiss(FolioscanError):
    """数字 OCR 没有读到可信页码；只记入报告，不影响页面集合。"""


class AssemblyError(FolioscanError):
    """PDF 组装失败；已提取的页面保持可用，可重试导出。"""


class ExtractionCancelled(FolioscanError):
    """调用方在采样迭代或细化轮次之间请求了取消。"""
