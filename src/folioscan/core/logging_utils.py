"""日志工具：CLI 输出到 stderr，服务端把同一批记录转发给 SSE 订阅者。"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

ROOT_LOGGER = "folioscan"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
FORWARD_FORMAT = "%(levelname)s | %(message)s"

# 这些库在 DEBUG 下会逐块打印解码细节，淹没提取日志
_NOISY_LOGGERS = ("PIL", "multipart", "asyncio")

LogSink = Callable[[str, str], None]


def setup_logging(level: str = "INFO") -> None:
    """设置全局日志级别，无法识别的级别名回退到 INFO。"""

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=CONSOLE_FORMAT)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or ROOT_LOGGER)


class ForwardingHandler(logging.Handler):
    """把格式化后的日志行和级别名交给 sink，例如 SSE 广播。"""

    def __init__(self, sink: LogSink, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._sink = sink
        self.setFormatter(logging.Formatter(FORWARD_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._sink(self.format(record), record.levelname)
        except Exception:
            self.handleError(record)


@contextmanager
def forward_logs(sink: LogSink, *, level: int = logging.INFO, logger_name: str = ROOT_LOGGER) -> Iterator[ForwardingHandler]:
    """在 with 块内把 folioscan 日志转发给 sink，退出时自动卸载。"""

    logger = logging.getLogger(logger_name)
    handler = ForwardingHandler(sink, level)
    logger.addHandler(handler)
    try:
        yield handler
    finally:
        logger.removeHandler(handler)
