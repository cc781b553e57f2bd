"""核心模块入口，聚合数据模型、配置与异常供各步骤复用。"""

from .config import PipelineConfig, load_config, validate_config
from .datamodels import DigitSequenceReport, OcrWord, Page, PageCandidate
from .errors import (
    AssemblyError,
    ConfigError,
    ExtractionCancelled,
    FolioscanError,
    RecognitionMiss,
    SourceError,
)
from .logging_utils import get_logger, setup_logging

__all__ = [
    "Page",
    "PageCandidate",
    "OcrWord",
    "DigitSequenceReport",
    "PipelineConfig",
    "load_config",
    "validate_config",
    "FolioscanError",
    "SourceError",
    "ConfigError",
    "RecognitionMiss",
    "AssemblyError",
    "ExtractionCancelled",
    "get_logger",
    "setup_logging",
]
