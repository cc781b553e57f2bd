"""页面切分模块，聚合采样、特征、换页检测、严格模式与选帧逻辑。"""

from .change_detector import change_score, detect_change_points, segments_from_change_points
from .features import extract_features
from .loader import OpenCVVideoSource, VideoSource, iter_rasters
from .pipeline import ExtractionResult, extract_pages, extract_pages_from_file
from .refiner import RefineResult, refine_change_points
from .selector import select_best_frame, select_frames
from .types import SampledFrame, Segment

__all__ = [
    "extract_pages",
    "extract_pages_from_file",
    "ExtractionResult",
    "SampledFrame",
    "Segment",
    "VideoSource",
    "OpenCVVideoSource",
    "iter_rasters",
    "extract_features",
    "change_score",
    "detect_change_points",
    "segments_from_change_points",
    "refine_change_points",
    "RefineResult",
    "select_best_frame",
    "select_frames",
]
