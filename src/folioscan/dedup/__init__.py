"""页面去重：感知哈希与贪心重复过滤。"""

from .filter import DuplicateFilter
from .phash import hamming_distance, perceptual_hash

__all__ = ["DuplicateFilter", "hamming_distance", "perceptual_hash"]
