"""按选帧顺序贪心接纳页面，拒绝与已接纳指纹过近的重复拍摄。"""

from __future__ import annotations

from typing import List

from folioscan.core import PageCandidate, get_logger

from .phash import hamming_distance

logger = get_logger(__name__)


class DuplicateFilter:
    """顺序相关、不回溯：一旦接纳的指纹不会被替换或移除。

    汉明距离 <= dup_hash 即视为重复（阈值包含等号）。
    """

    def __init__(self, dup_hash: int) -> None:
        if dup_hash < 0:
            raise ValueError("dup_hash must be non-negative")
        self.dup_hash = dup_hash
        self._fingerprints: List[int] = []
        self.rejected = 0

    @property
    def admitted(self) -> List[int]:
        return list(self._fingerprints)

    def is_duplicate(self, fingerprint: int) -> bool:
        return any(hamming_distance(seen, fingerprint) <= self.dup_hash for seen in self._fingerprints)

    def admit(self, candidate: PageCandidate) -> bool:
        """接纳返回 True；重复时丢弃并返回 False。"""

        if self.is_duplicate(candidate.fingerprint):
            self.rejected += 1
            logger.debug(
                "Dropped frame %d (t=%.2fs) as duplicate",
                candidate.source_frame_index,
                candidate.timestamp,
            )
            return False
        self._fingerprints.append(candidate.fingerprint)
        return True
