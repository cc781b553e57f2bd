"""去重过滤器测试：包含等号的阈值、顺序相关与计数。"""

import pytest

from folioscan.core import PageCandidate
from folioscan.dedup import DuplicateFilter


def candidate(fingerprint: int, index: int = 0) -> PageCandidate:
    return PageCandidate(source_frame_index=index, timestamp=index / 8, fingerprint=fingerprint)


def test_five_bit_difference_depends_on_threshold() -> None:
    first, second = 0, 0b11111

    strict = DuplicateFilter(6)
    assert strict.admit(candidate(first)) is True
    assert strict.admit(candidate(second, 1)) is False

    loose = DuplicateFilter(4)
    assert loose.admit(candidate(first)) is True
    assert loose.admit(candidate(second, 1)) is True
    assert loose.admitted == [first, second]


def test_distance_equal_to_threshold_is_duplicate() -> None:
    dedup = DuplicateFilter(6)
    dedup.admit(candidate(0))

    assert dedup.is_duplicate(0b111111) is True
    assert dedup.is_duplicate(0b1111111) is False


def test_replayed_page_is_rejected_and_counted() -> None:
    dedup = DuplicateFilter(6)
    results = [dedup.admit(candidate(fp, i)) for i, fp in enumerate([0, 2**40 - 1, 1])]

    assert results == [True, True, False]
    assert dedup.rejected == 1
    assert dedup.admitted == [0, 2**40 - 1]


def test_zero_threshold_only_drops_exact_matches() -> None:
    dedup = DuplicateFilter(0)

    assert dedup.admit(candidate(5)) is True
    assert dedup.admit(candidate(4)) is True
    assert dedup.admit(candidate(5)) is False


def test_admitted_is_a_copy() -> None:
    dedup = DuplicateFilter(6)
    dedup.admit(candidate(0))

    dedup.admitted.append(123)

    assert dedup.admitted == [0]


def test_negative_threshold_rejected() -> None:
    with pytest.raises(ValueError):
        DuplicateFilter(-1)
