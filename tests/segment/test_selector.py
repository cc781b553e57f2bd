"""选帧测试：稳定窗口、并列取先与退化短片段。"""

from folioscan.segment.selector import select_best_frame, settle_offset
from folioscan.segment.types import Segment


def test_settle_offset_floors() -> None:
    assert settle_offset(0.25, 8) == 2
    assert settle_offset(0.375, 8) == 3
    assert settle_offset(0.0, 8) == 0


def test_peak_is_selected_past_settle_window() -> None:
    sharpness = [float(i) for i in range(11)] + [float(20 - i) for i in range(11, 20)]

    chosen = select_best_frame(Segment(0, 20), sharpness, settle=3)

    assert chosen == 10
    assert select_best_frame(Segment(0, 20), sharpness, settle=3) == chosen


def test_peak_inside_offset_segment() -> None:
    sharpness = [0.0] * 40 + [float(min(i, 20 - i)) for i in range(20)]

    assert select_best_frame(Segment(40, 60), sharpness, settle=3) == 50


def test_ties_keep_first_candidate_after_settle() -> None:
    sharpness = [5.0] * 10

    assert select_best_frame(Segment(0, 10), sharpness, settle=2) == 2


def test_settle_window_is_skipped_even_if_sharper() -> None:
    sharpness = [100.0, 90.0, 1.0, 2.0, 1.5]

    assert select_best_frame(Segment(0, 5), sharpness, settle=2) == 3


def test_short_segment_still_examines_last_frame() -> None:
    sharpness = [0.0, 0.0, 3.0, 1.0]

    assert select_best_frame(Segment(2, 4), sharpness, settle=5) == 3
    assert select_best_frame(Segment(3, 4), sharpness, settle=0) == 3
