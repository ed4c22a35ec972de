import numpy as np
import pytest

from wallfinder.core.errors import MarkerNotFound
from wallfinder.core.frames import ColorFrame
from wallfinder.core.marker.color import MARKER_FILL
from wallfinder.core.marker.tracker import MarkerTracker
from wallfinder.core.types import BoundaryBox, MarkerBox

W, H = 200, 100
GRAY = 0x00808080
RED = 0x00FF0000


def _color(marker: tuple[int, int, int, int] | None = (120, 139, 40, 49)) -> ColorFrame:
    data = np.full((H, W), GRAY, dtype=np.uint32)
    if marker is not None:
        left, right, top, bottom = marker
        data[top : bottom + 1, left : right + 1] = RED
    return ColorFrame(data)


def test_seed_centers_default_box():
    tracker = MarkerTracker(W, H, half_size=10)
    assert tracker.box == MarkerBox(left_pos=90, right_pos=109, top_pos=40, bottom_pos=59)


def test_half_size_is_validated():
    with pytest.raises(ValueError):
        MarkerTracker(W, H, half_size=0)
    with pytest.raises(ValueError):
        MarkerTracker(W, H, half_size=51)


def test_locate_reports_marker_edges():
    tracker = MarkerTracker(W, H, half_size=10)
    detected = tracker.locate(_color())

    assert detected == MarkerBox(left_pos=120, right_pos=139, top_pos=40, bottom_pos=49)
    assert tracker.center == (49, 139)


def test_locate_uses_last_marker_in_scan_order():
    frame = _color((10, 19, 10, 19))
    frame.data[60:70, 150:160] = RED
    detected = MarkerTracker(W, H, half_size=10).locate(frame)
    assert detected == MarkerBox(left_pos=150, right_pos=159, top_pos=60, bottom_pos=69)


def test_locate_stops_at_frame_edges():
    detected = MarkerTracker(W, H, half_size=10).locate(_color((0, 9, 90, 99)))
    assert detected == MarkerBox(left_pos=0, right_pos=9, top_pos=90, bottom_pos=99)


def test_marker_outside_search_region_is_not_found():
    tracker = MarkerTracker(W, H, search=BoundaryBox(left=1, right=60, top=1, bottom=60), half_size=10)
    with pytest.raises(MarkerNotFound):
        tracker.locate(_color())


def test_marker_not_found_leaves_box_unchanged():
    tracker = MarkerTracker(W, H, half_size=10)
    before = tracker.box.copy()

    with pytest.raises(MarkerNotFound):
        tracker.track(_color(None))
    with pytest.raises(MarkerNotFound):
        tracker.move_left(_color(None))

    assert tracker.box == before


def test_frame_size_mismatch_raises():
    tracker = MarkerTracker(W, H, half_size=10)
    with pytest.raises(ValueError):
        tracker.locate(ColorFrame(np.zeros((H, W + 1), dtype=np.uint32)))


def test_move_left_and_up_clamp_at_zero():
    tracker = MarkerTracker(W, H, half_size=10)
    frame = _color()

    moves = 0
    while tracker.move_left(frame):
        moves += 1
    assert moves == 90
    assert tracker.box.left_pos == 0
    assert tracker.move_left(frame) is False

    while tracker.move_up(frame):
        pass
    assert tracker.box.top_pos == 0


def test_move_right_and_down_clamp_at_frame_size():
    tracker = MarkerTracker(W, H, half_size=10)
    frame = _color()

    while tracker.move_right(frame):
        pass
    while tracker.move_down(frame):
        pass

    assert tracker.box.right_pos == W
    assert tracker.box.bottom_pos == H
    assert tracker.move_right(frame) is False
    assert tracker.move_down(frame) is False


def test_track_moves_one_sample_per_step_and_converges():
    tracker = MarkerTracker(W, H, half_size=10)
    frame = _color()

    first = tracker.track(frame)
    assert first == MarkerBox(left_pos=91, right_pos=110, top_pos=39, bottom_pos=58)

    for _ in range(40):
        box = tracker.track(frame)
    assert box == MarkerBox(left_pos=119, right_pos=140, top_pos=39, bottom_pos=50)


def test_draw_fills_interior_of_target():
    target = ColorFrame(np.zeros((H, W), dtype=np.uint32))
    tracker = MarkerTracker(W, H, half_size=10, target=target)

    tracker.draw_square()

    b = tracker.box
    assert np.all(target.data[b.top_pos + 1 : b.bottom_pos, b.left_pos + 1 : b.right_pos] == MARKER_FILL)
    assert np.all(target.data[b.top_pos, :] == 0)
    assert np.all(target.data[:, b.left_pos] == 0)
    assert int(target.data.astype(bool).sum()) == 18 * 18


def test_draw_square_resets_box():
    tracker = MarkerTracker(W, H, half_size=10)
    tracker.track(_color())
    tracker.draw_square()
    assert tracker.box == MarkerBox(left_pos=90, right_pos=109, top_pos=40, bottom_pos=59)
