"""Marker localisation and incremental tracking in color frames.

`MarkerTracker` keeps a rectangle (`MarkerBox`) in color-frame coordinates.
Every step first re-detects the marker inside the search region, then moves
the rectangle edges by a single sample. The rectangle therefore converges on
the marker linearly over successive frames rather than jumping to it.
"""

from __future__ import annotations

import logging

import numpy as np

from wallfinder.core.errors import MarkerNotFound
from wallfinder.core.frames import ColorFrame
from wallfinder.core.marker.color import MARKER_FILL, MarkerColor
from wallfinder.core.types import BoundaryBox, MarkerBox

logger = logging.getLogger(__name__)

DEFAULT_HALF_SIZE = 32


def _run_length(line: np.ndarray) -> int:
    """Number of leading True values in a boolean line."""

    gaps = np.flatnonzero(~line)
    return int(gaps[0]) if gaps.size else int(line.size)


def _step_toward(current: int, goal: int, lo: int, hi: int) -> int:
    if goal < current:
        current -= 1
    elif goal > current:
        current += 1
    return max(lo, min(hi, current))


class MarkerTracker:
    """Tracks a saturated-red marker with a one-sample-per-frame rectangle.

    Args:
        width: Color frame width.
        height: Color frame height.
        search: Rectangle whose interior is searched for marker samples
            (usually the wall boundaries scaled into color space). `None`
            searches the whole frame.
        color: Marker classification thresholds.
        half_size: Half-size of the default centered rectangle.
        target: Optional display buffer redrawn after every move.
    """

    def __init__(
        self,
        width: int,
        height: int,
        search: BoundaryBox | None = None,
        color: MarkerColor | None = None,
        half_size: int = DEFAULT_HALF_SIZE,
        target: ColorFrame | None = None,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("frame size must be positive")
        if not 0 < half_size <= min(width, height) // 2:
            raise ValueError("half_size must be in (0, min(width, height) / 2]")
        self.width = int(width)
        self.height = int(height)
        self.search = search
        self.color = color or MarkerColor()
        self.half_size = int(half_size)
        self.target = target
        self.box = MarkerBox()
        self.detected: MarkerBox | None = None
        self.center: tuple[int, int] | None = None
        self.seed()

    def seed(self) -> MarkerBox:
        """Reset the rectangle to the default box centered in the frame."""

        half = self.half_size
        self.box.left_pos = (self.width // 2) - half
        self.box.right_pos = (self.width // 2) + (half - 1)
        self.box.top_pos = (self.height // 2) - half
        self.box.bottom_pos = (self.height // 2) + (half - 1)
        return self.box

    def _search_slices(self) -> tuple[slice, slice]:
        if self.search is None:
            return slice(0, self.height), slice(0, self.width)
        s = self.search
        rows = slice(max(0, s.top + 1), max(0, min(self.height, s.bottom)))
        cols = slice(max(0, s.left + 1), max(0, min(self.width, s.right)))
        return rows, cols

    def _check_frame(self, color: ColorFrame) -> None:
        if color.width != self.width or color.height != self.height:
            raise ValueError(
                f"color frame is {color.width}x{color.height}, tracker expects {self.width}x{self.height}"
            )

    def locate(self, color: ColorFrame) -> MarkerBox:
        """Detect the marker in `color` and return its edges.

        The last marker sample of the search region in row-major order is the
        candidate; its row and column are then followed outward, within the
        frame, for as long as samples stay marker-colored.

        Raises:
            MarkerNotFound: no marker sample exists in the search region.
        """

        self._check_frame(color)
        rows, cols = self._search_slices()
        region = color.data[rows, cols]
        hits = np.flatnonzero(self.color.mask(region)) if region.size else np.empty(0, dtype=np.int64)
        if hits.size == 0:
            raise MarkerNotFound("no marker-colored sample in search region")

        last = int(hits[-1])
        r = rows.start + last // region.shape[1]
        c = cols.start + last % region.shape[1]

        row_mask = self.color.mask(color.data[r, :])
        col_mask = self.color.mask(color.data[:, c])
        detected = MarkerBox(
            left_pos=c - _run_length(row_mask[:c][::-1]),
            right_pos=c + _run_length(row_mask[c + 1 :]),
            top_pos=r - _run_length(col_mask[:r][::-1]),
            bottom_pos=r + _run_length(col_mask[r + 1 :]),
        )
        self.center = (r, c)
        self.detected = detected
        logger.debug(
            "Marker center: %d %d L: %d R: %d T: %d B: %d",
            c,
            r,
            detected.left_pos,
            detected.right_pos,
            detected.top_pos,
            detected.bottom_pos,
        )
        return detected.copy()

    def draw(self, target: ColorFrame | None = None) -> None:
        """Paint the interior of the rectangle (edges excluded) into `target`."""

        out = target if target is not None else self.target
        if out is None:
            return
        b = self.box
        out.data[b.top_pos + 1 : b.bottom_pos, b.left_pos + 1 : b.right_pos] = MARKER_FILL

    def draw_square(self, target: ColorFrame | None = None) -> None:
        self.seed()
        self.draw(target)

    def _moved(self) -> bool:
        self.draw()
        return True

    def move_left(self, color: ColorFrame) -> bool:
        self.locate(color)
        if self.box.left_pos == 0:
            return False
        self.box.left_pos -= 1
        return self._moved()

    def move_right(self, color: ColorFrame) -> bool:
        self.locate(color)
        if self.box.right_pos == self.width:
            return False
        self.box.right_pos += 1
        return self._moved()

    def move_up(self, color: ColorFrame) -> bool:
        self.locate(color)
        if self.box.top_pos == 0:
            return False
        self.box.top_pos -= 1
        return self._moved()

    def move_down(self, color: ColorFrame) -> bool:
        self.locate(color)
        if self.box.bottom_pos == self.height:
            return False
        self.box.bottom_pos += 1
        return self._moved()

    def track(self, color: ColorFrame) -> MarkerBox:
        """Detect the marker and move each edge one sample toward it.

        The goal rectangle encloses the detected marker with its edges one
        sample outside, so `draw()` covers the marker once converged.

        Raises:
            MarkerNotFound: the rectangle is left unchanged.
        """

        d = self.locate(color)
        b = self.box
        b.left_pos = _step_toward(b.left_pos, max(0, d.left_pos - 1), 0, self.width)
        b.right_pos = _step_toward(b.right_pos, min(self.width, d.right_pos + 1), 0, self.width)
        b.top_pos = _step_toward(b.top_pos, max(0, d.top_pos - 1), 0, self.height)
        b.bottom_pos = _step_toward(b.bottom_pos, min(self.height, d.bottom_pos + 1), 0, self.height)
        self.draw()
        return b.copy()
