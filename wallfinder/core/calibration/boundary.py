"""Wall boundary detection on depth frames.

The detector samples a small window around the image center to estimate the
depth of the background wall, shifts that estimate by a fixed tolerance
(`give`), and then scans outward from the center along each axis. The first
valid sample on the wrong side of the reference marks the edge of the wall in
that direction.

Scan ranges and the coordinate formulas are expressed on linear (row-major)
sample indices so that results match sensors that hand out flat buffers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from wallfinder.core.errors import NoValidSamples, RegionOutOfBounds
from wallfinder.core.frames import DepthFrame
from wallfinder.core.types import BoundaryBox

logger = logging.getLogger(__name__)

EDGE_MODES = ("nearer", "farther")


@dataclass(frozen=True)
class BoundaryConfig:
    # Tolerance between the averaged center depth and the edge trigger.
    give: float = 20.0
    # Half-width of the averaging window (4 -> 8x8 samples).
    variance: int = 4
    # "nearer": samples closer than the wall trigger an edge (reference = avg - give).
    # "farther": samples behind the wall trigger an edge (reference = avg + give).
    edge_mode: str = "nearer"

    def __post_init__(self) -> None:
        if self.edge_mode not in EDGE_MODES:
            raise ValueError("edge_mode must be nearer|farther")
        if self.variance < 1:
            raise ValueError("variance must be >= 1")
        if self.give < 0:
            raise ValueError("give must be >= 0")


def center_index(width: int, height: int) -> int:
    """Return the linear index of the sample nearest the visual center."""

    return (width * height) // 2 + width // 2


def reference_value(frame: DepthFrame, config: BoundaryConfig | None = None) -> float:
    """Average the center window (ignoring zero samples) and apply the tolerance.

    Raises:
        NoValidSamples: every sample in the window is zero.
        RegionOutOfBounds: the window does not fit inside the frame.
    """

    cfg = config or BoundaryConfig()
    w = frame.width
    v = int(cfg.variance)
    center = center_index(w, frame.height)
    row, col = divmod(center, w)
    if row - v < 0 or row + v > frame.height or col - v < 0 or col + v > w:
        raise RegionOutOfBounds(
            f"{2 * v}x{2 * v} reference window does not fit a {w}x{frame.height} frame"
        )

    xs = np.arange(center - v, center + v, dtype=np.int64)
    offsets = np.arange(-v, v, dtype=np.int64) * w
    window = frame.view().take(xs[:, None] + offsets[None, :])

    count = int(window.size)
    valid = window[window != 0]
    missed = count - int(valid.size)
    if count == missed:
        raise NoValidSamples(f"all {count} samples around index {center} are zero")

    average = float(valid.sum(dtype=np.float64)) / float(count - missed)
    if cfg.edge_mode == "farther":
        return average + float(cfg.give)
    return average - float(cfg.give)


def _first_hit(samples: np.ndarray, reference: float, edge_mode: str) -> int | None:
    """Return the position of the first valid sample past the reference, if any."""

    if edge_mode == "farther":
        hits = (samples != 0) & (samples > reference)
    else:
        hits = (samples != 0) & (samples < reference)
    found = np.flatnonzero(hits)
    if found.size == 0:
        return None
    return int(found[0])


class BoundaryDetector:
    """Locates the left/right/top/bottom edges of the wall in a depth frame.

    `calibrate()` recomputes everything from the frame it is given; callers
    feed one frame at a time until `calibrated()` reports True.
    """

    def __init__(self, config: BoundaryConfig | None = None) -> None:
        self.config = config or BoundaryConfig()
        self.left = 0
        self.right = 0
        self.top = 0
        self.bottom = 0
        self.center = 0
        self.reference: float | None = None
        self.wall_depth: float | None = None

    @property
    def boundaries(self) -> BoundaryBox:
        return BoundaryBox(left=self.left, right=self.right, top=self.top, bottom=self.bottom)

    def calibrated(self) -> bool:
        return self.boundaries.calibrated

    def reset(self) -> None:
        self.left = self.right = self.top = self.bottom = 0
        self.reference = None
        self.wall_depth = None

    def calibrate(self, frame: DepthFrame) -> BoundaryBox:
        """Run one calibration pass over `frame` and return the boundaries found.

        Raises:
            NoValidSamples: the reference window is entirely invalid; the
                previous boundaries are kept.
            RegionOutOfBounds: the reference window does not fit the frame;
                the previous boundaries are kept.
        """

        ref = reference_value(frame, self.config)
        w = frame.width
        h = frame.height
        center = center_index(w, h)
        view = frame.view()
        mode = self.config.edge_mode

        self.reset()
        self.center = center
        self.reference = ref
        wall_depth: float | None = None

        scans = (
            ("left", np.arange(center, center - w // 2, -1, dtype=np.int64)),
            ("right", np.arange(center, center + w // 2 - 1, dtype=np.int64)),
            ("top", np.arange(center, center - w * (h // 2), -w, dtype=np.int64)),
            ("bottom", np.arange(center, center + w * (h // 2 - 1), w, dtype=np.int64)),
        )
        for side, indices in scans:
            samples = view.take(indices)
            pos = _first_hit(samples, ref, mode)
            if pos is None:
                continue
            i = int(indices[pos])
            if side == "left":
                self.left = (w // 2) + 1 - (center - i)
            elif side == "right":
                self.right = (w // 2) + 1 + (i - center)
            elif side == "top":
                self.top = (h // 2) - ((center - i) // w)
            else:
                self.bottom = (h // 2) + 1 + ((i - center) // w)
            value = float(samples[pos])
            if wall_depth is None or value > wall_depth:
                wall_depth = value

        self.wall_depth = wall_depth
        logger.debug(
            "L: %d R: %d T: %d B: %d (reference=%.2f)",
            self.left,
            self.right,
            self.top,
            self.bottom,
            ref,
        )
        return self.boundaries

    def paint_calibration_square(self, frame: DepthFrame, value: float = 100.0) -> DepthFrame:
        """Calibrate on `frame` and return a copy with the box interior filled with `value`."""

        box = self.calibrate(frame)
        out = frame.copy()
        if box.calibrated and box.right > box.left + 1 and box.bottom > box.top + 1:
            out.data[box.top + 1 : box.bottom, box.left + 1 : box.right] = value
        return out
