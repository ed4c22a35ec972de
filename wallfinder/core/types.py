"""Shared type definitions used across the package.

Boxes and per-frame summaries live here so the detector, tracker, session and
API layers agree on one set of plain value types.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BoundaryBox:
    """Wall boundaries in depth-frame sample coordinates.

    A side equal to 0 means the scan for that side found nothing.
    """

    left: int = 0
    right: int = 0
    top: int = 0
    bottom: int = 0

    @property
    def calibrated(self) -> bool:
        return bool(self.left and self.right and self.top and self.bottom)

    def missing(self) -> list[str]:
        """Return the names of the sides still at the sentinel value."""

        return [name for name in ("left", "right", "top", "bottom") if not getattr(self, name)]

    def scaled(self, sx: float, sy: float) -> BoundaryBox:
        """Map the box into another frame's coordinate space (e.g. depth -> color)."""

        return BoundaryBox(
            left=int(self.left * sx),
            right=int(self.right * sx),
            top=int(self.top * sy),
            bottom=int(self.bottom * sy),
        )


@dataclass
class MarkerBox:
    """Marker extent in color-frame coordinates, updated in place by the tracker."""

    left_pos: int = 0
    right_pos: int = 0
    top_pos: int = 0
    bottom_pos: int = 0

    def copy(self) -> MarkerBox:
        return MarkerBox(self.left_pos, self.right_pos, self.top_pos, self.bottom_pos)


@dataclass
class FrameSummary:
    """Diagnostic payload produced for every processed frame set."""

    frame_id: int
    timestamp: float
    phase: str
    boundaries: BoundaryBox
    calibrated: bool
    reference_value: float | None = None
    wall_depth: float | None = None
    marker: MarkerBox | None = None
    detected_marker: MarkerBox | None = None
    marker_found: bool = False
    fps: float = 0.0
    depth_size: tuple[int, int] = (0, 0)
    color_size: tuple[int, int] = (0, 0)
    region_size: tuple[int, int] = (0, 0)
    error: str | None = None
