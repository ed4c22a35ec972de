"""Recoverable error conditions raised by the detection and tracking code.

Every error here is local to one frame: callers retry on the next frame (or
skip the tracking step) instead of stopping the processing loop.
"""

from __future__ import annotations


class WallFinderError(Exception):
    """Base class for all wallfinder errors."""


class NoValidSamples(WallFinderError, ValueError):
    """The reference averaging window holds only invalid (zero) depth samples."""


class BoundaryNotFound(WallFinderError, LookupError):
    """One or more wall boundaries are still at the sentinel value."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Boundary not found: {', '.join(self.missing)}")


class MarkerNotFound(WallFinderError, LookupError):
    """No marker-colored sample exists in the search region or scan direction."""


class RegionOutOfBounds(WallFinderError, IndexError):
    """A crop box is inverted or does not lie inside the source frame."""


class FrameTimeout(WallFinderError, RuntimeError):
    """The frame source did not deliver a frame set within the timeout."""
