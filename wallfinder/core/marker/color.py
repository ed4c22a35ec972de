"""Marker color classification for packed color samples."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

RED_THRESHOLD = 0xDD
NOT_RED_THRESHOLD = 0x33
MARKER_FILL = 0x00FF0000


@dataclass(frozen=True)
class MarkerColor:
    """Thresholds for the saturated-red marker."""

    red_threshold: int = RED_THRESHOLD
    not_red_threshold: int = NOT_RED_THRESHOLD

    def __post_init__(self) -> None:
        for name in ("red_threshold", "not_red_threshold"):
            if not 0 <= int(getattr(self, name)) <= 0xFF:
                raise ValueError(f"{name} must be in [0, 255]")

    def matches(self, sample: int) -> bool:
        return is_marker_color(sample, self.red_threshold, self.not_red_threshold)

    def mask(self, data: np.ndarray) -> np.ndarray:
        return marker_mask(data, self.red_threshold, self.not_red_threshold)


def is_marker_color(
    sample: int,
    red_threshold: int = RED_THRESHOLD,
    not_red_threshold: int = NOT_RED_THRESHOLD,
) -> bool:
    """Return True if the packed sample is strongly red with little green and blue."""

    s = int(sample)
    red = (s >> 16) & 0xFF
    green = (s >> 8) & 0xFF
    blue = s & 0xFF
    return red > red_threshold and green < not_red_threshold and blue < not_red_threshold


def marker_mask(
    data: np.ndarray,
    red_threshold: int = RED_THRESHOLD,
    not_red_threshold: int = NOT_RED_THRESHOLD,
) -> np.ndarray:
    """Vectorised `is_marker_color` over an array of packed samples."""

    d = np.asarray(data, dtype=np.uint32)
    red = (d >> 16) & 0xFF
    green = (d >> 8) & 0xFF
    blue = d & 0xFF
    return (red > red_threshold) & (green < not_red_threshold) & (blue < not_red_threshold)
