"""Overlay drawing helpers (OpenCV).

Turn depth/color frames into BGR images with the wall boundaries and marker
rectangles drawn on top, ready for a window or a JPEG stream.
"""

from __future__ import annotations

import cv2
import numpy as np

from wallfinder.core.frames import ColorFrame, DepthFrame
from wallfinder.core.types import BoundaryBox, FrameSummary, MarkerBox

WALL_COLOR = (0, 170, 255)
MARKER_COLOR = (57, 255, 20)  # bright green
DETECTED_COLOR = (255, 128, 0)  # orange
TEXT_COLOR = (255, 255, 255)


def depth_to_bgr(frame: DepthFrame, max_depth_mm: float = 4500.0) -> np.ndarray:
    """Scale depth to 8-bit grey (0 = near/invalid, 255 = `max_depth_mm` or beyond)."""

    scaled = np.clip(frame.data / float(max_depth_mm), 0.0, 1.0) * 255.0
    grey = scaled.astype(np.uint8)
    return cv2.cvtColor(grey, cv2.COLOR_GRAY2BGR)


def draw_boundaries(img: np.ndarray, box: BoundaryBox) -> np.ndarray:
    """Draw the wall rectangle in place; missing sides are not drawn."""

    h, w = img.shape[:2]
    if box.calibrated:
        cv2.rectangle(img, (box.left, box.top), (box.right, box.bottom), WALL_COLOR, 2)
        return img
    if box.left:
        cv2.line(img, (box.left, 0), (box.left, h - 1), WALL_COLOR, 1)
    if box.right:
        cv2.line(img, (box.right, 0), (box.right, h - 1), WALL_COLOR, 1)
    if box.top:
        cv2.line(img, (0, box.top), (w - 1, box.top), WALL_COLOR, 1)
    if box.bottom:
        cv2.line(img, (0, box.bottom), (w - 1, box.bottom), WALL_COLOR, 1)
    return img


def draw_marker(img: np.ndarray, box: MarkerBox, color: tuple[int, int, int] = MARKER_COLOR) -> np.ndarray:
    cv2.rectangle(img, (box.left_pos, box.top_pos), (box.right_pos, box.bottom_pos), color, 2)
    return img


def draw_status(img: np.ndarray, summary: FrameSummary) -> np.ndarray:
    b = summary.boundaries
    label = f"{summary.phase} L: {b.left} R: {b.right} T: {b.top} B: {b.bottom}"
    cv2.putText(img, label, (8, 20), cv2.FONT_HERSHEY_SIMPLEX, 0.5, TEXT_COLOR, 1, cv2.LINE_AA)
    return img


def render_depth(frame: DepthFrame, summary: FrameSummary, max_depth_mm: float = 4500.0) -> np.ndarray:
    """Return a BGR depth visualisation with the boundaries and status line."""

    img = depth_to_bgr(frame, max_depth_mm)
    draw_boundaries(img, summary.boundaries)
    draw_status(img, summary)
    return img


def render_color(frame: ColorFrame, summary: FrameSummary) -> np.ndarray:
    """Return a BGR color image with the tracked and detected marker rectangles."""

    img = frame.to_bgr()
    if summary.detected_marker is not None:
        draw_marker(img, summary.detected_marker, DETECTED_COLOR)
    if summary.marker is not None:
        draw_marker(img, summary.marker, MARKER_COLOR)
    return img
