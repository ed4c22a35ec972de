"""Per-frame calibration and tracking orchestration.

A session starts in the `calibrating` phase and runs the boundary detector on
every depth frame until all four walls are found. It then crops the wall
region, maps the boundaries into color-frame coordinates, seeds a marker
tracker, and switches to the `tracking` phase where every color frame drives
one tracking step.
"""

from __future__ import annotations

import logging
import time

import numpy as np

from wallfinder.core.calibration.boundary import BoundaryDetector
from wallfinder.core.calibration.region import extract_region
from wallfinder.core.errors import MarkerNotFound, NoValidSamples, RegionOutOfBounds
from wallfinder.core.frames import ColorFrame, CroppedRegion, DepthFrame, FrameSet
from wallfinder.core.marker.color import MarkerColor
from wallfinder.core.marker.tracker import DEFAULT_HALF_SIZE, MarkerTracker
from wallfinder.core.overlay.draw import render_color, render_depth
from wallfinder.core.types import BoundaryBox, FrameSummary

logger = logging.getLogger(__name__)

PHASE_CALIBRATING = "calibrating"
PHASE_TRACKING = "tracking"


class CalibrationSession:
    """Runs exactly one detection or tracking pass per frame set."""

    def __init__(
        self,
        detector: BoundaryDetector | None = None,
        marker_color: MarkerColor | None = None,
        marker_half_size: int = DEFAULT_HALF_SIZE,
        extract_region: bool = True,
        show_calibration_square: bool = False,
        max_depth_mm: float = 4500.0,
    ) -> None:
        self.detector = detector or BoundaryDetector()
        self.marker_color = marker_color or MarkerColor()
        self.marker_half_size = int(marker_half_size)
        self.extract_region = extract_region
        self.show_calibration_square = show_calibration_square
        self.max_depth_mm = float(max_depth_mm)
        self.phase = PHASE_CALIBRATING
        self.tracker: MarkerTracker | None = None
        self.region: CroppedRegion | None = None
        self.depth_size: tuple[int, int] | None = None
        self.frame_id = 0
        self._last_fps_at = time.perf_counter()
        self._fps = 0.0

    def reset(self) -> None:
        """Drop calibration and tracking state; the next frame starts calibrating again."""

        self.detector.reset()
        self.phase = PHASE_CALIBRATING
        self.tracker = None
        self.region = None
        self.depth_size = None
        logger.info("Calibration reset")

    def _calibrate(self, depth: DepthFrame) -> tuple[DepthFrame, str | None]:
        display = depth
        try:
            if self.show_calibration_square:
                display = self.detector.paint_calibration_square(depth)
            else:
                self.detector.calibrate(depth)
        except (NoValidSamples, RegionOutOfBounds) as exc:
            logger.warning("Calibration step skipped: %s", exc)
            return display, str(exc)

        box = self.detector.boundaries
        if not box.calibrated:
            logger.debug("Waiting for boundaries, missing: %s", ", ".join(box.missing()))
            return display, None

        if self.extract_region:
            try:
                self.region = extract_region(depth, box)
            except RegionOutOfBounds as exc:
                logger.warning("Discarding calibration: %s", exc)
                self.detector.reset()
                return display, str(exc)

        self.depth_size = (depth.width, depth.height)
        self.phase = PHASE_TRACKING
        logger.info(
            "Calibrated L: %d R: %d T: %d B: %d (reference=%.2f)",
            box.left,
            box.right,
            box.top,
            box.bottom,
            self.detector.reference or 0.0,
        )
        return display, None

    def _ensure_tracker(self, color: ColorFrame) -> MarkerTracker:
        if self.tracker is not None:
            return self.tracker
        box = self.detector.boundaries
        dw, dh = self.depth_size or (color.width, color.height)
        search = box.scaled(color.width / float(dw), color.height / float(dh))
        self.tracker = MarkerTracker(
            color.width,
            color.height,
            search=search,
            color=self.marker_color,
            half_size=min(self.marker_half_size, min(color.width, color.height) // 2),
        )
        logger.info(
            "Tracking in color space L: %d R: %d T: %d B: %d",
            search.left,
            search.right,
            search.top,
            search.bottom,
        )
        return self.tracker

    def _track(self, color: ColorFrame) -> tuple[ColorFrame, bool]:
        tracker = self._ensure_tracker(color)
        display = color.copy()
        tracker.target = display
        try:
            tracker.track(color)
        except MarkerNotFound:
            logger.debug("Marker not found; tracking step skipped")
            return display, False
        return display, True

    def _update_fps(self) -> None:
        now = time.perf_counter()
        dt = now - self._last_fps_at
        if dt > 0:
            instant = 1.0 / dt
            alpha = 0.1
            self._fps = instant if self._fps == 0 else (self._fps * (1.0 - alpha) + instant * alpha)
        self._last_fps_at = now

    def process(
        self,
        frames: FrameSet,
        render: bool = True,
    ) -> tuple[FrameSummary, dict[str, np.ndarray]]:
        """Process one frame set and return (summary, display images by stream name)."""

        self.frame_id += 1
        error: str | None = None
        depth = frames.depth
        color = frames.color
        display_depth = depth
        display_color = color
        marker_found = False

        if self.phase == PHASE_CALIBRATING:
            if depth is None:
                error = "frame set has no depth frame"
            else:
                display_depth, error = self._calibrate(depth)
        elif self.phase == PHASE_TRACKING and color is not None:
            display_color, marker_found = self._track(color)

        self._update_fps()
        box: BoundaryBox = self.detector.boundaries
        tracker = self.tracker
        summary = FrameSummary(
            frame_id=self.frame_id,
            timestamp=frames.timestamp or time.time(),
            phase=self.phase,
            boundaries=box,
            calibrated=box.calibrated,
            reference_value=self.detector.reference,
            wall_depth=self.detector.wall_depth,
            marker=tracker.box.copy() if tracker is not None else None,
            detected_marker=(
                tracker.detected.copy() if tracker is not None and tracker.detected and marker_found else None
            ),
            marker_found=marker_found,
            fps=self._fps,
            depth_size=(depth.width, depth.height) if depth is not None else (0, 0),
            color_size=(color.width, color.height) if color is not None else (0, 0),
            region_size=(self.region.width, self.region.height) if self.region is not None else (0, 0),
            error=error,
        )

        images: dict[str, np.ndarray] = {}
        if render:
            if display_depth is not None:
                images["depth"] = render_depth(display_depth, summary, self.max_depth_mm)
            if display_color is not None:
                images["color"] = render_color(display_color, summary)
        return summary, images
