"""The frame-driven processing loop.

One iteration acquires a frame set, runs one session step, hands the display
images to the renderer and releases the frame set. Cancellation is
cooperative: `LoopControl` is checked before every iteration, never in the
middle of a step.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from wallfinder.core.errors import FrameTimeout
from wallfinder.core.overlay.render import Renderer
from wallfinder.core.session import CalibrationSession
from wallfinder.core.sources.base import FrameSource
from wallfinder.core.types import FrameSummary

logger = logging.getLogger(__name__)


class LoopControl:
    """Shutdown token and pause switch shared with signal handlers or API threads.

    Other threads only post requests (`request_shutdown`,
    `request_pause_toggle`); the source itself is stopped and started by the
    loop thread in `apply_pause_requests()`, between frames.

    Args:
        source: Device whose streams are stopped while paused.
    """

    def __init__(self, source: FrameSource | None = None) -> None:
        self.source = source
        self._shutdown = threading.Event()
        self._paused = threading.Event()
        self._lock = threading.Lock()
        self._pending_toggles = 0

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    @property
    def paused(self) -> bool:
        return self._paused.is_set()

    def request_shutdown(self) -> None:
        self._shutdown.set()

    def request_pause_toggle(self) -> bool:
        """Ask the loop thread to pause or resume; returns the requested state."""

        with self._lock:
            self._pending_toggles += 1
            return self._paused.is_set() != (self._pending_toggles % 2 == 1)

    def apply_pause_requests(self) -> None:
        """Carry out pending pause toggles. Call from the thread that reads the source."""

        with self._lock:
            toggles = self._pending_toggles
            self._pending_toggles = 0
            if toggles % 2:
                self.toggle_pause()

    def toggle_pause(self) -> bool:
        """Pause or resume the device now; returns the new paused state.

        A device that fails to restart leaves the loop paused.
        """

        if self._paused.is_set():
            if self.source is not None and self.source.start() is False:
                logger.error("Frame source failed to resume; staying paused")
                return True
            self._paused.clear()
            logger.info("Resumed")
        else:
            self._paused.set()
            if self.source is not None:
                self.source.stop()
            logger.info("Paused")
        return self._paused.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; returns early (True) when shutdown is requested."""

        return self._shutdown.wait(seconds)


def run_loop(
    source: FrameSource,
    session: CalibrationSession,
    renderer: Renderer,
    control: LoopControl,
    timeout_us: int = 10_000_000,
    max_frames: int = 0,
    target_fps: float | None = None,
    on_summary: Callable[[FrameSummary], None] | None = None,
) -> int:
    """Run until shutdown, `max_frames` processed, or a frame timeout.

    Returns:
        Number of frame sets processed.

    Raises:
        FrameTimeout: the source produced nothing within `timeout_us`.
    """

    processed = 0
    if not source.running and not control.paused and source.start() is False:
        logger.error("Frame source failed to start")
    while not control.shutdown_requested:
        control.apply_pause_requests()
        if control.paused:
            control.wait(0.05)
            continue

        frames = source.wait_for_new_frame(timeout_us)
        if frames is None:
            if control.paused or control.shutdown_requested:
                continue
            raise FrameTimeout(f"no frame set within {timeout_us} us")

        start = time.perf_counter()
        try:
            summary, images = session.process(frames)
            for stream, image in images.items():
                renderer.submit(stream, image)
        finally:
            source.release(frames)

        processed += 1
        logger.debug(
            "frame=%d phase=%s L: %d R: %d T: %d B: %d marker=%s",
            summary.frame_id,
            summary.phase,
            summary.boundaries.left,
            summary.boundaries.right,
            summary.boundaries.top,
            summary.boundaries.bottom,
            summary.marker,
        )
        if on_summary is not None:
            on_summary(summary)

        if renderer.render():
            control.request_shutdown()
        if max_frames and processed >= max_frames:
            break

        if target_fps and target_fps > 0:
            delay = (1.0 / target_fps) - (time.perf_counter() - start)
            if delay > 0:
                control.wait(delay)
    return processed
