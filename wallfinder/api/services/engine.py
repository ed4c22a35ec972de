from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncGenerator

from wallfinder.core.calibration.boundary import BoundaryDetector
from wallfinder.core.config.settings import (
    WallFinderSettings,
    boundary_config_from_settings,
    marker_color_from_settings,
)
from wallfinder.core.errors import FrameTimeout
from wallfinder.core.loop import LoopControl, run_loop
from wallfinder.core.overlay.render import JpegStreamRenderer
from wallfinder.core.session import CalibrationSession
from wallfinder.core.sources.base import FrameSource, make_source
from wallfinder.core.types import FrameSummary

logger = logging.getLogger(__name__)


class CalibrationEngine:
    """Runs the acquire -> calibrate/track -> encode loop on one background thread.

    The session and the frame source are only touched by that thread; other
    threads read the latest summary and JPEG snapshots, and ask for resets or
    pauses through flags the loop picks up between frames.
    """

    def __init__(self, settings: WallFinderSettings) -> None:
        self.settings = settings
        self.session = CalibrationSession(
            detector=BoundaryDetector(boundary_config_from_settings(settings)),
            marker_color=marker_color_from_settings(settings),
            marker_half_size=settings.marker_half_size,
            extract_region=settings.extract_region,
            show_calibration_square=settings.show_calibration_square,
            max_depth_mm=settings.max_depth_mm,
        )
        self.renderer = JpegStreamRenderer(settings.jpeg_quality)
        self.source: FrameSource | None = None
        self.control: LoopControl | None = None
        self.running = False
        self.last_error: str | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._latest_summary: FrameSummary | None = None
        self._reset_requested = threading.Event()

    def _make_source(self) -> FrameSource:
        """Instantiate the configured `FrameSource`."""

        return make_source(
            self.settings.frame_source,
            recording_path=self.settings.recording_path,
            device_index=self.settings.device_index,
        )

    def start(self) -> None:
        """Start the processing thread.

        Safe to call multiple times; subsequent calls while running are ignored.
        """

        if self.running:
            return
        try:
            self.source = self._make_source()
        except Exception:
            self.last_error = "Failed to initialize frame source"
            logger.exception(self.last_error)
            return
        self.control = LoopControl(self.source)
        self.running = True
        self.last_error = None
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Request shutdown and wait for the processing thread."""

        if self.control is not None:
            self.control.request_shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2)
        self.running = False

    def _run(self) -> None:
        logger.debug("Processing loop started")
        assert self.source is not None and self.control is not None
        try:
            run_loop(
                self.source,
                self.session,
                self.renderer,
                self.control,
                timeout_us=self.settings.frame_timeout_us,
                target_fps=self.settings.target_fps,
                on_summary=self._on_summary,
            )
        except FrameTimeout as exc:
            self.last_error = str(exc)
            logger.error("Frame source timed out: %s", exc)
        except Exception:
            self.last_error = "Processing loop failed"
            logger.exception(self.last_error)
        finally:
            self.running = False
            self.source.close()

    def _on_summary(self, summary: FrameSummary) -> None:
        with self._lock:
            self._latest_summary = summary
        if self._reset_requested.is_set():
            self._reset_requested.clear()
            self.session.reset()

    def request_reset(self) -> None:
        """Ask the loop to restart calibration before the next frame."""

        self._reset_requested.set()

    def toggle_pause(self) -> bool:
        """Ask the loop to pause or resume the source; returns the requested state."""

        if self.control is None:
            return False
        return self.control.request_pause_toggle()

    @property
    def paused(self) -> bool:
        return bool(self.control is not None and self.control.paused)

    def latest_summary(self) -> FrameSummary | None:
        with self._lock:
            return self._latest_summary

    def latest_frame(self, stream: str) -> bytes | None:
        """Return the latest encoded JPEG for `stream` ("depth" or "color")."""

        return self.renderer.latest(stream)

    async def mjpeg_generator(self, stream: str) -> AsyncGenerator[bytes, None]:
        """Yield MJPEG multipart chunks for HTTP streaming."""

        last_sent = None
        while True:
            frame = self.latest_frame(stream)
            if frame is not None and frame != last_sent:
                yield (b"--frame\r\n" b"Content-Type: image/jpeg\r\n\r\n" + frame + b"\r\n")
                last_sent = frame
            await asyncio.sleep(0.02)

    async def metadata_stream(self) -> AsyncGenerator[FrameSummary, None]:
        """Yield per-frame summaries for WebSocket streaming."""

        last_id = -1
        while True:
            summary = self.latest_summary()
            if summary and summary.frame_id != last_id:
                last_id = summary.frame_id
                yield summary
            await asyncio.sleep(0.02)
