"""Renderers: where processed images go after each loop step.

A renderer receives images per named stream with `submit()` and is asked to
present them once per step with `render()`, which returns True when the user
asked to shut down.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

import cv2
import numpy as np

logger = logging.getLogger(__name__)

QUIT_KEYS = (27, ord("q"))


class Renderer(Protocol):
    def submit(self, stream: str, image: np.ndarray) -> None:
        """Queue `image` for display on `stream`."""

    def render(self) -> bool:
        """Present queued images; return True if shutdown was requested."""


class NullRenderer:
    def submit(self, stream: str, image: np.ndarray) -> None:
        pass

    def render(self) -> bool:
        return False


class OpenCVViewer:
    """One `cv2.imshow` window per stream; `q` or ESC requests shutdown."""

    def __init__(self, window_prefix: str = "wallfinder") -> None:
        self.window_prefix = window_prefix
        self._pending: dict[str, np.ndarray] = {}
        self._windows: set[str] = set()

    def submit(self, stream: str, image: np.ndarray) -> None:
        self._pending[stream] = image

    def render(self) -> bool:
        for stream, image in self._pending.items():
            name = f"{self.window_prefix}:{stream}"
            cv2.imshow(name, image)
            self._windows.add(name)
        self._pending.clear()
        key = cv2.waitKey(1) & 0xFF
        return key in QUIT_KEYS

    def close(self) -> None:
        for name in self._windows:
            cv2.destroyWindow(name)
        self._windows.clear()


class JpegStreamRenderer:
    """Keeps the most recent JPEG per stream for HTTP streaming.

    `submit()` and `render()` run on the processing thread; `latest()` may be
    called from any thread.
    """

    def __init__(self, jpeg_quality: int = 70) -> None:
        self.jpeg_quality = int(jpeg_quality)
        self._pending: dict[str, np.ndarray] = {}
        self._latest: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def submit(self, stream: str, image: np.ndarray) -> None:
        self._pending[stream] = image

    def render(self) -> bool:
        encode_param = [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality]
        for stream, image in self._pending.items():
            ok, jpg = cv2.imencode(".jpg", image, encode_param)
            if not ok:
                logger.warning("JPEG encoding failed for stream %s", stream)
                continue
            with self._lock:
                self._latest[stream] = jpg.tobytes()
        self._pending.clear()
        return False

    def latest(self, stream: str) -> bytes | None:
        with self._lock:
            return self._latest.get(stream)

    def streams(self) -> list[str]:
        with self._lock:
            return sorted(self._latest)
