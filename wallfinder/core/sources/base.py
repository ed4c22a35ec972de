"""Frame source abstractions.

The processing loop consumes frame sets through a small interface
(`FrameSource`) so the device (OpenNI sensor, recording, synthetic scene) can
be swapped without affecting calibration or tracking.

A frame set handed out by `wait_for_new_frame()` is borrowed: it must be given
back with `release()` before the next one is requested.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path

import cv2
import numpy as np

from wallfinder.core.frames import ColorFrame, DepthFrame, FrameSet
from wallfinder.core.marker.color import MARKER_FILL

logger = logging.getLogger(__name__)


class FrameSource(ABC):
    """Base interface for anything that can produce depth/color frame sets."""

    def __init__(self) -> None:
        self._outstanding: FrameSet | None = None
        self._sequence = 0
        self.running = False

    def start(self) -> bool:
        """Start (or resume) frame delivery."""

        self.running = True
        return True

    def stop(self) -> None:
        """Pause frame delivery; `start()` resumes."""

        self.running = False

    @abstractmethod
    def _next(self, timeout_s: float) -> FrameSet | None:
        """Produce the next frame set, or `None` on timeout."""

        raise NotImplementedError

    def wait_for_new_frame(self, timeout_us: int) -> FrameSet | None:
        """Block up to `timeout_us` microseconds for a new frame set."""

        if self._outstanding is not None:
            raise RuntimeError("previous frame set was not released")
        if not self.running:
            time.sleep(min(timeout_us / 1_000_000.0, 0.05))
            return None
        frames = self._next(timeout_us / 1_000_000.0)
        if frames is None:
            return None
        self._sequence += 1
        frames.sequence = self._sequence
        if not frames.timestamp:
            frames.timestamp = time.time()
        self._outstanding = frames
        return frames

    def release(self, frames: FrameSet) -> None:
        """Give a frame set back to the source."""

        if frames is not self._outstanding:
            raise RuntimeError("released a frame set that is not outstanding")
        self._outstanding = None

    def close(self) -> None:
        """Release any underlying resources."""

        self.stop()
        self._outstanding = None


class SyntheticSource(FrameSource):
    """Generated scene: a flat wall framed by nearer surroundings plus a moving red marker.

    Useful for demos and tests without a sensor attached.
    """

    def __init__(
        self,
        depth_size: tuple[int, int] = (512, 424),
        color_size: tuple[int, int] = (1920, 1080),
        wall_depth: float = 2100.0,
        surround_depth: float = 2000.0,
        wall_margin: float = 0.2,
        marker_half: int = 12,
        marker_speed: int = 8,
        noise_std: float = 0.0,
        dropout: float = 0.0,
        fps: float | None = None,
        seed: int = 0,
    ) -> None:
        super().__init__()
        self.depth_size = depth_size
        self.color_size = color_size
        self.wall_depth = float(wall_depth)
        self.surround_depth = float(surround_depth)
        self.marker_half = int(marker_half)
        self.marker_speed = int(marker_speed)
        self.noise_std = float(noise_std)
        self.dropout = float(dropout)
        self.fps = fps
        self._rng = np.random.default_rng(seed)
        self._last_at: float | None = None

        dw, dh = depth_size
        mx = int(dw * wall_margin)
        my = int(dh * wall_margin)
        # Wall rectangle in depth coordinates (inclusive cols/rows).
        self.wall_cols = (mx, dw - 1 - mx)
        self.wall_rows = (my, dh - 1 - my)
        cw, ch = color_size
        self._marker_x = cw // 2
        self._marker_y = ch // 2
        self._marker_dx = self.marker_speed

    def depth_frame(self) -> DepthFrame:
        dw, dh = self.depth_size
        data = np.full((dh, dw), self.surround_depth, dtype=np.float32)
        c0, c1 = self.wall_cols
        r0, r1 = self.wall_rows
        data[r0 : r1 + 1, c0 : c1 + 1] = self.wall_depth
        if self.noise_std > 0:
            data += self._rng.normal(0.0, self.noise_std, size=data.shape).astype(np.float32)
        if self.dropout > 0:
            data[self._rng.random(size=data.shape) < self.dropout] = 0.0
        return DepthFrame(data)

    def color_frame(self) -> ColorFrame:
        cw, ch = self.color_size
        data = np.full((ch, cw), 0x00808080, dtype=np.uint32)
        half = self.marker_half
        x, y = self._marker_x, self._marker_y
        data[max(0, y - half) : y + half, max(0, x - half) : x + half] = MARKER_FILL
        return ColorFrame(data)

    def _advance_marker(self) -> None:
        cw, _ch = self.color_size
        sx = cw / float(self.depth_size[0])
        lo = int(self.wall_cols[0] * sx) + self.marker_half + 2
        hi = int(self.wall_cols[1] * sx) - self.marker_half - 2
        nx = self._marker_x + self._marker_dx
        if nx < lo or nx > hi:
            self._marker_dx = -self._marker_dx
            nx = self._marker_x + self._marker_dx
        self._marker_x = max(lo, min(hi, nx))

    def _next(self, timeout_s: float) -> FrameSet | None:
        if self.fps and self.fps > 0 and self._last_at is not None:
            delay = (1.0 / self.fps) - (time.perf_counter() - self._last_at)
            if delay > timeout_s:
                time.sleep(timeout_s)
                return None
            if delay > 0:
                time.sleep(delay)
        self._last_at = time.perf_counter()
        frames = FrameSet(depth=self.depth_frame(), color=self.color_frame())
        self._advance_marker()
        return frames


class RecordingSource(FrameSource):
    """Replays `.npz` frame sets from a directory; loops when the end is reached."""

    def __init__(self, path: str) -> None:
        super().__init__()
        self._path = Path(path)
        if not self._path.is_dir():
            raise RuntimeError(f"Recording directory not found: {path}")
        self._files = sorted(self._path.glob("*.npz"))
        if not self._files:
            raise RuntimeError(f"No .npz frame sets in {path}")
        self._pos = 0

    def _next(self, timeout_s: float) -> FrameSet | None:
        if self._pos >= len(self._files):
            logger.debug("Recording exhausted, rewinding %s", self._path)
            self._pos = 0
        path = self._files[self._pos]
        self._pos += 1
        return load_frame_set(path)


class OpenNISource(FrameSource):
    """Depth sensor opened through OpenCV's OpenNI2 backend."""

    def __init__(self, index: int = 0) -> None:
        super().__init__()
        self._index = int(index)
        self.cap: cv2.VideoCapture | None = None
        self._open()

    def _open(self) -> None:
        cap = cv2.VideoCapture(self._index, cv2.CAP_OPENNI2)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(f"Failed to open OpenNI device: {self._index}")
        self.cap = cap
        logger.info("Opened OpenNI device index=%s", self._index)

    def start(self) -> bool:
        if self.cap is None:
            try:
                self._open()
            except RuntimeError:
                logger.exception("Failed to resume OpenNI device")
                return False
        return super().start()

    def stop(self) -> None:
        # OpenCV has no stream pause; release the device and reopen on start().
        super().stop()
        if self.cap is not None:
            self.cap.release()
            self.cap = None

    def _next(self, timeout_s: float) -> FrameSet | None:
        # cv2 grab() blocks in the driver; the timeout cannot be enforced here.
        if self.cap is None or not self.cap.grab():
            return None
        ok_d, depth = self.cap.retrieve(flag=cv2.CAP_OPENNI_DEPTH_MAP)
        ok_c, bgr = self.cap.retrieve(flag=cv2.CAP_OPENNI_BGR_IMAGE)
        if not ok_d or depth is None:
            return None
        color = ColorFrame.from_bgr(bgr) if ok_c and bgr is not None else None
        return FrameSet(depth=DepthFrame(depth.astype(np.float32)), color=color)


def save_frame_set(path: str | Path, frames: FrameSet) -> Path:
    """Write a frame set as a compressed `.npz` readable by `RecordingSource`."""

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    arrays: dict[str, np.ndarray] = {}
    if frames.depth is not None:
        arrays["depth"] = frames.depth.data
    if frames.color is not None:
        arrays["color"] = frames.color.data
    np.savez_compressed(out, **arrays)
    return out


def load_frame_set(path: str | Path) -> FrameSet:
    with np.load(path) as npz:
        depth = DepthFrame(npz["depth"]) if "depth" in npz.files else None
        color = ColorFrame(npz["color"]) if "color" in npz.files else None
    return FrameSet(depth=depth, color=color)


def make_source(
    frame_source: str,
    recording_path: str | None = None,
    device_index: int = 0,
) -> FrameSource:
    """Instantiate the configured `FrameSource`."""

    if frame_source == "recording":
        if not recording_path:
            raise RuntimeError("frame_source=recording requires recording_path")
        return RecordingSource(recording_path)
    if frame_source == "openni":
        return OpenNISource(device_index)
    return SyntheticSource(fps=30.0)
