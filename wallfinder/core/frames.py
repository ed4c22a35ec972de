"""Sample buffers for depth and color frames.

Frames wrap a 2-D `numpy` array in row-major order so that the linear sample
index used by the scanning code is always `row * width + col`. `PixelView`
performs the bounds-checked conversion between the two addressing schemes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

Index = int | tuple[int, int]


class PixelView:
    """Bounds-checked read/write access to a row-major sample grid."""

    def __init__(self, data: np.ndarray) -> None:
        if data.ndim != 2:
            raise ValueError(f"expected a 2-D sample grid, got shape {data.shape}")
        if not data.flags.c_contiguous:
            raise ValueError("sample grid must be C-contiguous")
        self.data = data
        self.height, self.width = (int(v) for v in data.shape)
        self._flat = data.reshape(-1)

    @property
    def size(self) -> int:
        return self.width * self.height

    def index(self, row: int, col: int) -> int:
        """Convert `(row, col)` to a linear sample index."""

        if not (0 <= row < self.height and 0 <= col < self.width):
            raise IndexError(f"({row}, {col}) outside {self.width}x{self.height} frame")
        return row * self.width + col

    def position(self, index: int) -> tuple[int, int]:
        """Convert a linear sample index to `(row, col)`."""

        if not 0 <= index < self.size:
            raise IndexError(f"sample index {index} outside [0, {self.size})")
        row, col = divmod(int(index), self.width)
        return row, col

    def _linear(self, key: Index) -> int:
        if isinstance(key, tuple):
            return self.index(*key)
        if not 0 <= key < self.size:
            raise IndexError(f"sample index {key} outside [0, {self.size})")
        return int(key)

    def get(self, key: Index):
        return self._flat[self._linear(key)]

    def set(self, key: Index, value) -> None:
        self._flat[self._linear(key)] = value

    def take(self, indices: np.ndarray) -> np.ndarray:
        """Gather samples at an array of linear indices."""

        idx = np.asarray(indices, dtype=np.int64)
        if idx.size and (int(idx.min()) < 0 or int(idx.max()) >= self.size):
            raise IndexError(
                f"sample indices [{int(idx.min())}, {int(idx.max())}] outside [0, {self.size})"
            )
        return self._flat[idx]


@dataclass
class DepthFrame:
    """Range image: one float distance per sample, 0 meaning no return."""

    data: np.ndarray

    def __post_init__(self) -> None:
        self.data = np.ascontiguousarray(self.data, dtype=np.float32)
        if self.data.ndim != 2 or self.data.size == 0:
            raise ValueError(f"depth frame must be a non-empty 2-D array, got {self.data.shape}")

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @classmethod
    def from_buffer(cls, width: int, height: int, samples: Sequence[float] | np.ndarray) -> DepthFrame:
        arr = np.asarray(samples, dtype=np.float32)
        if arr.size != width * height:
            raise ValueError(f"expected {width * height} samples, got {arr.size}")
        return cls(arr.reshape(height, width))

    def view(self) -> PixelView:
        return PixelView(self.data)

    def copy(self) -> DepthFrame:
        return DepthFrame(self.data.copy())


@dataclass
class ColorFrame:
    """Color image with one packed `0xAARRGGBB` sample per pixel."""

    data: np.ndarray

    def __post_init__(self) -> None:
        self.data = np.ascontiguousarray(self.data, dtype=np.uint32)
        if self.data.ndim != 2 or self.data.size == 0:
            raise ValueError(f"color frame must be a non-empty 2-D array, got {self.data.shape}")

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @classmethod
    def from_buffer(cls, width: int, height: int, samples: Sequence[int] | np.ndarray) -> ColorFrame:
        arr = np.asarray(samples, dtype=np.uint32)
        if arr.size != width * height:
            raise ValueError(f"expected {width * height} samples, got {arr.size}")
        return cls(arr.reshape(height, width))

    @classmethod
    def from_bgr(cls, image: np.ndarray) -> ColorFrame:
        """Pack an OpenCV BGR `uint8` image into red/green/blue sample words."""

        if image.ndim != 3 or image.shape[2] < 3:
            raise ValueError(f"expected an HxWx3 BGR image, got {image.shape}")
        b = image[:, :, 0].astype(np.uint32)
        g = image[:, :, 1].astype(np.uint32)
        r = image[:, :, 2].astype(np.uint32)
        return cls((r << 16) | (g << 8) | b)

    def to_bgr(self) -> np.ndarray:
        """Unpack to an OpenCV BGR `uint8` image for display or encoding."""

        d = self.data
        return np.dstack(
            (
                (d & 0xFF).astype(np.uint8),
                ((d >> 8) & 0xFF).astype(np.uint8),
                ((d >> 16) & 0xFF).astype(np.uint8),
            )
        )

    def view(self) -> PixelView:
        return PixelView(self.data)

    def copy(self) -> ColorFrame:
        return ColorFrame(self.data.copy())


@dataclass
class CroppedRegion:
    """Depth samples copied out of a frame; owns its own array."""

    width: int
    height: int
    data: np.ndarray

    def view(self) -> PixelView:
        return PixelView(self.data)


@dataclass
class FrameSet:
    """Frames delivered together by a frame source for one processing step."""

    depth: DepthFrame | None
    color: ColorFrame | None
    sequence: int = 0
    timestamp: float = 0.0
