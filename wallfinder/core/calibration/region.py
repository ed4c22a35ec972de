from __future__ import annotations

from wallfinder.core.errors import BoundaryNotFound, RegionOutOfBounds
from wallfinder.core.frames import CroppedRegion, DepthFrame
from wallfinder.core.types import BoundaryBox


def check_region(box: BoundaryBox, width: int, height: int) -> None:
    """Validate that `box` can be cropped out of a `width` x `height` frame."""

    if not box.calibrated:
        raise BoundaryNotFound(box.missing())
    if box.right <= box.left or box.bottom <= box.top:
        raise RegionOutOfBounds(f"inverted box {box}")
    if box.left < 0 or box.top < 0 or box.right > width or box.bottom > height:
        raise RegionOutOfBounds(f"box {box} exceeds {width}x{height} frame")


def extract_region(frame: DepthFrame, box: BoundaryBox) -> CroppedRegion:
    """Copy the samples strictly inside `box` into a standalone buffer.

    Rows `top+1 .. bottom-1` and columns `left+1 .. right-1` are copied in
    row-major order; the result does not share memory with `frame`.
    """

    check_region(box, frame.width, frame.height)
    data = frame.data[box.top + 1 : box.bottom, box.left + 1 : box.right].copy()
    h, w = data.shape
    return CroppedRegion(width=int(w), height=int(h), data=data)
