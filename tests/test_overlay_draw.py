import numpy as np

from wallfinder.core.frames import ColorFrame, DepthFrame
from wallfinder.core.overlay import draw
from wallfinder.core.overlay import render as render_mod
from wallfinder.core.overlay.render import JpegStreamRenderer, NullRenderer, OpenCVViewer
from wallfinder.core.types import BoundaryBox, FrameSummary, MarkerBox


def _summary(box: BoundaryBox, marker: MarkerBox | None = None) -> FrameSummary:
    return FrameSummary(
        frame_id=1,
        timestamp=0.0,
        phase="tracking" if box.calibrated else "calibrating",
        boundaries=box,
        calibrated=box.calibrated,
        marker=marker,
    )


def test_depth_to_bgr_scales_and_clips():
    frame = DepthFrame(np.array([[0.0, 2250.0, 9000.0]], dtype=np.float32))
    img = draw.depth_to_bgr(frame, max_depth_mm=4500.0)
    assert img.shape == (1, 3, 3)
    assert img[0, :, 0].tolist() == [0, 127, 255]


def test_draw_boundaries_calibrated_draws_rectangle():
    img = np.zeros((48, 64, 3), dtype=np.uint8)
    draw.draw_boundaries(img, BoundaryBox(left=10, right=50, top=8, bottom=40))
    assert tuple(img[8, 30]) == draw.WALL_COLOR
    assert tuple(img[24, 30]) == (0, 0, 0)


def test_draw_boundaries_partial_draws_found_sides_only():
    img = np.zeros((48, 64, 3), dtype=np.uint8)
    draw.draw_boundaries(img, BoundaryBox(left=10))
    assert tuple(img[0, 10]) == draw.WALL_COLOR
    assert tuple(img[47, 10]) == draw.WALL_COLOR
    assert int(img[:, 11:].sum()) == 0


def test_render_depth_and_color():
    depth = DepthFrame(np.full((48, 64), 2000.0, dtype=np.float32))
    summary = _summary(
        BoundaryBox(left=10, right=50, top=8, bottom=40),
        MarkerBox(left_pos=20, right_pos=40, top_pos=20, bottom_pos=40),
    )
    img = draw.render_depth(depth, summary)
    assert img.shape == (48, 64, 3)

    color = ColorFrame(np.zeros((96, 128), dtype=np.uint32))
    out = draw.render_color(color, summary)
    assert out.shape == (96, 128, 3)
    assert tuple(out[20, 30]) == draw.MARKER_COLOR


def test_null_renderer_never_quits():
    r = NullRenderer()
    r.submit("depth", np.zeros((2, 2, 3), dtype=np.uint8))
    assert r.render() is False


def test_jpeg_stream_renderer_keeps_latest():
    r = JpegStreamRenderer(jpeg_quality=80)
    assert r.latest("depth") is None

    r.submit("depth", np.zeros((16, 16, 3), dtype=np.uint8))
    r.submit("color", np.full((16, 16, 3), 255, dtype=np.uint8))
    assert r.render() is False

    assert r.streams() == ["color", "depth"]
    assert r.latest("depth")[:2] == b"\xff\xd8"


def test_opencv_viewer_shows_and_quits(monkeypatch):
    shown = []
    destroyed = []
    keys = iter([-1, ord("q")])
    monkeypatch.setattr(render_mod.cv2, "imshow", lambda name, img: shown.append(name))
    monkeypatch.setattr(render_mod.cv2, "waitKey", lambda delay: next(keys))
    monkeypatch.setattr(render_mod.cv2, "destroyWindow", lambda name: destroyed.append(name))

    viewer = OpenCVViewer()
    viewer.submit("depth", np.zeros((2, 2, 3), dtype=np.uint8))
    assert viewer.render() is False
    assert viewer.render() is True
    assert shown == ["wallfinder:depth"]

    viewer.close()
    assert destroyed == ["wallfinder:depth"]
