from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from wallfinder.core.frames import ColorFrame, DepthFrame, FrameSet
from wallfinder.core.marker.color import MARKER_FILL
from wallfinder.core.sources import base as sources
from wallfinder.core.sources.base import (
    RecordingSource,
    SyntheticSource,
    load_frame_set,
    make_source,
    save_frame_set,
)


def test_synthetic_depth_frame_has_wall_and_surround():
    src = SyntheticSource(depth_size=(64, 48), color_size=(128, 96))
    depth = src.depth_frame()

    assert (depth.width, depth.height) == (64, 48)
    assert src.wall_cols == (12, 51)
    assert src.wall_rows == (9, 38)
    assert depth.data[24, 32] == 2100.0
    assert depth.data[24, 11] == 2000.0


def test_synthetic_color_frame_has_centered_marker():
    src = SyntheticSource(depth_size=(64, 48), color_size=(128, 96), marker_half=4)
    color = src.color_frame()

    assert int(color.data[48, 64]) == MARKER_FILL
    assert int((color.data == MARKER_FILL).sum()) == 64
    assert int(color.data[0, 0]) == 0x00808080


def test_synthetic_dropout_produces_invalid_samples():
    src = SyntheticSource(depth_size=(64, 48), dropout=0.5, seed=1)
    assert int((src.depth_frame().data == 0).sum()) > 0


def test_frames_must_be_released_before_next():
    src = SyntheticSource(depth_size=(64, 48), color_size=(128, 96))
    src.start()

    first = src.wait_for_new_frame(1_000_000)
    assert first is not None
    assert first.sequence == 1
    assert first.timestamp > 0
    with pytest.raises(RuntimeError):
        src.wait_for_new_frame(1_000_000)

    src.release(first)
    second = src.wait_for_new_frame(1_000_000)
    assert second is not None
    assert second.sequence == 2
    with pytest.raises(RuntimeError):
        src.release(first)


def test_stopped_source_returns_none():
    src = SyntheticSource(depth_size=(64, 48), color_size=(128, 96))
    assert src.wait_for_new_frame(1000) is None


def test_synthetic_marker_stays_inside_wall():
    src = SyntheticSource(depth_size=(64, 48), color_size=(128, 96), marker_half=4, marker_speed=8)
    src.start()
    for _ in range(40):
        frames = src.wait_for_new_frame(1_000_000)
        assert frames is not None
        cols = np.flatnonzero((frames.color.data == MARKER_FILL).any(axis=0))
        assert cols.min() >= 24
        assert cols.max() <= 102
        src.release(frames)


def test_recording_round_trip_and_loop(tmp_path: Path):
    for i in range(2):
        frames = FrameSet(
            depth=DepthFrame(np.full((4, 6), float(i + 1), dtype=np.float32)),
            color=ColorFrame(np.full((8, 12), i, dtype=np.uint32)),
        )
        save_frame_set(tmp_path / f"frame_{i:06d}.npz", frames)

    loaded = load_frame_set(tmp_path / "frame_000001.npz")
    assert loaded.depth is not None and loaded.depth.data[0, 0] == 2.0
    assert loaded.color is not None and loaded.color.data.shape == (8, 12)

    src = RecordingSource(str(tmp_path))
    src.start()
    seen = []
    for _ in range(3):
        frames = src.wait_for_new_frame(1000)
        assert frames is not None
        seen.append(float(frames.depth.data[0, 0]))
        src.release(frames)
    assert seen == [1.0, 2.0, 1.0]


def test_recording_without_color(tmp_path: Path):
    save_frame_set(tmp_path / "depth_only.npz", FrameSet(depth=DepthFrame(np.ones((4, 6))), color=None))
    assert load_frame_set(tmp_path / "depth_only.npz").color is None


def test_recording_errors(tmp_path: Path):
    with pytest.raises(RuntimeError):
        RecordingSource(str(tmp_path / "missing"))
    with pytest.raises(RuntimeError):
        RecordingSource(str(tmp_path))


def test_make_source_variants(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    assert isinstance(make_source("synthetic"), SyntheticSource)

    with pytest.raises(RuntimeError):
        make_source("recording")

    save_frame_set(tmp_path / "a.npz", FrameSet(depth=DepthFrame(np.ones((4, 6))), color=None))
    assert isinstance(make_source("recording", recording_path=str(tmp_path)), RecordingSource)

    monkeypatch.setattr(sources, "OpenNISource", lambda index: ("openni", index))
    assert make_source("openni", device_index=2) == ("openni", 2)


class FakeCapture:
    def __init__(self, index, api) -> None:
        self.index = index
        self.api = api
        self.released = False

    def isOpened(self) -> bool:
        return self.index == 0

    def release(self) -> None:
        self.released = True

    def grab(self) -> bool:
        return True

    def retrieve(self, flag=None):
        if flag == sources.cv2.CAP_OPENNI_DEPTH_MAP:
            return True, np.full((4, 6), 1500, dtype=np.uint16)
        return True, np.zeros((4, 6, 3), dtype=np.uint8)


def test_openni_source_reads_depth_and_color(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(sources.cv2, "VideoCapture", FakeCapture)

    src = sources.OpenNISource(0)
    src.start()
    frames = src.wait_for_new_frame(1000)

    assert frames is not None
    assert frames.depth.data.dtype == np.float32
    assert frames.depth.data[0, 0] == 1500.0
    assert frames.color is not None and frames.color.data.shape == (4, 6)
    src.release(frames)

    cap = src.cap
    src.stop()
    assert cap.released is True
    assert src.cap is None
    assert src.start() is True
    assert src.cap is not None


def test_openni_source_open_failure(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(sources.cv2, "VideoCapture", FakeCapture)
    with pytest.raises(RuntimeError):
        sources.OpenNISource(1)
