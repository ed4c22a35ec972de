from __future__ import annotations

import argparse
import json
import logging
import os
import signal
from dataclasses import asdict
from pathlib import Path

from wallfinder.core.calibration.boundary import BoundaryConfig, BoundaryDetector
from wallfinder.core.config.settings import load_settings, marker_color_from_settings
from wallfinder.core.errors import FrameTimeout
from wallfinder.core.loop import LoopControl, run_loop
from wallfinder.core.overlay.render import NullRenderer, OpenCVViewer
from wallfinder.core.session import CalibrationSession
from wallfinder.core.sources.base import FrameSource, make_source, save_frame_set

logger = logging.getLogger("wallfinder")


def _configure_logging(log_file: str | None, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        handler.setLevel(logging.DEBUG)
        logging.getLogger().addHandler(handler)


class _RecordingTap:
    """Wraps a source and writes every delivered frame set to disk."""

    def __init__(self, source: FrameSource, out_dir: Path) -> None:
        self._source = source
        self._out_dir = out_dir

    def __getattr__(self, name):
        return getattr(self._source, name)

    def wait_for_new_frame(self, timeout_us: int):
        frames = self._source.wait_for_new_frame(timeout_us)
        if frames is not None:
            save_frame_set(self._out_dir / f"frame_{frames.sequence:06d}.npz", frames)
        return frames


def _install_signal_handlers(control: LoopControl) -> None:
    signal.signal(signal.SIGINT, lambda _sig, _frame: control.request_shutdown())
    if hasattr(signal, "SIGUSR1"):
        signal.signal(signal.SIGUSR1, lambda _sig, _frame: control.request_pause_toggle())


def run(args) -> int:
    settings = load_settings()
    _configure_logging(args.log_file or settings.log_file or os.getenv("LOGFILE"), args.verbose)

    source: FrameSource = make_source(
        args.source or settings.frame_source,
        recording_path=args.recording or settings.recording_path,
        device_index=settings.device_index,
    )
    if args.record:
        source = _RecordingTap(source, Path(args.record))  # type: ignore[assignment]

    config = BoundaryConfig(
        give=settings.give if args.give is None else args.give,
        variance=settings.variance if args.variance is None else args.variance,
        edge_mode=args.edge_mode or settings.edge_mode,
    )
    session = CalibrationSession(
        detector=BoundaryDetector(config),
        marker_color=marker_color_from_settings(settings),
        marker_half_size=settings.marker_half_size,
        extract_region=settings.extract_region,
        show_calibration_square=settings.show_calibration_square,
        max_depth_mm=settings.max_depth_mm,
    )
    renderer = OpenCVViewer() if args.show else NullRenderer()
    control = LoopControl(source)
    _install_signal_handlers(control)

    outputs: list[dict] = []

    def _collect(summary) -> None:
        outputs.append(asdict(summary))
        b = summary.boundaries
        logger.info("L: %d R: %d T: %d B: %d", b.left, b.right, b.top, b.bottom)

    status = 0
    try:
        run_loop(
            source,
            session,
            renderer,
            control,
            timeout_us=settings.frame_timeout_us,
            max_frames=args.max_frames,
            on_summary=_collect,
        )
    except FrameTimeout:
        logger.error("timeout!")
        status = 1
    finally:
        source.close()
        if isinstance(renderer, OpenCVViewer):
            renderer.close()

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(outputs, f, indent=2)
    print(f"Wrote {len(outputs)} frame summaries to {out_path}")
    return status


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Find wall boundaries and track the marker")
    parser.add_argument("--output", required=True, help="Where to save JSON output")
    parser.add_argument("--source", choices=["synthetic", "recording", "openni"], default=None)
    parser.add_argument("--recording", default=None, help="Directory of .npz frame sets")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frame sets (0 = run until stopped)")
    parser.add_argument("--give", type=float, default=None, help="Reference tolerance")
    parser.add_argument("--variance", type=int, default=None, help="Averaging half-window")
    parser.add_argument("--edge-mode", choices=["nearer", "farther"], default=None)
    parser.add_argument("--show", action="store_true", help="Open OpenCV windows (q/ESC quits)")
    parser.add_argument("--record", default=None, help="Also save every frame set to this directory")
    parser.add_argument("--log-file", default=None, help="Append log output to this file")
    parser.add_argument("--verbose", action="store_true")
    raise SystemExit(run(parser.parse_args()))
