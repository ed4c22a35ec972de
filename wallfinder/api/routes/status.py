"""Calibration status and control endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from wallfinder.api.schemas.models import BoundarySchema, MarkerSchema, StatusSchema
from wallfinder.api.services.engine import CalibrationEngine
from wallfinder.api.services.state import get_engine

router = APIRouter()


@router.get("/status", response_model=StatusSchema)
def status(engine: CalibrationEngine = Depends(get_engine)) -> StatusSchema:
    """Return the current boundaries, marker rectangle and loop state."""

    summary = engine.latest_summary()
    if summary is None:
        return StatusSchema(
            phase="calibrating",
            calibrated=False,
            boundaries=BoundarySchema(left=0, right=0, top=0, bottom=0),
            fps=0.0,
            frame_id=0,
            paused=engine.paused,
            error=engine.last_error,
        )
    return StatusSchema(
        phase=summary.phase,
        calibrated=summary.calibrated,
        boundaries=BoundarySchema(**asdict(summary.boundaries)),
        reference_value=summary.reference_value,
        wall_depth=summary.wall_depth,
        marker=MarkerSchema(**asdict(summary.marker)) if summary.marker is not None else None,
        marker_found=summary.marker_found,
        fps=summary.fps,
        frame_id=summary.frame_id,
        paused=engine.paused,
        error=engine.last_error or summary.error,
    )


@router.post("/calibration/reset")
def reset_calibration(engine: CalibrationEngine = Depends(get_engine)) -> dict[str, str]:
    """Discard the current boundaries and start calibrating again."""

    engine.request_reset()
    return {"status": "reset requested"}


@router.post("/calibration/pause")
def toggle_pause(engine: CalibrationEngine = Depends(get_engine)) -> dict[str, bool]:
    """Pause or resume the frame source."""

    return {"paused": engine.toggle_pause()}
