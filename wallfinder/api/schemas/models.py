"""Pydantic models for the HTTP/WS API."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class BoundarySchema(BaseModel):
    """Wall boundaries in depth-frame samples (0 = not found)."""

    left: int
    right: int
    top: int
    bottom: int


class MarkerSchema(BaseModel):
    """Marker rectangle in color-frame samples."""

    left_pos: int
    right_pos: int
    top_pos: int
    bottom_pos: int


class StatusSchema(BaseModel):
    """Calibration/tracking status payload."""

    phase: str
    calibrated: bool
    boundaries: BoundarySchema
    reference_value: float | None = None
    wall_depth: float | None = None
    marker: MarkerSchema | None = None
    marker_found: bool = False
    fps: float
    frame_id: int
    paused: bool = False
    error: str | None = None


class ConfigSchema(BaseModel):
    """Runtime configuration payload."""

    frame_source: str
    recording_path: str | None = None
    device_index: int = Field(default=0, ge=0)
    frame_timeout_us: int = Field(default=10_000_000, gt=0)
    give: float = Field(default=20.0, ge=0.0)
    variance: int = Field(default=4, ge=1)
    edge_mode: str = "nearer"
    extract_region: bool = True
    red_threshold: int = Field(default=0xDD, ge=0, le=0xFF)
    not_red_threshold: int = Field(default=0x33, ge=0, le=0xFF)
    marker_half_size: int = Field(default=32, ge=1)
    show_calibration_square: bool = False
    max_depth_mm: float = Field(default=4500.0, gt=0.0)
    jpeg_quality: int = Field(default=70, ge=10, le=100)
    target_fps: float | None = Field(default=None, ge=0)

    @field_validator("frame_source")
    @classmethod
    def _validate_source(cls, v: str) -> str:
        if v not in {"synthetic", "recording", "openni"}:
            raise ValueError("frame_source must be synthetic|recording|openni")
        return v

    @field_validator("edge_mode")
    @classmethod
    def _validate_edge_mode(cls, v: str) -> str:
        v2 = str(v).strip().lower()
        if v2 not in {"nearer", "farther"}:
            raise ValueError("edge_mode must be nearer|farther")
        return v2
