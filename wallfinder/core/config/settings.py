"""Runtime configuration.

Settings are loaded from YAML defaults and overridden by environment variables
prefixed with `WF_`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wallfinder.core.calibration.boundary import EDGE_MODES, BoundaryConfig
from wallfinder.core.marker.color import MarkerColor

FRAME_SOURCES = ("synthetic", "recording", "openni")


class WallFinderSettings(BaseSettings):
    """Runtime configuration loaded from YAML defaults and `WF_` env overrides."""

    frame_source: str = Field("synthetic", description="synthetic|recording|openni")
    # Directory of .npz frame sets for the "recording" source.
    recording_path: str | None = None
    device_index: int = 0
    # How long to wait for a frame set before giving up (microseconds).
    frame_timeout_us: int = 10_000_000

    # Boundary detection
    give: float = 20.0
    variance: int = 4
    edge_mode: str = Field("nearer", description="nearer|farther")
    extract_region: bool = True

    # Marker tracking
    red_threshold: int = 0xDD
    not_red_threshold: int = 0x33
    marker_half_size: int = 32

    # Display / streaming
    show_calibration_square: bool = False
    max_depth_mm: float = 4500.0
    jpeg_quality: int = 70
    # Optional cap for the processing loop. Use 0 or None to run as fast as frames arrive.
    target_fps: float | None = None

    log_file: str | None = None

    model_config = SettingsConfigDict(env_prefix="WF_", validate_assignment=True)

    @field_validator("frame_source")
    @classmethod
    def _validate_source(cls, v: str) -> str:
        if v not in FRAME_SOURCES:
            raise ValueError("frame_source must be synthetic|recording|openni")
        return v

    @field_validator("edge_mode")
    @classmethod
    def _validate_edge_mode(cls, v: str) -> str:
        v2 = str(v).strip().lower()
        if v2 not in EDGE_MODES:
            raise ValueError("edge_mode must be nearer|farther")
        return v2

    @field_validator("frame_timeout_us")
    @classmethod
    def _validate_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("frame_timeout_us must be > 0")
        return v

    @field_validator("give")
    @classmethod
    def _validate_give(cls, v: float) -> float:
        if v < 0:
            raise ValueError("give must be >= 0")
        return float(v)

    @field_validator("variance")
    @classmethod
    def _validate_variance(cls, v: int) -> int:
        if v < 1:
            raise ValueError("variance must be >= 1")
        return v

    @field_validator("red_threshold", "not_red_threshold")
    @classmethod
    def _validate_channel(cls, v: int) -> int:
        if not 0 <= v <= 0xFF:
            raise ValueError("color thresholds must be in [0, 255]")
        return v

    @field_validator("marker_half_size")
    @classmethod
    def _validate_half_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("marker_half_size must be >= 1")
        return v

    @field_validator("max_depth_mm")
    @classmethod
    def _validate_max_depth(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("max_depth_mm must be > 0")
        return float(v)

    @field_validator("jpeg_quality")
    @classmethod
    def _validate_jpeg_quality(cls, v: int) -> int:
        if not 10 <= v <= 100:
            raise ValueError("jpeg_quality must be in [10, 100]")
        return v

    @field_validator("target_fps")
    @classmethod
    def _validate_target_fps(cls, v: float | None) -> float | None:
        if v is None:
            return v
        if v < 0:
            raise ValueError("target_fps must be >= 0")
        return float(v)


def settings_to_dict(settings: WallFinderSettings) -> dict[str, Any]:
    return cast(dict[str, Any], settings.model_dump())


def _config_path() -> Path:
    """Return the YAML configuration path (defaults to config/wallfinder.config.yml)."""

    return Path(os.getenv("WF_CONFIG", "config/wallfinder.config.yml"))


def load_settings() -> WallFinderSettings:
    """Load settings from YAML and environment variables.

    YAML provides defaults; environment variables override.
    """

    data: dict[str, Any] = {}
    path = _config_path()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    env_settings = WallFinderSettings()
    env_overrides: dict[str, Any] = {
        name: getattr(env_settings, name) for name in env_settings.model_fields_set
    }

    merged = {**data, **env_overrides}
    return WallFinderSettings(**merged)


def boundary_config_from_settings(settings: WallFinderSettings) -> BoundaryConfig:
    return BoundaryConfig(
        give=float(settings.give),
        variance=int(settings.variance),
        edge_mode=settings.edge_mode,
    )


def marker_color_from_settings(settings: WallFinderSettings) -> MarkerColor:
    return MarkerColor(
        red_threshold=int(settings.red_threshold),
        not_red_threshold=int(settings.not_red_threshold),
    )
