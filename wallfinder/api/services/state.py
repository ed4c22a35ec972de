"""In-process state for settings and the calibration engine.

FastAPI routes use this module to access (and hot-reload) the singleton
`CalibrationEngine` instance.
"""

from __future__ import annotations

from threading import RLock

from wallfinder.api.services.engine import CalibrationEngine
from wallfinder.core.config.settings import WallFinderSettings, load_settings, settings_to_dict

_settings: WallFinderSettings | None = None
_engine: CalibrationEngine | None = None
_lock = RLock()


def get_settings() -> WallFinderSettings:
    """Return cached settings, loading them on first use."""

    global _settings
    with _lock:
        if _settings is None:
            _settings = load_settings()
    return _settings


def reload_settings(data: dict | None = None) -> WallFinderSettings:
    """Apply a settings patch and restart a running engine with the result.

    A patch is merged onto the live settings, so fields changed by earlier
    calls (a `POST /config`, another preset) survive. Without a patch the
    settings are re-read from YAML and the environment.

    Raises:
        ValueError: the merged settings fail validation; nothing changes.
    """

    global _settings, _engine
    with _lock:
        if data:
            current = _settings if _settings is not None else load_settings()
            updated = WallFinderSettings(**{**settings_to_dict(current), **data})
        else:
            updated = load_settings()
        _settings = updated
        if _engine is not None:
            _engine.stop()
            _engine = CalibrationEngine(updated)
            _engine.start()
    return updated


def get_engine() -> CalibrationEngine:
    """Return the singleton engine instance, creating and starting it if needed."""

    global _engine
    with _lock:
        if _engine is None:
            _engine = CalibrationEngine(get_settings())
            _engine.start()
    return _engine


def engine_status() -> dict[str, str | None]:
    """Describe the engine without creating or starting it."""

    with _lock:
        engine = _engine
    if engine is None:
        return {"engine": "idle", "error": None}
    if engine.paused:
        state = "paused"
    else:
        state = "running" if engine.running else "stopped"
    return {"engine": state, "error": engine.last_error}


def stop_engine() -> None:
    """Stop and discard the singleton engine instance (if present)."""

    global _engine
    with _lock:
        if _engine is not None:
            _engine.stop()
            _engine = None
