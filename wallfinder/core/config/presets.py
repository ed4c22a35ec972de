from __future__ import annotations

from typing import Any


# Calibration presets.
#
# Notes:
# - give: tolerance between the averaged center depth and the edge trigger (mm)
# - variance: half-width of the averaging window (4 -> 8x8 samples)


PRESETS: dict[str, dict[str, Any]] = {
    # Kinect v2 depth at 512x424; tight tolerance for a clean wall.
    "kinect_v2": {
        "give": 20.0,
        "variance": 4,
        "edge_mode": "nearer",
    },
    # Noisy scenes: a wider margin avoids false edges from speckle.
    "loose": {
        "give": 40.0,
        "variance": 4,
        "edge_mode": "nearer",
    },
    # Larger averaging window for textured or partially reflective walls.
    "wide_window": {
        "give": 20.0,
        "variance": 8,
        "edge_mode": "nearer",
    },
}


PRESET_LABELS: dict[str, str] = {
    "kinect_v2": "Kinect v2",
    "loose": "Loose tolerance",
    "wide_window": "Wide window",
}


def list_presets() -> list[dict[str, Any]]:
    return [
        {
            "id": preset_id,
            "label": PRESET_LABELS.get(preset_id, preset_id),
            "settings": PRESETS[preset_id],
        }
        for preset_id in PRESETS.keys()
    ]


def preset_patch(preset_id: str) -> dict[str, Any]:
    if preset_id not in PRESETS:
        raise KeyError(preset_id)
    return dict(PRESETS[preset_id])
