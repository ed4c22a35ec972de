import json
import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def _run(tmp_path: Path, *args: str) -> subprocess.CompletedProcess:
    env = os.environ.copy()
    env["PYTHONPATH"] = env.get("PYTHONPATH", ".") + os.pathsep + str(ROOT)
    env["WF_CONFIG"] = str(tmp_path / "missing.yml")
    cmd = [sys.executable, "-m", "wallfinder.tools.run_calibration", *args]
    return subprocess.run(cmd, env=env, cwd=ROOT, capture_output=True, text=True)


def test_run_calibration_cli_synthetic(tmp_path: Path):
    out_path = tmp_path / "out.json"
    record_dir = tmp_path / "rec"

    result = _run(
        tmp_path,
        "--output",
        str(out_path),
        "--source",
        "synthetic",
        "--max-frames",
        "3",
        "--record",
        str(record_dir),
    )
    assert result.returncode == 0, result.stderr
    assert "Wrote 3 frame summaries" in result.stdout

    data = json.loads(out_path.read_text())
    assert len(data) == 3
    assert data[0]["boundaries"] == {"left": 102, "right": 411, "top": 83, "bottom": 341}
    assert data[0]["phase"] == "tracking"
    assert data[1]["marker_found"] is True
    assert len(list(record_dir.glob("*.npz"))) == 3

    replay_path = tmp_path / "replay.json"
    result = _run(
        tmp_path,
        "--output",
        str(replay_path),
        "--source",
        "recording",
        "--recording",
        str(record_dir),
        "--max-frames",
        "2",
        "--give",
        "30",
    )
    assert result.returncode == 0, result.stderr
    replay = json.loads(replay_path.read_text())
    assert replay[0]["calibrated"] is True
    assert replay[0]["reference_value"] == 2070.0


def test_run_calibration_cli_bad_recording(tmp_path: Path):
    result = _run(
        tmp_path,
        "--output",
        str(tmp_path / "out.json"),
        "--source",
        "recording",
        "--recording",
        str(tmp_path / "nothing-here"),
    )
    assert result.returncode != 0
    assert "Recording directory not found" in result.stderr
