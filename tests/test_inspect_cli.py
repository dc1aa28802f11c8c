from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
SCRIPT = REPO_ROOT / "scripts" / "inspect_s2_cell.py"


def test_cli_prints_volume(s2_token: str):
    cmd = [sys.executable, str(SCRIPT), "--token", s2_token, "--max-height", "500"]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 0, proc.stderr
    assert "Cell: S2Cell(token=" in proc.stdout
    assert "v7" in proc.stdout
    assert "Bounding sphere radius:" in proc.stdout


def test_cli_queries_and_json(s2_token: str, tmp_path: Path):
    out = tmp_path / "summary.json"
    cmd = [
        sys.executable,
        str(SCRIPT),
        "--token", s2_token,
        "--max-height", "100",
        "--point", "0", "0", "0",
        "--plane", "0", "0", "2", "2e9",
        "--no-coarse",
        "--json", str(out),
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 0, proc.stderr
    assert "Distance from" in proc.stdout
    assert ": inside" in proc.stdout
    assert "Bounding sphere radius:" not in proc.stdout

    summary = json.loads(out.read_text())
    assert summary["token"] == s2_token
    assert summary["distances"][0]["distance"] > 6.0e6
    assert summary["classifications"][0]["result"] == "inside"


def test_cli_rejects_bad_token():
    cmd = [sys.executable, str(SCRIPT), "--token", "not-a-token"]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 2
    assert "token" in proc.stderr.lower()
