"""Run folders for placement replays.

Layout of one run::

    <runs_root>/<YYYYmmdd_HHMMSS>_<name>/
        input/              candidate file, plus existing/ when bulk-loading
        artifacts/          accepted.geojson, decisions.json, decision log + chain
        manifest.json
        metrics.json
        summary.md

``<runs_root>/latest`` points at the most recent run.
"""

from __future__ import annotations

import json
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from shape_guard.audit import DECISION_LOG_NAME, HASH_CHAIN_NAME

LATEST_NAME = "latest"


@dataclass(frozen=True)
class PlacementRun:
    """Paths of a single placement run, all derived from ``root``."""

    run_id: str
    root: Path

    @property
    def input_dir(self) -> Path:
        return self.root / "input"

    @property
    def artifacts_dir(self) -> Path:
        return self.root / "artifacts"

    @property
    def accepted_geojson(self) -> Path:
        return self.artifacts_dir / "accepted.geojson"

    @property
    def decisions(self) -> Path:
        return self.artifacts_dir / "decisions.json"

    @property
    def decision_log(self) -> Path:
        return self.artifacts_dir / DECISION_LOG_NAME

    @property
    def hash_chain(self) -> Path:
        return self.artifacts_dir / HASH_CHAIN_NAME

    @property
    def manifest(self) -> Path:
        return self.root / "manifest.json"

    @property
    def metrics(self) -> Path:
        return self.root / "metrics.json"

    @property
    def summary(self) -> Path:
        return self.root / "summary.md"

    def artifact_index(self) -> Dict[str, str]:
        """Artifact paths as recorded in ``manifest.json``."""
        return {
            "accepted_geojson": str(self.accepted_geojson),
            "decisions": str(self.decisions),
            "decision_log": str(self.decision_log),
            "decision_hash_chain": str(self.hash_chain),
            "metrics": str(self.metrics),
            "summary": str(self.summary),
        }


def run_id_for(name: str, now: Optional[datetime] = None) -> str:
    """``<UTC stamp>_<name slug>``; the slug falls back to ``run``."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d_%H%M%S")
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "run"
    return f"{stamp}_{slug}"


def open_run(runs_root: str | Path, name: str) -> PlacementRun:
    run_id = run_id_for(name)
    run = PlacementRun(run_id=run_id, root=Path(runs_root) / run_id)
    run.input_dir.mkdir(parents=True, exist_ok=True)
    run.artifacts_dir.mkdir(parents=True, exist_ok=True)
    return run


def stage_input(run: PlacementRun, source: str | Path, subdir: Optional[str] = None) -> Path:
    """Copy a GeoJSON input under ``input/`` (or ``input/<subdir>/``)."""
    target_dir = run.input_dir / subdir if subdir else run.input_dir
    target_dir.mkdir(parents=True, exist_ok=True)
    src = Path(source)
    dst = target_dir / src.name
    shutil.copy2(src, dst)
    return dst


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def point_latest(runs_root: str | Path, run: PlacementRun) -> Path:
    """Repoint ``<runs_root>/latest`` at *run*.

    Uses a relative symlink; where symlinks are unavailable ``latest`` becomes
    a directory holding ``latest_run.txt`` with the run id.
    """
    latest = Path(runs_root) / LATEST_NAME
    if latest.is_symlink() or latest.is_file():
        latest.unlink()
    elif latest.is_dir():
        shutil.rmtree(latest)

    try:
        latest.symlink_to(run.root.name, target_is_directory=True)
    except OSError:
        latest.mkdir()
        (latest / "latest_run.txt").write_text(run.run_id + "\n", encoding="utf-8")
    return latest
