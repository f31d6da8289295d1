"""File storage helpers for walk runs."""

from __future__ import annotations

import json
import logging
import os
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable


RUNS_DIR = Path("runs")
STATUS_FILE = "status.json"
LOG_FILE = "walk.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
MAX_RUNS_PER_SECOND = 100
MAX_DUMP_DIRS = 9999


@dataclass(frozen=True)
class RunContext:
    run_id: str
    run_dir: Path
    walk_log: Path
    status_path: Path


def create_run_context(runs_dir: Path = RUNS_DIR) -> RunContext:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    names = (f"{stamp}-{n:02d}" if n else stamp for n in range(MAX_RUNS_PER_SECOND))
    run_dir = _claim_dir(runs_dir, names)
    return RunContext(
        run_id=run_dir.name,
        run_dir=run_dir,
        walk_log=run_dir / LOG_FILE,
        status_path=runs_dir / STATUS_FILE,
    )


def allocate_dump_dir(root: Path, prefix: str = "dump") -> Path:
    return _claim_dir(root, (f"{prefix}-{n:04d}" for n in range(1, MAX_DUMP_DIRS + 1)))


def _claim_dir(parent: Path, names: Iterable[str]) -> Path:
    """Create the first of ``names`` under ``parent`` that nobody holds yet."""
    parent.mkdir(parents=True, exist_ok=True)
    for name in names:
        candidate = parent / name
        try:
            candidate.mkdir()
        except FileExistsError:
            continue
        return candidate
    raise RuntimeError(f"No free directory name left under {parent}")


def attach_log_file(path: Path, level: int = logging.INFO) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("trailwalk")
    if root.level == logging.NOTSET or root.level > level:
        root.setLevel(level)
    root.addHandler(handler)
    return handler


def write_json(path: Path, payload: dict[str, Any]) -> None:
    # Readers of status.json must never see a half-written file.
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
    tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    os.replace(tmp, path)


def write_status(
    *,
    run_id: str,
    run_dir: Path,
    status_text: str,
    run_state: str,
    position: int,
    trail_length: int,
    status_path: Path = RUNS_DIR / STATUS_FILE,
) -> None:
    payload: dict[str, Any] = {
        "run_id": run_id,
        "run_dir": str(run_dir),
        "status": status_text,
        "state": run_state,
        "position": position,
        "trail_length": trail_length,
        "walk_log": str(run_dir / LOG_FILE),
        "updated_at_utc": datetime.now(timezone.utc).isoformat(),
    }
    write_json(status_path, payload)


def status_payload(runs_dir: Path = RUNS_DIR) -> dict[str, Any]:
    path = runs_dir / STATUS_FILE
    if not path.exists():
        return {"status": "no-runs"}
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def tail_lines(path: Path, line_count: int) -> list[str]:
    if line_count <= 0 or not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="replace") as fh:
        return [line.rstrip("\n") for line in deque(fh, maxlen=line_count)]
