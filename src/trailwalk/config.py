"""Walk configuration: defaults, properties file, environment, CLI flags."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

ENV_PREFIX = "TRAILWALK_"
DEFAULT_SLEEP_SECONDS = 25.0
DEFAULT_NAVIGATION_TIMEOUT_SECONDS = 30.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class WalkConfig:
    trail_file: Path = Path("trail.csv")
    sleep_seconds: float = DEFAULT_SLEEP_SECONDS
    profile: str = ""
    delimiter: str = ","
    dump_screens: bool = False
    dump_root: Path = Path("runs") / "screens"
    headless: bool = False
    navigation_timeout_seconds: float = DEFAULT_NAVIGATION_TIMEOUT_SECONDS
    runs_dir: Path = Path("runs")


def load_config(
    config_path: Path | None = None,
    *,
    overrides: dict[str, Any] | None = None,
    environ: dict[str, str] | None = None,
) -> WalkConfig:
    raw: dict[str, str] = {}
    if config_path is not None:
        raw.update(read_properties(config_path))
    env = os.environ if environ is None else environ
    for field in fields(WalkConfig):
        value = env.get(ENV_PREFIX + field.name.upper())
        if value is not None:
            raw[field.name] = value

    config = WalkConfig()
    updates: dict[str, Any] = {}
    for key, value in raw.items():
        updates[key] = _coerce(key, value)
    for key, value in (overrides or {}).items():
        if value is not None:
            updates[key] = _coerce(key, value) if isinstance(value, str) else value
    config = replace(config, **updates)
    if config.sleep_seconds <= 0:
        config = replace(config, sleep_seconds=DEFAULT_SLEEP_SECONDS)
    if config.navigation_timeout_seconds <= 0:
        config = replace(config, navigation_timeout_seconds=DEFAULT_NAVIGATION_TIMEOUT_SECONDS)
    return config


def read_properties(path: Path) -> dict[str, str]:
    """Parse ``key = value`` lines; ``#`` and ``!`` start comments."""
    if not path.exists():
        raise SystemExit(f"Config file not found: {path}")
    known = {field.name for field in fields(WalkConfig)}
    values: dict[str, str] = {}
    with path.open("r", encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            text = line.strip()
            if not text or text[0] in "#!":
                continue
            sep = min((i for i in (text.find("="), text.find(":")) if i >= 0), default=-1)
            if sep < 0:
                raise SystemExit(f"{path}:{line_no}: expected 'key = value'")
            key = text[:sep].strip().lower().replace("-", "_")
            if key not in known:
                raise SystemExit(f"{path}:{line_no}: unknown setting '{key}'")
            values[key] = text[sep + 1:].strip()
    return values


def _coerce(key: str, value: str) -> Any:
    if key in ("sleep_seconds", "navigation_timeout_seconds"):
        try:
            return float(value)
        except ValueError:
            raise SystemExit(f"Invalid number for {key}: {value!r}") from None
    if key in ("dump_screens", "headless"):
        low = value.strip().lower()
        if low in _TRUE_VALUES:
            return True
        if low in _FALSE_VALUES:
            return False
        raise SystemExit(f"Invalid boolean for {key}: {value!r}")
    if key in ("trail_file", "dump_root", "runs_dir"):
        return Path(value)
    if key == "delimiter":
        if value in ("\\t", "tab"):
            return "\t"
        return value or ","
    return value
