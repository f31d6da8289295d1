"""Trail model and delimited trail-file loading."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

CLICK_TARGET_FIELDS = 5


class TrailLoadError(Exception):
    """The trail file could not be read at all."""


@dataclass(frozen=True)
class ClickTarget:
    element_type: str
    match_attribute: str
    match_value: str

    def to_selector(self) -> str:
        element = self.element_type.strip() or "*"
        attribute = self.match_attribute.strip().lstrip("@")
        literal = _xpath_literal(self.match_value)
        if attribute.lower() == "text":
            return f"//{element}[normalize-space(.)={literal}]"
        return f"//{element}[@{attribute}={literal}]"


@dataclass(frozen=True)
class TrailItem:
    label: str
    target_url: str
    click_target: ClickTarget | None = None


@dataclass(frozen=True)
class Trail:
    items: tuple[TrailItem, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> TrailItem:
        return self.items[index]

    def __iter__(self):
        return iter(self.items)

    def labels(self) -> list[str]:
        return [item.label for item in self.items]


def is_valid_url(text: str) -> bool:
    try:
        parsed = urlparse(text)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def load_trail(path: Path | str, delimiter: str = ",") -> Trail:
    trail_path = Path(path)
    try:
        with trail_path.open("r", encoding="utf-8", newline="") as fh:
            rows = list(csv.reader(fh, delimiter=delimiter, skipinitialspace=True))
    except OSError as exc:
        raise TrailLoadError(f"Cannot read trail file {trail_path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise TrailLoadError(f"Trail file {trail_path} is not UTF-8 text (byte {exc.start})") from exc
    except csv.Error as exc:
        raise TrailLoadError(f"Trail file {trail_path} is not delimited text: {exc}") from exc

    items: list[TrailItem] = []
    for line_no, row in enumerate(rows, start=1):
        item = parse_record(row, line_no=line_no)
        if item is not None:
            items.append(item)
    logger.info("loaded %d trail item(s) from %s", len(items), trail_path)
    return Trail(tuple(items))


def parse_record(row: list[str], *, line_no: int = 0) -> TrailItem | None:
    fields = [field.strip() for field in row]
    if not fields or not any(fields) or fields[0].startswith("#"):
        return None
    if len(fields) < 2:
        logger.warning("line %d: expected label and URL, got %r; skipped", line_no, row)
        return None

    label, url = fields[0], fields[1]
    if not is_valid_url(url):
        logger.warning("line %d: malformed URL %r; skipped", line_no, url)
        return None
    if not label:
        label = urlparse(url).path or url

    click_target = None
    if len(fields) >= CLICK_TARGET_FIELDS:
        click_target = ClickTarget(fields[2], fields[3], fields[4])
    elif len(fields) > 2:
        logger.warning(
            "line %d: incomplete click target (%d fields); loading %s without it",
            line_no,
            len(fields),
            url,
        )
    return TrailItem(label=label, target_url=url, click_target=click_target)


def _xpath_literal(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"
