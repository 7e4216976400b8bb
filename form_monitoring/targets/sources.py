"""Configuration sources that yield target records for a run."""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, Union

import httpx
import structlog
import yaml

from form_monitoring.errors import SourceError, TargetRecordError
from form_monitoring.sheets import SheetsConfig, get_values
from form_monitoring.targets.records import (
    DEFAULT_LABEL,
    ROW_COLUMNS,
    TargetRecord,
    target_from_mapping,
    target_from_row,
)


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RejectedTarget:
    """A configuration entry that failed validation; still reported as a failed run."""
    url: str
    label: str
    error: str


LoadedTarget = Union[TargetRecord, RejectedTarget]


class TargetSource(Protocol):
    async def read(self) -> list[Any]:
        """Return raw entries: positional rows (lists) or named-field mappings."""
        ...


class FileTargetSource:
    """Reads targets from a YAML or JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def read(self) -> list[Any]:
        if not self.path.exists():
            raise SourceError(f"Targets file not found: {self.path}")

        logger.debug("Loading targets file", file=str(self.path))
        try:
            text = self.path.read_text(encoding="utf-8")
            if self.path.suffix.lower() == ".json":
                data = json.loads(text)
            elif self.path.suffix.lower() in [".yaml", ".yml"]:
                data = yaml.safe_load(text)
            else:
                raise SourceError(f"Unsupported targets file format: {self.path.suffix}")
        except (OSError, ValueError, yaml.YAMLError) as exc:
            raise SourceError(f"Could not parse targets file {self.path}: {exc}") from exc

        if isinstance(data, dict):
            data = data.get("targets")
        if data is None:
            return []
        if not isinstance(data, list):
            raise SourceError("Targets file must contain a list (or a mapping with a 'targets' list)")
        return data


class CsvTargetSource:
    """
    Reads positional rows from a CSV export of the config sheet.

    With ``has_header=None`` the first row is treated as a header only when its
    first cell is not an http(s) URL, so header-less exports keep their first target.
    """

    def __init__(self, path: str | Path, *, has_header: bool | None = None):
        self.path = Path(path)
        self.has_header = has_header

    async def read(self) -> list[Any]:
        if not self.path.exists():
            raise SourceError(f"Targets file not found: {self.path}")
        try:
            with open(self.path, newline="", encoding="utf-8") as f:
                rows = [row for row in csv.reader(f)]
        except OSError as exc:
            raise SourceError(f"Could not read targets file {self.path}: {exc}") from exc
        if rows and self._skip_first(rows[0]):
            rows = rows[1:]
        return [row for row in rows if any(cell.strip() for cell in row)]

    def _skip_first(self, first_row: list[str]) -> bool:
        if self.has_header is not None:
            return self.has_header
        first_cell = first_row[0].strip().lower() if first_row else ""
        return not first_cell.startswith(("http://", "https://"))


class SheetsTargetSource:
    """Reads positional rows from the config tab of a Google Sheet."""

    def __init__(self, client: httpx.AsyncClient, cfg: SheetsConfig, *, range_: str):
        self.client = client
        self.cfg = cfg
        self.range_ = range_

    async def read(self) -> list[Any]:
        try:
            rows = await get_values(self.client, self.cfg, range_=self.range_)
        except (httpx.HTTPError, ValueError) as exc:
            raise SourceError(f"Could not read sheet range {self.range_}: {type(exc).__name__}: {exc}") from exc
        logger.info("Fetched config rows", count=len(rows), range=self.range_)
        return rows


def _describe_raw(entry: Any) -> tuple[str, str]:
    if isinstance(entry, dict):
        return str(entry.get("url") or "").strip(), str(entry.get("label") or "").strip() or DEFAULT_LABEL
    if isinstance(entry, (list, tuple)):
        url = str(entry[0] or "").strip() if entry else ""
        label_idx = ROW_COLUMNS.index("label")
        label = str(entry[label_idx] or "").strip() if len(entry) > label_idx else ""
        return url, label or DEFAULT_LABEL
    return "", DEFAULT_LABEL


def parse_targets(entries: list[Any]) -> list[LoadedTarget]:
    """Validate raw entries in order. Blank rows are skipped; invalid entries become RejectedTarget."""
    out: list[LoadedTarget] = []
    for idx, entry in enumerate(entries):
        if isinstance(entry, (list, tuple)) and not any(str(cell or "").strip() for cell in entry):
            continue
        try:
            if isinstance(entry, dict):
                out.append(target_from_mapping(entry))
            else:
                out.append(target_from_row(entry))
        except TargetRecordError as exc:
            url, label = _describe_raw(entry)
            logger.warning("Rejected target entry", index=idx, label=label, error=str(exc))
            out.append(RejectedTarget(url=url, label=label, error=f"Invalid target configuration: {exc}"))
    return out


async def load_targets(source: TargetSource) -> list[LoadedTarget]:
    entries = await source.read()
    targets = parse_targets(entries)
    logger.info("Loaded targets", count=len(targets))
    return targets
