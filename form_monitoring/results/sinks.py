"""Results sinks: append-only destinations for outcome rows."""

from __future__ import annotations

import asyncio
import csv
import json
from pathlib import Path
from typing import Protocol, Union

import httpx
import structlog

from form_monitoring.errors import SinkError
from form_monitoring.results.records import BatchMarker, OutcomeRecord
from form_monitoring.sheets import SheetsConfig, append_row


logger = structlog.get_logger(__name__)

SinkRecord = Union[OutcomeRecord, BatchMarker]

CSV_HEADER = ["timestamp", "url", "load_time_ms", "status", "error", "label"]


class ResultsSink(Protocol):
    async def append(self, record: SinkRecord) -> None:
        ...


class CsvResultsSink:
    """Appends flat rows to a CSV file, writing the header when the file is new."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _write(self, row: list) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        new_file = not self.path.exists() or self.path.stat().st_size == 0
        with open(self.path, "a", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            if new_file:
                writer.writerow(CSV_HEADER)
            writer.writerow(row)

    async def append(self, record: SinkRecord) -> None:
        try:
            await asyncio.to_thread(self._write, record.to_row())
        except OSError as exc:
            raise SinkError(f"Could not append to {self.path}: {exc}") from exc


class JsonlResultsSink:
    """Appends one JSON object per record; keeps the richer fields the flat row drops."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _write(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    async def append(self, record: SinkRecord) -> None:
        line = json.dumps(record.to_dict(), ensure_ascii=False, sort_keys=True)
        try:
            await asyncio.to_thread(self._write, line)
        except OSError as exc:
            raise SinkError(f"Could not append to {self.path}: {exc}") from exc


class SheetsResultsSink:
    """Appends rows to the results tab of a Google Sheet."""

    def __init__(self, client: httpx.AsyncClient, cfg: SheetsConfig, *, range_: str):
        self.client = client
        self.cfg = cfg
        self.range_ = range_

    async def append(self, record: SinkRecord) -> None:
        try:
            await append_row(self.client, self.cfg, range_=self.range_, row=record.to_row())
        except httpx.HTTPError as exc:
            raise SinkError(f"Could not append to sheet range {self.range_}: {type(exc).__name__}: {exc}") from exc
