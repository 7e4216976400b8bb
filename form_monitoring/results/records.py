from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any


LOAD_TIME_NOT_AVAILABLE = "N/A"
BATCH_MARKER_PREFIX = "END OF BATCH – "
ROW_WIDTH = 6


class Status(str, enum.Enum):
    SUCCESS = "Success"
    FAILURE = "Failure"


class Outcome(str, enum.Enum):
    """Closed set of classifier results. Everything except SUCCESS is a Failure status."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    MISMATCH = "mismatch"
    TIMEOUT = "timeout"
    ERROR = "error"

    @property
    def status(self) -> Status:
        return Status.SUCCESS if self is Outcome.SUCCESS else Status.FAILURE


@dataclass(frozen=True)
class OutcomeRecord:
    timestamp: str
    url: str
    label: str
    outcome: Outcome
    error_detail: str = ""
    load_time_ms: float | None = None
    screenshot_path: str | None = None
    browser_infra_error: bool = False

    @property
    def status(self) -> Status:
        return self.outcome.status

    @property
    def ok(self) -> bool:
        return self.status is Status.SUCCESS

    def to_row(self) -> list[Any]:
        """Flat sink row: timestamp, url, load time, status, error, label."""
        load_time: Any = LOAD_TIME_NOT_AVAILABLE
        if self.load_time_ms is not None:
            load_time = int(round(self.load_time_ms))
        return [self.timestamp, self.url, load_time, self.status.value, self.error_detail, self.label]

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "url": self.url,
            "label": self.label,
            "status": self.status.value,
            "outcome": self.outcome.value,
            "load_time_ms": self.load_time_ms,
            "error_detail": self.error_detail,
            "screenshot_path": self.screenshot_path,
            "browser_infra_error": self.browser_infra_error,
        }


@dataclass(frozen=True)
class BatchMarker:
    """Appended once after the last target so operators can spot stalled or partial runs."""

    finished_at: datetime

    @property
    def text(self) -> str:
        return BATCH_MARKER_PREFIX + self.finished_at.strftime("%d/%m/%Y %H:%M")

    def to_row(self) -> list[Any]:
        return [self.text] + [""] * (ROW_WIDTH - 1)

    def to_dict(self) -> dict[str, Any]:
        return {"batch_marker": self.text, "finished_at": self.finished_at.isoformat()}


def is_batch_marker_row(row: list[Any]) -> bool:
    return bool(row) and str(row[0]).startswith(BATCH_MARKER_PREFIX)
