"""Outcome records and the sinks that receive them."""

from .records import BatchMarker, Outcome, OutcomeRecord, Status
from .sinks import CsvResultsSink, JsonlResultsSink, ResultsSink, SheetsResultsSink

__all__ = [
    "BatchMarker",
    "CsvResultsSink",
    "JsonlResultsSink",
    "Outcome",
    "OutcomeRecord",
    "ResultsSink",
    "SheetsResultsSink",
    "Status",
]
