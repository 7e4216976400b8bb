from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest

from form_monitoring.engine.classifier import Classification
from form_monitoring.engine.coordinator import RunCoordinator, utc_timestamp
from form_monitoring.errors import SessionError
from form_monitoring.results.records import BatchMarker, Outcome, OutcomeRecord, Status
from form_monitoring.targets.records import TargetRecord
from form_monitoring.targets.sources import RejectedTarget


def _target(label: str) -> TargetRecord:
    return TargetRecord(url=f"https://ex.test/{label}/register", label=label)


class _Session:
    def __init__(self, label: str):
        self.page = f"page:{label}"


class _Sessions:
    def __init__(self, fail_labels: set[str] = frozenset()):
        self.fail_labels = fail_labels
        self.opened: list[str] = []
        self.closed: list[str] = []

    @asynccontextmanager
    async def open(self, label: str = "unknown"):
        if label in self.fail_labels:
            raise SessionError("Could not start browser session: Executable doesn't exist")
        self.opened.append(label)
        try:
            yield _Session(label)
        finally:
            self.closed.append(label)


class _Engine:
    def __init__(self, results: dict[str, object]):
        self.results = results

    async def execute(self, page, target: TargetRecord) -> Classification:
        result = self.results[target.label]
        if isinstance(result, Exception):
            raise result
        return result


class _Capturer:
    def __init__(self, path: str | None = "shots/x.png"):
        self.path = path
        self.captured: list[str] = []

    async def capture(self, page, label: str) -> str | None:
        self.captured.append(label)
        return self.path


class _Sink:
    def __init__(self, fail_first: bool = False):
        self.records: list[object] = []
        self.fail_first = fail_first

    async def append(self, record) -> None:
        if self.fail_first:
            self.fail_first = False
            raise OSError("disk full")
        self.records.append(record)


def _coordinator(sessions, engine, capturer, sink) -> RunCoordinator:
    return RunCoordinator(
        sessions=sessions,
        engine=engine,
        capturer=capturer,
        sink=sink,
        utcnow=lambda: datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        localnow=lambda: datetime(2026, 10, 18, 11, 45),
    )


@pytest.mark.asyncio
async def test_one_record_per_target_in_order_then_marker() -> None:
    sessions = _Sessions(fail_labels={"b"})
    engine = _Engine(
        {
            "a": Classification(Outcome.SUCCESS, load_time_ms=812.5),
            "c": Classification(Outcome.VALIDATION_ERROR, "Form validation failed: Email taken"),
            "d": RuntimeError("browser went away"),
        }
    )
    capturer = _Capturer()
    sink = _Sink()
    targets = [_target("a"), _target("b"), _target("c"), _target("d")]

    summary = await _coordinator(sessions, engine, capturer, sink).run(targets)

    assert [r.label for r in sink.records[:-1]] == ["a", "b", "c", "d"]
    assert isinstance(sink.records[-1], BatchMarker)
    assert sink.records[-1].to_row() == ["END OF BATCH – 18/10/2026 11:45", "", "", "", "", ""]
    assert summary.total == 4
    assert summary.passed == 1
    assert summary.failed == 3
    assert sessions.opened == sessions.closed == ["a", "c", "d"]


@pytest.mark.asyncio
async def test_success_record_fields() -> None:
    sink = _Sink()
    engine = _Engine({"a": Classification(Outcome.SUCCESS, load_time_ms=812.5)})
    capturer = _Capturer()
    record = await _coordinator(_Sessions(), engine, capturer, sink).run_target(_target("a"))

    assert record.status is Status.SUCCESS
    assert record.timestamp == "2026-10-18T09:30:00.000Z"
    assert record.load_time_ms == 812.5
    assert record.error_detail == ""
    assert record.screenshot_path is None
    assert capturer.captured == []
    assert sink.records == [record]


@pytest.mark.asyncio
async def test_failure_captures_screenshot_and_keeps_detail() -> None:
    engine = _Engine({"c": Classification(Outcome.MISMATCH, "Redirect mismatch: expected '/welcome'")})
    capturer = _Capturer(path=None)
    record = await _coordinator(_Sessions(), engine, capturer, _Sink()).run_target(_target("c"))

    assert record.status is Status.FAILURE
    assert record.outcome is Outcome.MISMATCH
    assert record.error_detail == "Redirect mismatch: expected '/welcome'"
    assert record.load_time_ms is None
    assert capturer.captured == ["c"]


@pytest.mark.asyncio
async def test_session_failure_still_emits_record() -> None:
    sink = _Sink()
    record = await _coordinator(_Sessions(fail_labels={"b"}), _Engine({}), _Capturer(), sink).run_target(_target("b"))
    assert record.status is Status.FAILURE
    assert "Could not start browser session" in record.error_detail
    assert record.browser_infra_error is True
    assert sink.records == [record]


@pytest.mark.asyncio
async def test_rejected_target_is_reported_without_a_session() -> None:
    sessions = _Sessions()
    rejected = RejectedTarget(url="", label="broken", error="Invalid target configuration: missing_url")
    record = await _coordinator(sessions, _Engine({}), _Capturer(), _Sink()).run_target(rejected)
    assert record.status is Status.FAILURE
    assert record.error_detail == "Invalid target configuration: missing_url"
    assert sessions.opened == []


@pytest.mark.asyncio
async def test_sink_failure_does_not_abort_batch() -> None:
    sink = _Sink(fail_first=True)
    engine = _Engine({"a": Classification(Outcome.SUCCESS, load_time_ms=1.0),
                      "b": Classification(Outcome.SUCCESS, load_time_ms=2.0)})
    summary = await _coordinator(_Sessions(), engine, _Capturer(), sink).run([_target("a"), _target("b")])
    assert summary.total == 2
    assert [r.label for r in sink.records if isinstance(r, OutcomeRecord)] == ["b"]
    assert isinstance(sink.records[-1], BatchMarker)


@pytest.mark.asyncio
async def test_empty_batch_still_emits_marker() -> None:
    sink = _Sink()
    summary = await _coordinator(_Sessions(), _Engine({}), _Capturer(), sink).run([])
    assert summary.total == 0
    assert len(sink.records) == 1 and isinstance(sink.records[0], BatchMarker)


def test_utc_timestamp_normalizes_offsets() -> None:
    assert utc_timestamp(datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)) == "2026-01-02T03:04:05.000Z"
