"""Sequential batch execution: one outcome record per target, then the batch marker."""

from __future__ import annotations

import time
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, Sequence

import structlog

from form_monitoring.engine.classifier import Classification
from form_monitoring.engine.infra import is_browser_infra_error
from form_monitoring.engine.transaction import error_message
from form_monitoring.errors import SessionError
from form_monitoring.results.records import BatchMarker, Outcome, OutcomeRecord
from form_monitoring.results.sinks import ResultsSink, SinkRecord
from form_monitoring.targets.records import TargetRecord
from form_monitoring.targets.sources import LoadedTarget, RejectedTarget

logger = structlog.get_logger(__name__)


class SessionFactory(Protocol):
    def open(self, label: str = ...) -> AbstractAsyncContextManager[Any]:
        ...


class Engine(Protocol):
    async def execute(self, page: Any, target: TargetRecord) -> Classification:
        ...


class Capturer(Protocol):
    async def capture(self, page: Any, label: str) -> str | None:
        ...


def utc_timestamp(now: datetime) -> str:
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class RunSummary:
    records: list[OutcomeRecord] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total(self) -> int:
        return len(self.records)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.records if r.ok)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def failures(self) -> list[OutcomeRecord]:
        return [r for r in self.records if not r.ok]


class RunCoordinator:
    """Runs targets one at a time; no single target can abort the batch."""

    def __init__(
        self,
        *,
        sessions: SessionFactory,
        engine: Engine,
        capturer: Capturer,
        sink: ResultsSink,
        utcnow: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        localnow: Callable[[], datetime] = datetime.now,
    ):
        self.sessions = sessions
        self.engine = engine
        self.capturer = capturer
        self.sink = sink
        self.utcnow = utcnow
        self.localnow = localnow

    async def run(self, targets: Sequence[LoadedTarget]) -> RunSummary:
        started = time.perf_counter()
        logger.info("Starting form monitoring batch", target_count=len(targets))

        records: list[OutcomeRecord] = []
        for target in targets:
            records.append(await self.run_target(target))

        await self._emit(BatchMarker(finished_at=self.localnow()))

        summary = RunSummary(records=records, duration_seconds=round(time.perf_counter() - started, 3))
        logger.info(
            "Form monitoring batch completed",
            total=summary.total,
            passed=summary.passed,
            failed=summary.failed,
            duration_seconds=summary.duration_seconds,
        )
        return summary

    async def run_target(self, target: LoadedTarget) -> OutcomeRecord:
        timestamp = utc_timestamp(self.utcnow())
        result: Classification | None = None
        screenshot_path = None
        try:
            if isinstance(target, RejectedTarget):
                result = Classification(Outcome.ERROR, target.error)
            else:
                async with self.sessions.open(label=target.label) as session:
                    result = await self.engine.execute(session.page, target)
                    if not result.ok:
                        screenshot_path = await self.capturer.capture(session.page, target.label)
        except SessionError as exc:
            logger.error("Browser session unavailable", label=target.label, error=str(exc))
            result = Classification(Outcome.ERROR, str(exc), browser_infra_error=True)
        except Exception as exc:
            logger.exception("Target processing crashed", label=target.label)
            result = Classification(Outcome.ERROR, error_message(exc), browser_infra_error=is_browser_infra_error(exc))
        finally:
            if result is None:
                result = Classification(Outcome.ERROR, "Target processing was interrupted")
            record = OutcomeRecord(
                timestamp=timestamp,
                url=target.url,
                label=target.label,
                outcome=result.outcome,
                error_detail=result.error_detail,
                load_time_ms=result.load_time_ms if result.ok else None,
                screenshot_path=screenshot_path,
                browser_infra_error=result.browser_infra_error,
            )
            await self._emit(record)

        log = logger.info if record.ok else logger.warning
        log(
            "Target finished",
            label=record.label,
            status=record.status.value,
            outcome=record.outcome.value,
            load_time_ms=record.load_time_ms,
            error=record.error_detail,
        )
        return record

    async def _emit(self, record: SinkRecord) -> None:
        try:
            await self.sink.append(record)
        except Exception:
            logger.exception("Failed to append result record", record=record.to_row())
