"""Command line entry point: run one monitoring batch, or run batches on a cron schedule."""

from __future__ import annotations

import argparse
import asyncio
import sys
from contextlib import AsyncExitStack
from pathlib import Path

import httpx
import structlog
import yaml
from pydantic import ValidationError

from form_monitoring.config import MonitorSettings, load_settings
from form_monitoring.engine import ArtifactCapturer, RunCoordinator, RunSummary, SessionManager, TransactionEngine
from form_monitoring.errors import SourceError
from form_monitoring.log_setup import configure_logging
from form_monitoring.results.sinks import CsvResultsSink, JsonlResultsSink, ResultsSink, SheetsResultsSink
from form_monitoring.scheduler import BatchScheduler
from form_monitoring.sheets import SheetsConfig
from form_monitoring.targets.sources import (
    CsvTargetSource,
    FileTargetSource,
    SheetsTargetSource,
    TargetSource,
    load_targets,
)

logger = structlog.get_logger(__name__)


def _sheets_config(settings: MonitorSettings) -> SheetsConfig:
    if not settings.sheet_id or not settings.sheets_access_token:
        raise ValueError("Sheets source/sink requires SHEET_ID and GOOGLE_SHEETS_ACCESS_TOKEN")
    return SheetsConfig(spreadsheet_id=settings.sheet_id, access_token=settings.sheets_access_token)


def build_source(settings: MonitorSettings, client: httpx.AsyncClient | None, path: str | None = None) -> TargetSource:
    kind = settings.source.kind.strip().lower()
    if path:
        kind = "csv" if Path(path).suffix.lower() == ".csv" else "yaml"
    path = path or settings.source.path

    if kind == "sheets":
        if client is None:
            raise ValueError("Sheets source requires an HTTP client")
        return SheetsTargetSource(client, _sheets_config(settings), range_=settings.source.sheet_range)
    if not path:
        raise ValueError(f"Source kind {kind!r} requires a path")
    if kind == "csv":
        return CsvTargetSource(path)
    if kind in {"yaml", "json"}:
        return FileTargetSource(path)
    raise ValueError(f"Unknown source kind: {kind}")


def build_sink(settings: MonitorSettings, client: httpx.AsyncClient | None, path: str | None = None) -> ResultsSink:
    kind = settings.sink.kind.strip().lower()
    if path:
        kind = "jsonl" if Path(path).suffix.lower() == ".jsonl" else "csv"
    path = path or settings.sink.path

    if kind == "sheets":
        if client is None:
            raise ValueError("Sheets sink requires an HTTP client")
        return SheetsResultsSink(client, _sheets_config(settings), range_=settings.sink.sheet_range)
    if not path:
        raise ValueError(f"Sink kind {kind!r} requires a path")
    if kind == "csv":
        return CsvResultsSink(path)
    if kind == "jsonl":
        return JsonlResultsSink(path)
    raise ValueError(f"Unknown sink kind: {kind}")


def _needs_http(settings: MonitorSettings, targets_path: str | None, results_path: str | None) -> bool:
    return (not targets_path and settings.source.kind == "sheets") or (
        not results_path and settings.sink.kind == "sheets"
    )


async def run_batch(
    settings: MonitorSettings,
    *,
    targets_path: str | None = None,
    results_path: str | None = None,
) -> RunSummary:
    async with AsyncExitStack() as stack:
        client = None
        if _needs_http(settings, targets_path, results_path):
            client = await stack.enter_async_context(
                httpx.AsyncClient(headers={"User-Agent": "form-monitoring"})
            )
        source = build_source(settings, client, targets_path)
        sink = build_sink(settings, client, results_path)

        targets = await load_targets(source)
        sessions = await stack.enter_async_context(SessionManager(settings.browser))
        coordinator = RunCoordinator(
            sessions=sessions,
            engine=TransactionEngine.from_settings(settings),
            capturer=ArtifactCapturer(settings.artifacts_dir),
            sink=sink,
        )
        return await coordinator.run(targets)


def _print_summary(summary: RunSummary) -> None:
    print("\n" + "=" * 50)
    print("FORM MONITORING RESULTS")
    print("=" * 50)
    print(f"Total Targets: {summary.total}")
    print(f"Passed: {summary.passed}")
    print(f"Failed: {summary.failed}")
    print(f"Duration: {summary.duration_seconds:.2f}s")
    if summary.failures:
        print("\nFAILED TARGETS:")
        for record in summary.failures:
            print(f"- {record.label} ({record.url}): {record.error_detail}")
            if record.screenshot_path:
                print(f"  screenshot: {record.screenshot_path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="form-monitor", description="Exercise registration forms end to end.")
    parser.add_argument("command", nargs="?", choices=["run", "schedule"], default="run")
    parser.add_argument("--config", help="Path to the YAML settings file")
    parser.add_argument("--targets", help="Read targets from this YAML/JSON/CSV file instead of the configured source")
    parser.add_argument("--results", help="Append results to this CSV/JSONL file instead of the configured sink")
    parser.add_argument("--log-level", help="Override the configured log level")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args.config)
    except (ValidationError, yaml.YAMLError, OSError) as exc:
        configure_logging(args.log_level or "INFO")
        logger.error("Form monitoring settings could not be loaded", config=args.config, error=str(exc))
        sys.exit(2)
    configure_logging(args.log_level or settings.log_level)

    async def _once() -> RunSummary:
        return await run_batch(settings, targets_path=args.targets, results_path=args.results)

    try:
        if args.command == "schedule":
            asyncio.run(BatchScheduler(_once, settings.schedule_cron).run_forever())
            return
        summary = asyncio.run(_once())
    except KeyboardInterrupt:
        sys.exit(130)
    except (SourceError, ValueError) as exc:
        logger.error("Form monitoring batch could not start", error=str(exc))
        sys.exit(2)

    _print_summary(summary)
    sys.exit(0 if summary.failed == 0 else 1)


if __name__ == "__main__":
    main()
