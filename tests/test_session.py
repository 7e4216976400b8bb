from __future__ import annotations

import csv
from pathlib import Path

import pytest

from form_monitoring import cli
from form_monitoring.config import BrowserSettings, MonitorSettings
from form_monitoring.engine import session as session_module
from form_monitoring.engine.session import SessionManager
from form_monitoring.errors import SessionError
from form_monitoring.results.records import BATCH_MARKER_PREFIX


class _BrokenDriver:
    async def start(self):
        raise RuntimeError("Driver exited: spawn ENOENT")


@pytest.fixture
def broken_driver(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(session_module, "async_playwright", lambda: _BrokenDriver())


@pytest.mark.asyncio
async def test_driver_start_failure_is_session_error(broken_driver) -> None:
    async with SessionManager(BrowserSettings()) as sessions:
        with pytest.raises(SessionError) as info:
            async with sessions.open(label="signup"):
                pass
    assert "Driver exited" in str(info.value)
    assert sessions.playwright is None


@pytest.mark.asyncio
async def test_driver_start_failure_still_records_every_target(broken_driver, tmp_path: Path) -> None:
    targets = tmp_path / "targets.yaml"
    targets.write_text(
        "targets:\n"
        "  - {url: https://ex.test/register, label: first, submit_selector: '#go'}\n"
        "  - {url: https://ex.test/signup, label: second, submit_selector: '#go'}\n",
        encoding="utf-8",
    )
    results = tmp_path / "results.csv"
    settings = MonitorSettings(artifacts_dir=str(tmp_path / "screenshots"))

    summary = await cli.run_batch(settings, targets_path=str(targets), results_path=str(results))

    assert summary.total == 2
    assert summary.failed == 2
    assert all(r.browser_infra_error for r in summary.records)

    with open(results, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0][0] == "timestamp"
    assert [row[5] for row in rows[1:3]] == ["first", "second"]
    assert {row[3] for row in rows[1:3]} == {"Failure"}
    assert "Driver exited" in rows[1][4]
    assert rows[3][0].startswith(BATCH_MARKER_PREFIX)
    assert len(rows) == 4
