from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from form_monitoring.engine.artifacts import ArtifactCapturer, sanitize_label


class _Page:
    def __init__(self, exc: Exception | None = None):
        self.exc = exc
        self.shots: list[tuple[str, bool]] = []

    async def screenshot(self, path: str, full_page: bool = False) -> None:
        if self.exc:
            raise self.exc
        Path(path).write_bytes(b"png")
        self.shots.append((path, full_page))


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("Signup – Main Site", "Signup_Main_Site"),
        ("../../etc/passwd", "etc_passwd"),
        ("", "unknown"),
        ("ok-label_1", "ok-label_1"),
    ],
)
def test_sanitize_label(label: str, expected: str) -> None:
    assert sanitize_label(label) == expected


def test_artifact_names_are_unique_per_capture(tmp_path: Path) -> None:
    capturer = ArtifactCapturer(tmp_path, now=lambda: datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc))
    first = capturer.artifact_path("signup")
    second = capturer.artifact_path("signup")
    assert first != second
    assert first.name.startswith("signup_20261018_093000_")
    assert first.suffix == ".png"


@pytest.mark.asyncio
async def test_capture_creates_directory_and_takes_full_page_shot(tmp_path: Path) -> None:
    page = _Page()
    capturer = ArtifactCapturer(tmp_path / "screenshots")
    path = await capturer.capture(page, "signup")
    assert path is not None
    assert Path(path).exists()
    assert page.shots == [(path, True)]


@pytest.mark.asyncio
async def test_capture_failure_returns_none(tmp_path: Path) -> None:
    page = _Page(exc=RuntimeError("Target page, context or browser has been closed"))
    assert await ArtifactCapturer(tmp_path).capture(page, "signup") is None
