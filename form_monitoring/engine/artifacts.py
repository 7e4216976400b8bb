from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import structlog
from playwright.async_api import Page

logger = structlog.get_logger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]+")


def sanitize_label(label: str, *, max_len: int = 60) -> str:
    safe = _UNSAFE_CHARS_RE.sub("_", str(label or "")).strip("_")[:max_len]
    return safe or "unknown"


class ArtifactCapturer:
    """Full-page failure screenshots, one uniquely named file per capture."""

    def __init__(self, directory: str | Path, *, now: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.directory = Path(directory)
        self.now = now

    def artifact_path(self, label: str) -> Path:
        timestamp = self.now().strftime("%Y%m%d_%H%M%S")
        return self.directory / f"{sanitize_label(label)}_{timestamp}_{uuid.uuid4().hex[:8]}.png"

    async def capture(self, page: Page, label: str) -> str | None:
        """Returns the screenshot path, or None when the capture itself failed."""
        path = self.artifact_path(label)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(path), full_page=True)
        except Exception as exc:
            logger.warning("Failure screenshot not captured", label=label, error=f"{type(exc).__name__}: {exc}")
            return None
        logger.info("Failure screenshot saved", label=label, path=str(path))
        return str(path)
