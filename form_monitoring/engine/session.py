"""Browser session management: one isolated browser per target, always torn down."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import structlog
from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route, async_playwright

from form_monitoring.config import BrowserSettings
from form_monitoring.engine.infra import find_chromium_executable, shm_is_small
from form_monitoring.errors import SessionError

logger = structlog.get_logger(__name__)

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-sync",
    "--metrics-recording-only",
    "--no-first-run",
    "--no-default-browser-check",
]

NO_CACHE_HEADERS = {"cache-control": "no-cache", "pragma": "no-cache"}


@dataclass
class BrowserSession:
    """Live resources for one target. Only valid inside ``SessionManager.open``."""
    browser: Browser
    context: BrowserContext
    page: Page


async def _disable_cache(route: Route) -> None:
    headers = {**route.request.headers, **NO_CACHE_HEADERS}
    await route.continue_(headers=headers)


class SessionManager:
    """Owns the Playwright driver for a batch and hands out per-target sessions."""

    def __init__(self, settings: BrowserSettings):
        self.settings = settings
        self.playwright: Playwright | None = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def start(self):
        """Start the Playwright driver; a driver that cannot start is a SessionError."""
        logger.info("Starting browser session manager", headless=self.settings.headless)
        try:
            self.playwright = await async_playwright().start()
        except Exception as exc:
            self.playwright = None
            raise SessionError(f"Could not start Playwright driver: {type(exc).__name__}: {exc}") from exc

    async def stop(self):
        """Stop the Playwright driver."""
        logger.info("Stopping browser session manager")
        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception as exc:
                logger.warning("Playwright driver did not stop cleanly", error=str(exc))
            self.playwright = None

    async def _launch(self) -> Browser:
        # Started lazily so a broken driver fails each target instead of the whole batch.
        if self.playwright is None:
            await self.start()

        args = list(CHROMIUM_ARGS)
        # Avoid renderer crashes when /dev/shm is tiny.
        if shm_is_small():
            args.append("--disable-dev-shm-usage")

        executable_path = self.settings.chromium_path or find_chromium_executable()
        return await self.playwright.chromium.launch(
            headless=self.settings.headless,
            executable_path=executable_path,
            args=args,
        )

    async def _acquire(self) -> BrowserSession:
        browser = None
        try:
            browser = await self._launch()
            context = await browser.new_context(
                viewport={"width": self.settings.viewport_width, "height": self.settings.viewport_height},
                user_agent=self.settings.user_agent,
                service_workers="block",
            )
            await context.route("**/*", _disable_cache)
            page = await context.new_page()
            page.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
            return BrowserSession(browser=browser, context=context, page=page)
        except SessionError:
            raise
        except Exception as exc:
            if browser is not None:
                try:
                    await browser.close()
                except Exception:
                    logger.debug("Browser close after failed acquire raised", exc_info=True)
            raise SessionError(f"Could not start browser session: {type(exc).__name__}: {exc}") from exc

    async def _release(self, session: BrowserSession, label: str) -> None:
        for name, closer in (
            ("page", session.page.close),
            ("context", session.context.close),
            ("browser", session.browser.close),
        ):
            try:
                await closer()
            except Exception as exc:
                logger.warning("Session resource did not close cleanly", label=label, resource=name, error=str(exc))

    @asynccontextmanager
    async def open(self, label: str = "unknown") -> AsyncIterator[BrowserSession]:
        """Yield a fresh, isolated session; resources are released on every exit path."""
        session = await self._acquire()
        logger.debug("Browser session opened", label=label)
        try:
            yield session
        finally:
            await self._release(session, label)
            logger.debug("Browser session closed", label=label)
