"""Best-effort dismissal of cookie consent overlays."""

from __future__ import annotations

import enum

import structlog
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from form_monitoring.config import ConsentSettings, TimeoutSettings

logger = structlog.get_logger(__name__)


class ConsentState(str, enum.Enum):
    HANDLED = "handled"
    NOT_PRESENT = "not_present"


class ConsentHandler:
    """Clicks 'accept all' on a known consent dialog if one shows up. Never raises."""

    def __init__(self, settings: ConsentSettings, timeouts: TimeoutSettings):
        self.settings = settings
        self.timeouts = timeouts

    async def dismiss(self, page: Page) -> ConsentState:
        accept = self.settings.accept_selector
        try:
            await page.wait_for_selector(accept, state="visible", timeout=self.timeouts.consent_probe_ms)
        except PlaywrightTimeoutError:
            logger.info("No consent dialog found")
            return ConsentState.NOT_PRESENT
        except Exception as exc:
            logger.warning("Consent probe failed", error=f"{type(exc).__name__}: {exc}")
            return ConsentState.NOT_PRESENT

        logger.info("Consent dialog detected, accepting all", selector=accept)
        try:
            await page.click(accept, timeout=self.timeouts.consent_dismiss_ms)
        except Exception as exc:
            logger.warning("Consent accept click failed", error=f"{type(exc).__name__}: {exc}")
            return ConsentState.NOT_PRESENT

        try:
            await page.wait_for_selector(
                self.settings.dialog_selector, state="detached", timeout=self.timeouts.consent_dismiss_ms
            )
            logger.info("Consent dialog dismissed")
        except Exception as exc:
            logger.warning("Consent dialog still attached after accept", error=f"{type(exc).__name__}: {exc}")
        return ConsentState.HANDLED
