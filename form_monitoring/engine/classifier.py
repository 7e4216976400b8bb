"""Submission and outcome classification.

After the submit click the page is given until either its ``load`` event fires
or the settle delay elapses, whichever comes first. The final URL then decides
the outcome:

- URL still contains the form marker: VALIDATION_ERROR, carrying any visible
  inline error text found on the page.
- An expected redirect is configured and missing from the URL: MISMATCH.
- Otherwise: SUCCESS.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from form_monitoring.config import ClassifierSettings, TimeoutSettings
from form_monitoring.errors import InteractionError
from form_monitoring.results.records import Outcome
from form_monitoring.targets.records import TargetRecord

logger = structlog.get_logger(__name__)

MAX_ERROR_TEXTS = 10
MAX_ERROR_TEXT_LEN = 300


@dataclass(frozen=True)
class Classification:
    outcome: Outcome
    error_detail: str = ""
    final_url: str | None = None
    load_time_ms: float | None = None
    browser_infra_error: bool = False

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS


def decide_outcome(final_url: str, *, form_marker: str | None, expected_redirect: str | None) -> Outcome:
    url = final_url or ""
    if form_marker and form_marker in url:
        return Outcome.VALIDATION_ERROR
    if expected_redirect and expected_redirect not in url:
        return Outcome.MISMATCH
    return Outcome.SUCCESS


def validation_error_detail(final_url: str, error_texts: list[str]) -> str:
    if error_texts:
        return "Form validation failed: " + " | ".join(error_texts)
    return f"Form did not redirect, still on form page: {final_url}"


def mismatch_detail(expected: str, final_url: str) -> str:
    return f"Redirect mismatch: expected URL containing {expected!r}, got {final_url!r}"


async def collect_error_texts(page: Page, selectors: list[str], *, timeout_ms: int = 1000) -> list[str]:
    """Visible inline error messages, de-duplicated, in document order per selector."""
    texts: list[str] = []
    for selector in selectors:
        try:
            elements = await page.locator(selector).all()
        except PlaywrightError:
            continue
        for element in elements:
            try:
                if not await element.is_visible():
                    continue
                text = " ".join((await element.inner_text(timeout=timeout_ms)).split())
            except PlaywrightError:
                continue
            if text and text not in texts:
                texts.append(text[:MAX_ERROR_TEXT_LEN])
            if len(texts) >= MAX_ERROR_TEXTS:
                return texts
    return texts


class SubmissionClassifier:
    """Clicks submit, waits for the page to settle, and classifies the result."""

    def __init__(self, settings: ClassifierSettings, timeouts: TimeoutSettings):
        self.settings = settings
        self.timeouts = timeouts

    async def submit(self, page: Page, target: TargetRecord) -> None:
        if not target.submit_selector:
            logger.info("No submit selector configured, evaluating current page", label=target.label)
            return

        settle_s = self.timeouts.settle_ms / 1000.0
        # A late load event from the form page itself must not count as settlement.
        try:
            await page.wait_for_load_state("load", timeout=self.timeouts.settle_ms)
        except PlaywrightError as exc:
            logger.debug("Form page still loading before submit", label=target.label, error=str(exc))

        # Armed before the click so a fast navigation cannot slip past us. Its deadline
        # covers the click's own actionability wait plus the settle window.
        load_timeout_ms = self.timeouts.element_ms + self.timeouts.settle_ms
        load_waiter = asyncio.ensure_future(page.wait_for_event("load", timeout=load_timeout_ms))
        delay = None
        try:
            await asyncio.sleep(0)
            logger.info("Clicking submit", label=target.label, selector=target.submit_selector)
            try:
                await page.click(target.submit_selector, timeout=self.timeouts.element_ms)
            except PlaywrightError as exc:
                raise InteractionError("click", target.submit_selector, exc) from exc

            delay = asyncio.ensure_future(asyncio.sleep(settle_s))
            done, _ = await asyncio.wait({load_waiter, delay}, return_when=asyncio.FIRST_COMPLETED)
            settled_by = "delay"
            if load_waiter in done:
                if load_waiter.exception() is None:
                    settled_by = "load"
                else:
                    # A failed load wait only means no navigation was seen; the full delay still applies.
                    await delay
            logger.debug("Page settled", label=target.label, settled_by=settled_by, url=page.url)
        finally:
            for task in (load_waiter, delay):
                if task is not None and not task.done():
                    task.cancel()
            await asyncio.gather(load_waiter, return_exceptions=True)
            if delay is not None:
                await asyncio.gather(delay, return_exceptions=True)

    async def evaluate(self, page: Page, target: TargetRecord) -> Classification:
        final_url = page.url or ""
        form_marker = target.form_marker or self.settings.form_marker
        outcome = decide_outcome(final_url, form_marker=form_marker, expected_redirect=target.expected_redirect)
        logger.info("Final URL", label=target.label, url=final_url, outcome=outcome.value)

        if outcome is Outcome.VALIDATION_ERROR:
            texts = await collect_error_texts(page, self.settings.error_selectors)
            return Classification(outcome, validation_error_detail(final_url, texts), final_url=final_url)
        if outcome is Outcome.MISMATCH:
            return Classification(outcome, mismatch_detail(target.expected_redirect or "", final_url), final_url=final_url)
        return Classification(outcome, "", final_url=final_url)
