from __future__ import annotations

import time
from typing import Callable

import structlog
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from form_monitoring.config import MonitorSettings
from form_monitoring.engine.classifier import Classification, SubmissionClassifier
from form_monitoring.engine.consent import ConsentHandler
from form_monitoring.engine.fields import FieldPopulator
from form_monitoring.engine.infra import is_browser_infra_error
from form_monitoring.errors import InteractionError
from form_monitoring.results.records import Outcome
from form_monitoring.targets.records import TargetRecord

logger = structlog.get_logger(__name__)


def error_message(exc: BaseException) -> str:
    msg = str(exc).strip()
    return msg if msg else type(exc).__name__


class TransactionEngine:
    """Drives one target through navigate, consent, populate, submit and classify."""

    def __init__(
        self,
        consent: ConsentHandler,
        populator: FieldPopulator,
        classifier: SubmissionClassifier,
        *,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.consent = consent
        self.populator = populator
        self.classifier = classifier
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: MonitorSettings) -> "TransactionEngine":
        return cls(
            ConsentHandler(settings.consent, settings.timeouts),
            FieldPopulator(settings.timeouts, settings.classifier),
            SubmissionClassifier(settings.classifier, settings.timeouts),
        )

    async def execute(self, page: Page, target: TargetRecord) -> Classification:
        """Never raises for page-level faults; they become a failed Classification."""
        log = logger.bind(label=target.label, url=target.url)
        state = "started"
        try:
            log.info("Navigating")
            started = self.clock()
            await page.goto(target.url, wait_until="domcontentloaded")
            state = "navigated"

            await self.consent.dismiss(page)
            await self.populator.populate(page, target)
            state = "populated"

            await self.classifier.submit(page, target)
            state = "submitted"

            result = await self.classifier.evaluate(page, target)
            if not result.ok:
                log.warning("Form check failed", outcome=result.outcome.value, error=result.error_detail)
                return result

            elapsed_ms = round((self.clock() - started) * 1000.0, 3)
            log.info("Form check passed", load_time_ms=elapsed_ms)
            return Classification(Outcome.SUCCESS, "", final_url=result.final_url, load_time_ms=elapsed_ms)
        except InteractionError as exc:
            outcome = Outcome.TIMEOUT if exc.timed_out else Outcome.ERROR
            log.warning("Form interaction failed", state=state, selector=exc.selector, error=str(exc))
            return Classification(
                outcome, str(exc), final_url=_current_url(page),
                browser_infra_error=is_browser_infra_error(exc.cause or exc),
            )
        except PlaywrightTimeoutError as exc:
            log.warning("Form check timed out", state=state, error=str(exc))
            return Classification(Outcome.TIMEOUT, error_message(exc), final_url=_current_url(page))
        except Exception as exc:
            infra = is_browser_infra_error(exc)
            log.error("Form check errored", state=state, error=f"{type(exc).__name__}: {exc}", browser_infra_error=infra)
            return Classification(
                Outcome.ERROR, error_message(exc), final_url=_current_url(page), browser_infra_error=infra
            )


def _current_url(page: Page) -> str | None:
    try:
        return page.url
    except Exception:
        return None
