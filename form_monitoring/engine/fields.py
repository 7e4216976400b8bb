from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass
from typing import Callable

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from form_monitoring.config import ClassifierSettings, TimeoutSettings
from form_monitoring.errors import InteractionError
from form_monitoring.targets.records import SECRET_ROLES, FieldRole, FieldSpec, TargetRecord

logger = structlog.get_logger(__name__)


_ENV_REF_RE = re.compile(r"\$\{([A-Z0-9_]{1,64})\}")


def substitute_env_refs(text: str) -> str:
    """
    Replace ${VAR} with os.environ['VAR'].
    - If a placeholder exists but the env var is missing, raise ValueError.
    """
    s = str(text or "")
    if "${" not in s:
        return s

    missing: list[str] = []

    def _repl(m: re.Match[str]) -> str:
        key = m.group(1)
        val = os.getenv(key)
        if val is None:
            missing.append(key)
            return ""
        return val

    out = _ENV_REF_RE.sub(_repl, s)
    if missing:
        raise ValueError(f"missing_env_secrets: {sorted(set(missing))}")
    return out


def run_token() -> str:
    return str(int(time.time() * 1000))


def unique_email(value: str, token: str, separator: str = "+") -> str:
    """Insert ``token`` right before the '@' so every run registers a fresh address."""
    if "@" not in value:
        return value
    local, _, domain = value.rpartition("@")
    return f"{local}{separator}{token}@{domain}"


@dataclass(frozen=True)
class PlannedFill:
    role: FieldRole
    selector: str
    value: str

    @property
    def loggable_value(self) -> str:
        return "***" if self.role in SECRET_ROLES else self.value


def plan_fills(target: TargetRecord, *, token: str, separator: str = "+") -> list[PlannedFill]:
    """Resolve the value for every enabled field, in declaration order."""
    password = target.field_for(FieldRole.PASSWORD)
    password_value = substitute_env_refs(password.value) if password and password.value is not None else None

    plan: list[PlannedFill] = []
    for spec in target.fields:
        if not spec.enabled:
            continue
        plan.append(PlannedFill(spec.role, spec.selector, _resolve_value(spec, password_value, token, separator)))
    return plan


def _resolve_value(spec: FieldSpec, password_value: str | None, token: str, separator: str) -> str:
    if spec.role is FieldRole.CONFIRM and spec.value is None:
        return password_value or ""
    value = substitute_env_refs(spec.value) if spec.value is not None else ""
    if spec.role is FieldRole.EMAIL:
        return unique_email(value, token, separator)
    return value


class FieldPopulator:
    """Fills declared fields on the live page, then clicks the checkbox once."""

    def __init__(
        self,
        timeouts: TimeoutSettings,
        classifier: ClassifierSettings,
        token_factory: Callable[[], str] = run_token,
    ):
        self.timeouts = timeouts
        self.separator = classifier.email_token_separator
        self.token_factory = token_factory

    async def populate(self, page: Page, target: TargetRecord) -> list[PlannedFill]:
        plan = plan_fills(target, token=self.token_factory(), separator=self.separator)
        for fill in plan:
            logger.info("Filling field", label=target.label, role=fill.role.value, selector=fill.selector,
                        value=fill.loggable_value)
            try:
                await page.fill(fill.selector, fill.value, timeout=self.timeouts.element_ms)
            except PlaywrightError as exc:
                raise InteractionError("fill", fill.selector, exc) from exc

        if target.checkbox_selector:
            logger.info("Clicking checkbox", label=target.label, selector=target.checkbox_selector)
            try:
                await page.click(target.checkbox_selector, timeout=self.timeouts.element_ms)
            except PlaywrightError as exc:
                raise InteractionError("click", target.checkbox_selector, exc) from exc
        return plan
