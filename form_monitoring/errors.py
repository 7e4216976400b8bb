"""Exception taxonomy for the form monitoring engine.

Classification outcomes (validation errors, redirect mismatches) are not
exceptions; see ``form_monitoring.results.records.Outcome``.
"""

from __future__ import annotations


class FormMonitorError(Exception):
    """Base class for all form monitoring errors."""


class TargetRecordError(FormMonitorError, ValueError):
    """A configuration row could not be turned into a valid target record."""


class SessionError(FormMonitorError):
    """A browser session (browser process or context) could not be created."""


class InteractionError(FormMonitorError):
    """A configured selector did not resolve or was not actionable in time."""

    def __init__(self, action: str, selector: str, cause: Exception | None = None):
        self.action = action
        self.selector = selector
        self.cause = cause
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "not actionable"
        super().__init__(f"{action} failed for selector {selector!r}: {detail}")

    @property
    def timed_out(self) -> bool:
        return self.cause is not None and type(self.cause).__name__ == "TimeoutError"


class SourceError(FormMonitorError):
    """The configuration source could not be read."""


class SinkError(FormMonitorError):
    """The results sink rejected an append."""
