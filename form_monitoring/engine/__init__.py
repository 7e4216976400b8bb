"""Synthetic form transaction engine."""

from .artifacts import ArtifactCapturer
from .classifier import Classification, SubmissionClassifier
from .consent import ConsentHandler, ConsentState
from .coordinator import RunCoordinator, RunSummary
from .fields import FieldPopulator
from .session import BrowserSession, SessionManager
from .transaction import TransactionEngine

__all__ = [
    "ArtifactCapturer",
    "BrowserSession",
    "Classification",
    "ConsentHandler",
    "ConsentState",
    "FieldPopulator",
    "RunCoordinator",
    "RunSummary",
    "SessionManager",
    "SubmissionClassifier",
    "TransactionEngine",
]
