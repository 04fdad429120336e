"""
Session module for the Academic Paper Bot.
Holds the per-chat conversation state.
"""

from academic_bot.core.session.models import (
    CitationFormat,
    DraftSummary,
    IntakeRequest,
    PendingRevision,
    Phase,
    Session,
    SourceRecord,
    UserType,
    WaitingFor,
)
from academic_bot.core.session.store import SessionStore

__all__ = [
    # Models
    "CitationFormat",
    "DraftSummary",
    "IntakeRequest",
    "PendingRevision",
    "Phase",
    "Session",
    "SourceRecord",
    "UserType",
    "WaitingFor",
    # Store
    "SessionStore",
]
