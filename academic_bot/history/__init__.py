"""
History store backends and factory.
"""

from academic_bot.config import Settings, get_settings
from academic_bot.core.errors import ConfigurationError
from academic_bot.db.sqlite import Database
from academic_bot.history.base import (
    FeedbackEntry,
    HistoryAction,
    HistoryEntry,
    HistoryStore,
)
from academic_bot.history.memory import InMemoryHistoryStore
from academic_bot.history.sheets import SheetsHistoryStore
from academic_bot.history.sql import SqlHistoryStore


def get_history_store(settings: Settings | None = None) -> HistoryStore:
    """
    Get history store for the configured backend.

    Returns:
        History store instance (not yet initialised)
    """
    settings = settings or get_settings()
    backend = settings.history_backend

    if backend == "sql":
        return SqlHistoryStore(Database.from_settings(settings))
    elif backend == "sheets":
        if not settings.sheets_configured:
            raise ConfigurationError(
                "Sheets history backend requires GOOGLE_SERVICE_ACCOUNT_PATH "
                "and GOOGLE_SHEETS_ID."
            )
        return SheetsHistoryStore(settings)
    elif backend == "memory":
        return InMemoryHistoryStore()
    else:
        raise ConfigurationError(f"Unknown history backend: {backend}")


__all__ = [
    "FeedbackEntry",
    "HistoryAction",
    "HistoryEntry",
    "HistoryStore",
    "InMemoryHistoryStore",
    "SheetsHistoryStore",
    "SqlHistoryStore",
    "get_history_store",
]
