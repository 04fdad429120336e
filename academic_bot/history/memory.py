"""
Process-local history store.
"""

from collections import defaultdict
from typing import Optional

from academic_bot.history.base import (
    FeedbackEntry,
    HistoryEntry,
    HistoryStore,
    filter_by_tag,
    merge_tags,
)


class InMemoryHistoryStore(HistoryStore):
    """History kept in memory for the lifetime of the process."""

    def __init__(self):
        self._entries: dict[int, list[HistoryEntry]] = defaultdict(list)
        self._feedback: list[FeedbackEntry] = []

    async def get_history(
        self, chat_id: int, tag: Optional[str] = None
    ) -> list[HistoryEntry]:
        return filter_by_tag(list(self._entries.get(chat_id, [])), tag)

    async def append_entry(
        self,
        chat_id: int,
        entry: HistoryEntry,
        tags: Optional[list[str]] = None,
    ) -> None:
        entry.chat_id = chat_id
        entry.tags = merge_tags(entry.tags, tags or [])
        self._entries[chat_id].append(entry)

    async def save_feedback(
        self,
        chat_id: int,
        draft_id: str,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> None:
        self._feedback.append(
            FeedbackEntry(chat_id=chat_id, draft_id=draft_id, rating=rating, comment=comment)
        )

    async def list_feedback(self) -> list[FeedbackEntry]:
        return list(self._feedback)

    @property
    def name(self) -> str:
        return "memory"
