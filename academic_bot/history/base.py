"""
History store interface and records.

The history store is the durable, chat-keyed append log of what happened in
a chat (mode changes, confirmed requests, delivered drafts) plus the
feedback left for drafts.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


class HistoryAction:
    """Known values of HistoryEntry.action."""
    MODE = "mode"
    REQUEST = "request"
    DRAFT = "draft"
    REVISION = "revision"


@dataclass
class HistoryEntry:
    """One append-only history record."""
    action: str
    topic: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    draft: Optional[dict[str, Any]] = None
    timestamp: datetime = field(default_factory=datetime.now)
    chat_id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "action": self.action,
            "topic": self.topic,
            "tags": list(self.tags),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.draft is not None:
            data["draft"] = self.draft
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], chat_id: Optional[int] = None) -> "HistoryEntry":
        timestamp = data.get("timestamp")
        return cls(
            action=data.get("action", ""),
            topic=data.get("topic"),
            tags=list(data.get("tags") or []),
            draft=data.get("draft"),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(),
            chat_id=chat_id,
        )

    @property
    def document_link(self) -> Optional[str]:
        return (self.draft or {}).get("document_link")


@dataclass
class FeedbackEntry:
    """Rating and/or comment for a draft."""
    chat_id: int
    draft_id: str
    rating: Optional[int] = None
    comment: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


def merge_tags(*groups: list[str]) -> list[str]:
    """Unique tags in order of first appearance."""
    merged: list[str] = []
    for group in groups:
        for tag in group:
            if tag not in merged:
                merged.append(tag)
    return merged


def filter_by_tag(entries: list[HistoryEntry], tag: Optional[str]) -> list[HistoryEntry]:
    if not tag:
        return entries
    return [entry for entry in entries if tag in entry.tags]


class HistoryStore(ABC):
    """Abstract base class for history backends."""

    async def init(self) -> None:
        """Prepare the backend (create tables, open connections)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def get_history(
        self, chat_id: int, tag: Optional[str] = None
    ) -> list[HistoryEntry]:
        """
        Full ordered history of a chat.

        Args:
            chat_id: Chat identifier
            tag: Only return entries carrying this tag

        Returns:
            Entries oldest first
        """
        pass

    @abstractmethod
    async def append_entry(
        self,
        chat_id: int,
        entry: HistoryEntry,
        tags: Optional[list[str]] = None,
    ) -> None:
        """Append an entry; `tags` are merged into the entry's own tags."""
        pass

    @abstractmethod
    async def save_feedback(
        self,
        chat_id: int,
        draft_id: str,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> None:
        """Persist a rating or a comment for a draft."""
        pass

    @abstractmethod
    async def list_feedback(self) -> list[FeedbackEntry]:
        """All feedback, oldest first."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name."""
        pass
