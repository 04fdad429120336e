"""
SQL history store (async SQLAlchemy, SQLite by default).
"""

import json
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academic_bot.db.models import Chat, FeedbackRecord, HistoryRecord
from academic_bot.db.sqlite import Database
from academic_bot.history.base import (
    FeedbackEntry,
    HistoryAction,
    HistoryEntry,
    HistoryStore,
    filter_by_tag,
    merge_tags,
)

logger = logging.getLogger(__name__)


class SqlHistoryStore(HistoryStore):
    """History persisted in the chats / history_entries / feedback tables."""

    def __init__(self, database: Database):
        self.db = database

    async def init(self) -> None:
        await self.db.init()

    async def close(self) -> None:
        await self.db.close()

    async def get_history(
        self, chat_id: int, tag: Optional[str] = None
    ) -> list[HistoryEntry]:
        async with self.db.session() as session:
            stmt = (
                select(HistoryRecord)
                .where(HistoryRecord.chat_id == chat_id)
                .order_by(HistoryRecord.id)
            )
            records = (await session.execute(stmt)).scalars().all()

        entries = [
            HistoryEntry(
                action=record.action,
                topic=record.topic,
                tags=json.loads(record.tags or "[]"),
                draft=json.loads(record.draft) if record.draft else None,
                timestamp=record.created_at,
                chat_id=record.chat_id,
            )
            for record in records
        ]
        return filter_by_tag(entries, tag)

    async def append_entry(
        self,
        chat_id: int,
        entry: HistoryEntry,
        tags: Optional[list[str]] = None,
    ) -> None:
        entry.chat_id = chat_id
        entry.tags = merge_tags(entry.tags, tags or [])

        async with self.db.session() as session:
            chat = await self._get_or_create_chat(session, chat_id)

            # Keep the chat profile in step with the latest entry
            if entry.action == HistoryAction.MODE and entry.topic:
                chat.role = entry.topic
            if entry.action == HistoryAction.DRAFT and entry.document_link:
                chat.document_link = entry.document_link
                chat.sharing_enabled = True

            session.add(
                HistoryRecord(
                    chat_id=chat_id,
                    action=entry.action,
                    topic=entry.topic,
                    tags=json.dumps(entry.tags),
                    draft=json.dumps(entry.draft) if entry.draft is not None else None,
                    created_at=entry.timestamp,
                )
            )

        logger.debug(f"History entry '{entry.action}' stored for chat {chat_id}")

    async def save_feedback(
        self,
        chat_id: int,
        draft_id: str,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> None:
        async with self.db.session() as session:
            session.add(
                FeedbackRecord(
                    chat_id=chat_id,
                    draft_id=draft_id,
                    rating=rating,
                    comment=comment,
                )
            )

    async def list_feedback(self) -> list[FeedbackEntry]:
        async with self.db.session() as session:
            stmt = select(FeedbackRecord).order_by(FeedbackRecord.id)
            records = (await session.execute(stmt)).scalars().all()

        return [
            FeedbackEntry(
                chat_id=record.chat_id,
                draft_id=record.draft_id,
                rating=record.rating,
                comment=record.comment,
                timestamp=record.created_at,
            )
            for record in records
        ]

    async def _get_or_create_chat(self, session: AsyncSession, chat_id: int) -> Chat:
        """Get existing chat row or create a new one."""
        chat = await session.get(Chat, chat_id)
        if chat is None:
            chat = Chat(chat_id=chat_id)
            session.add(chat)
            await session.flush()
        return chat

    @property
    def name(self) -> str:
        return "sql"
