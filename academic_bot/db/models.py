"""
SQLAlchemy models for the Academic Paper Bot history store.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


# =============================================================================
# CHAT PROFILE
# =============================================================================


class Chat(Base):
    """One row per chat, mirroring the spreadsheet row layout."""

    __tablename__ = "chats"

    chat_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)

    role: Mapped[str] = mapped_column(String(20), default="guest")
    student_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    deadline: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Delivery
    folder_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    document_link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sharing_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    payment_status: Mapped[str] = mapped_column(String(20), default="pending")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    entries: Mapped[list["HistoryRecord"]] = relationship(
        back_populates="chat", order_by="HistoryRecord.id"
    )

    def __repr__(self) -> str:
        return f"<Chat(chat_id={self.chat_id}, role='{self.role}')>"


# =============================================================================
# HISTORY & FEEDBACK
# =============================================================================


class HistoryRecord(Base):
    """Append-only history entry of a chat."""

    __tablename__ = "history_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    chat_id: Mapped[int] = mapped_column(ForeignKey("chats.chat_id"), nullable=False)

    action: Mapped[str] = mapped_column(String(50), nullable=False)  # mode, request, draft
    topic: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[str] = mapped_column(Text, default="[]")  # JSON list
    draft: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON draft summary

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    chat: Mapped["Chat"] = relationship(back_populates="entries")

    __table_args__ = (Index("ix_history_entries_chat", "chat_id"),)

    def __repr__(self) -> str:
        return f"<HistoryRecord(id={self.id}, chat={self.chat_id}, action='{self.action}')>"


class FeedbackRecord(Base):
    """Rating and optional comment left for a draft."""

    __tablename__ = "feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    chat_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    draft_id: Mapped[str] = mapped_column(String(32), nullable=False)

    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (Index("ix_feedback_draft", "draft_id"),)

    def __repr__(self) -> str:
        return f"<FeedbackRecord(draft={self.draft_id}, rating={self.rating})>"
