"""
Session models for the Academic Paper Bot.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional
import uuid


class Phase(Enum):
    """Workflow phase of a chat."""
    IDLE = "idle"
    COLLECTING = "collecting"                              # Gathering request fragments
    AWAITING_CONFIRMATION = "awaiting_confirmation"        # Request assembled, waiting for confirm
    PROCESSING_SOURCES = "processing_sources"              # Source search in flight
    AWAITING_SOURCE_APPROVAL = "awaiting_source_approval"  # User picks sources
    DRAFTING = "drafting"                                  # Draft pipeline running
    AWAITING_FEEDBACK = "awaiting_feedback"                # Draft delivered
    AWAITING_REVISION_TEXT = "awaiting_revision_text"      # Next text is a revision request
    AWAITING_COMMENT_TEXT = "awaiting_comment_text"        # Next text is a feedback comment


class UserType(Enum):
    """Mode picked with /start."""
    STUDENT = "student"
    TUTOR = "tutor"
    MIXED = "mixed"
    GUEST = "guest"


class WaitingFor(Enum):
    """One-shot marker for the next free-text message."""
    REVISION = "revision"
    COMMENT = "comment"


class CitationFormat(Enum):
    APA = "APA"
    MLA = "MLA"
    CHICAGO = "Chicago"


# Phase entered while a waiting marker is active
WAITING_PHASES = {
    WaitingFor.REVISION: Phase.AWAITING_REVISION_TEXT,
    WaitingFor.COMMENT: Phase.AWAITING_COMMENT_TEXT,
}


@dataclass
class SourceRecord:
    """Candidate source returned by a search."""
    title: str
    doi: Optional[str] = None
    authors: list[str] = field(default_factory=list)
    year: Optional[int] = None
    abstract: Optional[str] = None
    url: Optional[str] = None
    external_citation_key: Optional[str] = None

    @property
    def dedup_key(self) -> str:
        """DOI when present, else title."""
        return self.doi or self.title

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "title": self.title,
            "doi": self.doi,
            "authors": list(self.authors),
            "year": self.year,
            "abstract": self.abstract,
            "url": self.url,
            "external_citation_key": self.external_citation_key,
        }

    def format_short(self) -> str:
        """One-line description for chat lists."""
        authors = ", ".join(self.authors[:2])
        if len(self.authors) > 2:
            authors += " et al."
        parts = [self.title]
        if authors:
            parts.append(authors)
        if self.year:
            parts.append(str(self.year))
        return ", ".join(parts)


@dataclass
class IntakeRequest:
    """Validated request assembled from the aggregated fragments."""
    topic: str
    user_type: UserType
    format: CitationFormat = CitationFormat.APA
    length: int = 5
    deadline: Optional[date] = None
    tags: list[str] = field(default_factory=list)

    @property
    def title(self) -> str:
        """First line of the topic, trimmed for display and filenames."""
        first_line = self.topic.strip().splitlines()[0] if self.topic.strip() else ""
        return first_line[:80]


@dataclass
class DraftSummary:
    """Most recently produced draft."""
    topic: str
    format: CitationFormat
    length: int
    plagiarism_score: float
    filename: str
    document_link: Optional[str] = None
    document_path: Optional[str] = None
    content: str = ""
    bibliography: str = ""
    sources_count: int = 0
    attempts: int = 1
    approved: bool = False
    draft_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary for the history store (content excluded)."""
        return {
            "draft_id": self.draft_id,
            "topic": self.topic,
            "format": self.format.value,
            "length": self.length,
            "plagiarism_score": self.plagiarism_score,
            "filename": self.filename,
            "document_link": self.document_link,
            "sources_count": self.sources_count,
            "attempts": self.attempts,
            "approved": self.approved,
            "timestamp": self.created_at.isoformat(),
        }


@dataclass
class PendingRevision:
    request: str
    suggestion: str


@dataclass
class Session:
    """Per-chat conversation state."""
    chat_id: int
    generation: int = 0
    user_type: UserType = UserType.GUEST
    phase: Phase = Phase.IDLE
    aggregated_inputs: list[str] = field(default_factory=list)
    request: Optional[IntakeRequest] = None
    pending_sources: list[SourceRecord] = field(default_factory=list)
    approved_sources: list[SourceRecord] = field(default_factory=list)
    waiting_for: Optional[WaitingFor] = None
    last_draft: Optional[DraftSummary] = None
    pending_revision: Optional[PendingRevision] = None

    @property
    def aggregated_text(self) -> str:
        return "\n".join(self.aggregated_inputs)
