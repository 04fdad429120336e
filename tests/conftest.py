"""
Shared fixtures: settings, a recording chat transport and scripted services.
"""

import asyncio
from pathlib import Path
from typing import Any, Optional

import pytest

from academic_bot.config import Settings
from academic_bot.core.conversation import ConversationController
from academic_bot.core.drafts.document import DocumentFile
from academic_bot.core.errors import AdapterError
from academic_bot.core.monitoring import ApiMonitor
from academic_bot.core.services import ResearchServices
from academic_bot.core.session.models import CitationFormat, SourceRecord
from academic_bot.history import InMemoryHistoryStore

ADMIN_CHAT_ID = 999


def make_source(index: int, year: int = 2022, doi: Optional[str] = "auto") -> SourceRecord:
    return SourceRecord(
        title=f"Paper {index}",
        doi=f"10.1000/paper.{index}" if doi == "auto" else doi,
        authors=[f"Author {index}"],
        year=year,
        abstract=f"Abstract {index}",
    )


class FakeTransport:
    """Records everything the controller sends."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.messages: list[tuple[int, str, Any]] = []
        self.documents: list[tuple[int, Path, Optional[str]]] = []

    async def send_message(self, chat_id, text, keyboard=None):
        if self.delay:
            await asyncio.sleep(self.delay)
        self.messages.append((chat_id, text, keyboard))

    async def send_document(self, chat_id, path, caption=None):
        self.documents.append((chat_id, path, caption))

    def texts(self, chat_id: int) -> list[str]:
        return [text for cid, text, _ in self.messages if cid == chat_id]

    def last(self, chat_id: int) -> tuple[str, Any]:
        for cid, text, keyboard in reversed(self.messages):
            if cid == chat_id:
                return text, keyboard
        raise AssertionError(f"nothing sent to chat {chat_id}")


class FakeServices(ResearchServices):
    """Scripted research services with call counters."""

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.sources = [make_source(i) for i in range(1, 4)]
        self.plagiarism_scores = [0.05]
        self.ocr_text: Optional[str] = "Climate change impact on agriculture"
        self.transcript: Optional[str] = "Ten pages please"
        self.search_error: Optional[Exception] = None
        self.draft_error: Optional[Exception] = None
        self.invalid_dois: set[str] = set()
        self.link: Optional[str] = "https://drive.example/doc"
        self.calls: dict[str, int] = {}
        self.draft_topics: list[str] = []
        self.revision_notes: list[Optional[str]] = []
        self.prior_topics: list[list[str]] = []
        self.hooks: dict[str, Any] = {}

    def _count(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    async def _hook(self, name: str) -> None:
        hook = self.hooks.get(name)
        if hook is not None:
            await hook()

    async def perform_ocr(self, image_ref: str) -> Optional[str]:
        self._count("perform_ocr")
        await self._hook("perform_ocr")
        return self.ocr_text

    async def transcribe_voice(self, audio_ref: str) -> Optional[str]:
        self._count("transcribe_voice")
        return self.transcript

    async def generate_keywords(self, topic: str, prior_topics: list[str]) -> list[str]:
        self._count("generate_keywords")
        self.prior_topics.append(list(prior_topics))
        return [topic]

    async def search_sources(self, keywords: list[str], limit: int) -> list[SourceRecord]:
        self._count("search_sources")
        await self._hook("search_sources")
        if self.search_error is not None:
            raise self.search_error
        return list(self.sources)

    async def validate_doi(self, doi: str) -> Optional[dict[str, Any]]:
        self._count("validate_doi")
        return None if doi in self.invalid_dois else {"DOI": doi}

    async def import_citation(self, source: SourceRecord) -> Optional[str]:
        self._count("import_citation")
        return f"KEY{source.doi[-1]}" if source.doi else None

    async def generate_draft(
        self,
        topic: str,
        sources: list[SourceRecord],
        citation_format: CitationFormat,
        length: int,
        revision_notes: str | None = None,
    ) -> str:
        self._count("generate_draft")
        self.draft_topics.append(topic)
        self.revision_notes.append(revision_notes)
        await self._hook("generate_draft")
        if self.draft_error is not None:
            raise self.draft_error
        return f"# {topic}\n\nDraft body citing {len(sources)} source(s)."

    async def format_bibliography(
        self, sources: list[SourceRecord], citation_format: CitationFormat
    ) -> str:
        self._count("format_bibliography")
        return "\n".join(f"{s.title}. DOI: {s.doi}" for s in sources)

    async def check_plagiarism(self, text: str) -> float:
        index = self.calls.get("check_plagiarism", 0)
        self._count("check_plagiarism")
        return self.plagiarism_scores[min(index, len(self.plagiarism_scores) - 1)]

    async def build_document(self, text: str, bibliography: str, topic: str) -> DocumentFile:
        self._count("build_document")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"draft_{self.calls['build_document']}.docx"
        path.write_text(text)
        return DocumentFile(filename=path.name, path=path)

    async def upload_document(self, path: Path, owner_id: str) -> Optional[str]:
        self._count("upload_document")
        return self.link

    async def suggest_revision(self, topic: str, draft_text: str, request: str) -> str:
        self._count("suggest_revision")
        await self._hook("suggest_revision")
        return f"Suggestion for: {request}"


class FailingHistoryStore(InMemoryHistoryStore):
    """History store whose writes always fail."""

    async def append_entry(self, chat_id, entry, tags=None):
        raise AdapterError("google", "sheets unavailable")

    async def save_feedback(self, chat_id, draft_id, rating=None, comment=None):
        raise AdapterError("google", "sheets unavailable")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        telegram_bot_token="test-token",
        admin_chat_id=ADMIN_CHAT_ID,
        data_dir=tmp_path,
        history_backend="memory",
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def services(tmp_path) -> FakeServices:
    return FakeServices(tmp_path / "drafts")


@pytest.fixture
def history() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def controller(transport, services, history, settings) -> ConversationController:
    return ConversationController(
        transport=transport,
        services=services,
        history=history,
        settings=settings,
        monitor=ApiMonitor(),
    )
