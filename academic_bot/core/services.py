"""
Research services: the adapter surface used by the conversation controller.

Every external capability is one coroutine with plain data in and plain
data (or AdapterError) out. DefaultServices wires the real clients.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from groq import APIError

from academic_bot.config import Settings, get_settings
from academic_bot.core.drafts.document import DocumentFile, build_document
from academic_bot.core.errors import AdapterError
from academic_bot.core.prompts import (
    DRAFT_SYSTEM_PROMPT,
    KEYWORDS_PROMPT,
    MAX_DRAFT_TOKENS,
    REVISION_PROMPT,
    REVISION_SYSTEM_PROMPT,
    TOKENS_PER_PAGE,
    build_draft_prompt,
    format_history_topics,
)
from academic_bot.core.session.models import CitationFormat, SourceRecord
from academic_bot.core.sources import fallback_keywords, parse_keywords
from academic_bot.integrations.eden import EdenAIClient
from academic_bot.integrations.google_drive import DriveUploader
from academic_bot.integrations.llm import BaseLLM, get_default_llm
from academic_bot.integrations.scholar import ScholarClient
from academic_bot.integrations.zotero import ZoteroClient

logger = logging.getLogger(__name__)

REVISION_EXCERPT_CHARS = 3000


class ResearchServices(ABC):
    """Adapters the controller and the pipelines depend on."""

    @abstractmethod
    async def perform_ocr(self, image_ref: str) -> Optional[str]:
        """Text found in the image, or None."""

    @abstractmethod
    async def transcribe_voice(self, audio_ref: str) -> Optional[str]:
        """Transcript of the voice note, or None."""

    @abstractmethod
    async def generate_keywords(self, topic: str, prior_topics: list[str]) -> list[str]:
        """Search keywords; never fails."""

    @abstractmethod
    async def search_sources(self, keywords: list[str], limit: int) -> list[SourceRecord]:
        """Candidate sources. Raises AdapterError."""

    @abstractmethod
    async def validate_doi(self, doi: str) -> Optional[dict[str, Any]]:
        """Registry record for the DOI, or None."""

    @abstractmethod
    async def import_citation(self, source: SourceRecord) -> Optional[str]:
        """Citation manager key, or None."""

    @abstractmethod
    async def generate_draft(
        self,
        topic: str,
        sources: list[SourceRecord],
        citation_format: CitationFormat,
        length: int,
        revision_notes: str | None = None,
    ) -> str:
        """Draft text. Raises AdapterError."""

    @abstractmethod
    async def format_bibliography(
        self, sources: list[SourceRecord], citation_format: CitationFormat
    ) -> str:
        """Formatted reference list."""

    @abstractmethod
    async def check_plagiarism(self, text: str) -> float:
        """Score in [0, 1]."""

    @abstractmethod
    async def build_document(self, text: str, bibliography: str, topic: str) -> DocumentFile:
        """Packaged document."""

    @abstractmethod
    async def upload_document(self, path: Path, owner_id: str) -> Optional[str]:
        """Shareable link, or None."""

    @abstractmethod
    async def suggest_revision(self, topic: str, draft_text: str, request: str) -> str:
        """Suggested changes for a revision request. Raises AdapterError."""


class DefaultServices(ResearchServices):
    """Services backed by Groq, Eden AI, Semantic Scholar, CrossRef, Zotero and Drive."""

    def __init__(self, settings: Settings | None = None, llm: BaseLLM | None = None):
        self.settings = settings or get_settings()
        self._llm = llm
        self.eden = EdenAIClient(self.settings)
        self.scholar = ScholarClient(self.settings)
        self.zotero = ZoteroClient(self.settings)
        self.drive = DriveUploader(self.settings)

    @property
    def llm(self) -> BaseLLM:
        if self._llm is None:
            try:
                self._llm = get_default_llm()
            except ValueError as e:
                raise AdapterError("groq", str(e), retryable=False) from e
        return self._llm

    async def _complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1024,
        timeout: float | None = None,
    ) -> str:
        try:
            response = await self.llm.generate(
                prompt=prompt,
                system_prompt=system_prompt,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except APIError as e:
            raise AdapterError("groq", str(e)) from e
        if response.truncated:
            logger.warning(f"{self.llm.name} completion cut off at {max_tokens} tokens")
        return response.content

    async def perform_ocr(self, image_ref: str) -> Optional[str]:
        return await self.eden.perform_ocr(image_ref)

    async def transcribe_voice(self, audio_ref: str) -> Optional[str]:
        return await self.eden.transcribe(audio_ref)

    async def generate_keywords(self, topic: str, prior_topics: list[str]) -> list[str]:
        prompt = KEYWORDS_PROMPT.format(
            topic=topic, history=format_history_topics(prior_topics)
        )
        try:
            content = await self._complete(prompt, max_tokens=200)
        except AdapterError as e:
            logger.warning(f"Keyword generation failed, using fallback: {e}")
            return fallback_keywords(topic)
        return parse_keywords(content) or fallback_keywords(topic)

    async def search_sources(self, keywords: list[str], limit: int) -> list[SourceRecord]:
        return await self.scholar.search(keywords, limit)

    async def validate_doi(self, doi: str) -> Optional[dict[str, Any]]:
        return await self.scholar.validate_doi(doi)

    async def import_citation(self, source: SourceRecord) -> Optional[str]:
        return await self.zotero.import_citation(source)

    async def generate_draft(
        self,
        topic: str,
        sources: list[SourceRecord],
        citation_format: CitationFormat,
        length: int,
        revision_notes: str | None = None,
    ) -> str:
        prompt = build_draft_prompt(
            topic, sources, citation_format.value, length, revision_notes
        )
        content = await self._complete(
            prompt,
            system_prompt=DRAFT_SYSTEM_PROMPT,
            temperature=0.7,
            max_tokens=min(length * TOKENS_PER_PAGE, MAX_DRAFT_TOKENS),
            timeout=self.settings.draft_timeout_seconds,
        )
        if not content.strip():
            raise AdapterError("groq", "empty draft returned")
        return content

    async def format_bibliography(
        self, sources: list[SourceRecord], citation_format: CitationFormat
    ) -> str:
        return await self.zotero.format_bibliography(sources, citation_format)

    async def check_plagiarism(self, text: str) -> float:
        return await self.eden.check_plagiarism(text)

    async def build_document(self, text: str, bibliography: str, topic: str) -> DocumentFile:
        return await asyncio.to_thread(
            build_document, text, bibliography, topic, self.settings.drafts_dir
        )

    async def upload_document(self, path: Path, owner_id: str) -> Optional[str]:
        return await self.drive.upload_document(path, owner_id)

    async def suggest_revision(self, topic: str, draft_text: str, request: str) -> str:
        prompt = REVISION_PROMPT.format(
            topic=topic,
            excerpt=draft_text[:REVISION_EXCERPT_CHARS],
            request=request,
        )
        return await self._complete(
            prompt, system_prompt=REVISION_SYSTEM_PROMPT, max_tokens=600
        )
