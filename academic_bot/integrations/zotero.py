"""
Zotero adapter: citation import and bibliography formatting.
"""

import asyncio
import logging
import re
from typing import Optional

import aiohttp

from academic_bot.config import Settings, get_settings
from academic_bot.core.monitoring import monitor
from academic_bot.core.session.models import CitationFormat, SourceRecord

logger = logging.getLogger(__name__)

ZOTERO_API_URL = "https://api.zotero.org"

# CSL style identifiers understood by the Zotero web API
CITATION_STYLES = {
    CitationFormat.APA: "apa",
    CitationFormat.MLA: "modern-language-association",
    CitationFormat.CHICAGO: "chicago-note-bibliography",
}

HTML_TAG_PATTERN = re.compile(r"<[^>]+>")


def fallback_citation(source: SourceRecord) -> str:
    return f"{source.title}. DOI: {source.doi}"


class ZoteroClient:
    """Client for the Zotero user library."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @property
    def configured(self) -> bool:
        return self.settings.zotero_configured

    @property
    def _items_url(self) -> str:
        return f"{ZOTERO_API_URL}/users/{self.settings.zotero_user_id}/items"

    @property
    def _headers(self) -> dict[str, str]:
        return {"Zotero-API-Key": self.settings.zotero_api_key or ""}

    async def import_citation(self, source: SourceRecord) -> Optional[str]:
        """Add the source to the library. Returns the item key or None."""
        if not self.configured:
            return None

        item = {
            "itemType": "journalArticle",
            "title": source.title,
            "creators": [
                {"creatorType": "author", "name": name} for name in source.authors
            ],
            "date": str(source.year) if source.year else "",
            "DOI": source.doi or "",
            "abstractNote": source.abstract or "",
            "url": source.url or "",
        }

        try:
            async with aiohttp.ClientSession(headers=self._headers) as session:
                async with session.post(
                    self._items_url,
                    json=[item],
                    timeout=aiohttp.ClientTimeout(total=15),
                ) as response:
                    response.raise_for_status()
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            monitor.log_call("zotero", success=False, error=str(e))
            logger.warning(f"Zotero import failed for '{source.title}': {e}")
            return None

        monitor.log_call("zotero")
        # Keys of the "success" map are batch indexes, values are item keys
        success = data.get("success") or {}
        return next(iter(success.values()), None)

    async def _format_item(self, key: str, style: str) -> Optional[str]:
        try:
            async with aiohttp.ClientSession(headers=self._headers) as session:
                async with session.get(
                    f"{self._items_url}/{key}",
                    params={"format": "bib", "style": style},
                    timeout=aiohttp.ClientTimeout(total=15),
                ) as response:
                    response.raise_for_status()
                    text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            monitor.log_call("zotero", success=False, error=str(e))
            logger.warning(f"Zotero formatting failed for {key}: {e}")
            return None

        monitor.log_call("zotero")
        return " ".join(HTML_TAG_PATTERN.sub("", text).split())

    async def format_bibliography(
        self,
        sources: list[SourceRecord],
        citation_format: CitationFormat = CitationFormat.APA,
    ) -> str:
        """
        Bibliography with one entry per source.

        Sources without a library key, or whose formatting fails, get a
        plain "title. DOI" entry.
        """
        style = CITATION_STYLES[citation_format]
        entries = []
        for source in sources:
            entry = None
            if source.external_citation_key and self.configured:
                entry = await self._format_item(source.external_citation_key, style)
            entries.append(entry or fallback_citation(source))
        return "\n".join(entries)
