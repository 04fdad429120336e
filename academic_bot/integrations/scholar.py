"""
Research API adapters: Semantic Scholar paper search and CrossRef DOI lookup.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from academic_bot.config import Settings, get_settings
from academic_bot.core.errors import AdapterError
from academic_bot.core.monitoring import monitor
from academic_bot.core.session.models import SourceRecord

logger = logging.getLogger(__name__)

SEMANTIC_SCHOLAR_SEARCH_URL = "https://api.semanticscholar.org/graph/v1/paper/search"
SEMANTIC_SCHOLAR_FIELDS = "title,authors,year,abstract,externalIds,openAccessPdf"
CROSSREF_WORKS_URL = "https://api.crossref.org/works"

# Words of the keyword list joined into one search query
QUERY_KEYWORDS = 3


def parse_paper(paper: dict[str, Any]) -> SourceRecord:
    """Map a Semantic Scholar paper payload to a SourceRecord."""
    external_ids = paper.get("externalIds") or {}
    pdf = paper.get("openAccessPdf") or {}
    return SourceRecord(
        title=(paper.get("title") or "").strip(),
        doi=external_ids.get("DOI") or None,
        authors=[a["name"] for a in paper.get("authors") or [] if a.get("name")],
        year=paper.get("year"),
        abstract=paper.get("abstract") or None,
        url=pdf.get("url") or None,
    )


class ScholarClient:
    """Semantic Scholar and CrossRef lookups."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def search(self, keywords: list[str], limit: int = 15) -> list[SourceRecord]:
        """
        Search papers published since 2020.

        Raises:
            AdapterError: when the search API cannot be reached
        """
        query = " ".join(keywords[:QUERY_KEYWORDS])
        params = {
            "query": query,
            "fields": SEMANTIC_SCHOLAR_FIELDS,
            "year": "2020-",
            "limit": str(limit),
        }
        headers = {}
        if self.settings.semantic_scholar_api_key:
            headers["x-api-key"] = self.settings.semantic_scholar_api_key

        try:
            async with aiohttp.ClientSession(headers=headers) as session:
                async with session.get(
                    SEMANTIC_SCHOLAR_SEARCH_URL,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=20),
                ) as response:
                    response.raise_for_status()
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            monitor.log_call("semantic_scholar", success=False, error=str(e))
            raise AdapterError("semantic_scholar", f"search failed: {e}") from e

        monitor.log_call("semantic_scholar")
        papers = data.get("data") or []
        logger.info(f"Semantic Scholar returned {len(papers)} papers for '{query}'")
        return [parse_paper(p) for p in papers if p.get("title")]

    async def validate_doi(self, doi: str) -> Optional[dict[str, Any]]:
        """Look the DOI up in CrossRef. Returns the work record or None."""
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    f"{CROSSREF_WORKS_URL}/{doi}",
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as response:
                    if response.status == 404:
                        monitor.log_call("crossref")
                        return None
                    response.raise_for_status()
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            monitor.log_call("crossref", success=False, error=str(e))
            logger.warning(f"CrossRef validation error for {doi}: {e}")
            return None

        monitor.log_call("crossref")
        return data.get("message")
