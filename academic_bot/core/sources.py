"""
Source selection: keyword parsing, candidate filtering, de-duplication and
the search pipeline that ties the research adapters together.
"""

import json
import logging
import re
from typing import TYPE_CHECKING

from academic_bot.core.session.models import SourceRecord
from academic_bot.core.validation import MIN_SOURCE_YEAR, validate_data

if TYPE_CHECKING:
    from academic_bot.core.services import ResearchServices

logger = logging.getLogger(__name__)

MAX_KEYWORDS = 10

# Candidates from a search page that are validated
MAX_CANDIDATES = 10

LIST_MARKER_PATTERN = re.compile(r'^\s*(?:[-*•]|\d+[.)])\s*')


def fallback_keywords(topic: str) -> list[str]:
    """Keywords derived from the topic when the LLM is unavailable."""
    return [topic, f"{topic} research", f"{topic} study", f"{topic} analysis"]


def parse_keywords(content: str) -> list[str]:
    """
    Read keywords from an LLM answer.

    A JSON array is preferred; otherwise every non-empty line is taken,
    with list markers and quotes stripped.
    """
    content = content.strip()
    start, end = content.find("["), content.rfind("]")
    if start != -1 and end > start:
        try:
            data = json.loads(content[start:end + 1])
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list):
            keywords = [str(item).strip() for item in data if str(item).strip()]
            if keywords:
                return keywords[:MAX_KEYWORDS]

    keywords = []
    for line in content.splitlines():
        line = LIST_MARKER_PATTERN.sub("", line).strip().strip('"\',')
        if line:
            keywords.append(line)
    return keywords[:MAX_KEYWORDS]


def deduplicate_sources(sources: list[SourceRecord]) -> list[SourceRecord]:
    """
    Drop repeated sources, keyed by DOI when present, else by title.

    The first occurrence is kept and the original order preserved.
    """
    seen: set[str] = set()
    unique = []
    for source in sources:
        key = source.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(source)
    return unique


def select_candidates(
    sources: list[SourceRecord], limit: int = MAX_CANDIDATES
) -> list[SourceRecord]:
    """First `limit` results that carry a DOI and are recent enough."""
    return [
        source
        for source in sources[:limit]
        if source.doi and source.year is not None and source.year >= MIN_SOURCE_YEAR
    ]


def is_valid_source(source: SourceRecord) -> bool:
    result = validate_data("source", source.to_dict())
    if not result.is_valid:
        logger.info(f"Dropping source '{source.title}': {result.errors}")
    return result.is_valid


async def find_sources(
    services: "ResearchServices",
    topic: str,
    prior_topics: list[str] | None = None,
    limit: int = 15,
) -> list[SourceRecord]:
    """
    Run the source pipeline for a topic.

    keywords -> search -> candidate filter -> DOI validation -> schema check
    -> de-duplication -> citation import.

    Raises:
        AdapterError: when the search itself fails
    """
    keywords = await services.generate_keywords(topic, prior_topics or [])
    logger.info(f"Keywords for '{topic[:50]}': {keywords}")

    found = await services.search_sources(keywords, limit)
    logger.info(f"Search returned {len(found)} sources")

    validated = []
    for source in select_candidates(found):
        if await services.validate_doi(source.doi) is None:
            logger.info(f"DOI {source.doi} not confirmed, skipping")
            continue
        if is_valid_source(source):
            validated.append(source)

    unique = deduplicate_sources(validated)
    for source in unique:
        source.external_citation_key = await services.import_citation(source)

    logger.info(f"{len(unique)} unique, valid sources found")
    return unique
