"""
Intake parsing: turns aggregated chat fragments into a validated request.
Citation format, page count, deadline and #tags are picked out of the text.
"""

import logging
import re
from datetime import date

from academic_bot.core.errors import SchemaValidationError
from academic_bot.core.session.models import CitationFormat, IntakeRequest, UserType
from academic_bot.core.validation import IntakeSchema, validate_data

logger = logging.getLogger(__name__)


FORMAT_PATTERN = re.compile(r'\b(APA|MLA|Chicago)\b', re.IGNORECASE)

# "10 pages", "10-page", "10 pp"
LENGTH_PATTERN = re.compile(r'\b(\d{1,3})\s*-?\s*(?:pages?|pp)\b', re.IGNORECASE)

DEADLINE_PATTERN = re.compile(r'\b(\d{4}-\d{2}-\d{2})\b')

TAG_PATTERN = re.compile(r'(?<!\w)#([\w-]{1,40})')

# Fragment prefixes added for media input
OCR_PREFIX = "[OCR from image]: "
VOICE_PREFIX = "[Voice transcription]: "


def detect_format(text: str) -> str | None:
    match = FORMAT_PATTERN.search(text)
    if not match:
        return None
    value = match.group(1).lower()
    return {"apa": "APA", "mla": "MLA", "chicago": "Chicago"}[value]


def detect_length(text: str) -> int | None:
    match = LENGTH_PATTERN.search(text)
    return int(match.group(1)) if match else None


def detect_deadline(text: str) -> str | None:
    """Return the first ISO date in the text, unparsed."""
    match = DEADLINE_PATTERN.search(text)
    return match.group(1) if match else None


def extract_tags(text: str) -> list[str]:
    """Unique lower-cased #hashtags in order of appearance."""
    tags: list[str] = []
    for tag in TAG_PATTERN.findall(text):
        tag = tag.lower()
        if tag not in tags:
            tags.append(tag)
    return tags


def strip_tags(text: str) -> str:
    stripped = TAG_PATTERN.sub("", text)
    return "\n".join(line.strip() for line in stripped.splitlines() if line.strip())


def build_intake(fragments: list[str], user_type: UserType) -> IntakeRequest:
    """
    Build the intake request from aggregated fragments.

    Raises:
        SchemaValidationError: with per-field messages when the request is invalid
    """
    text = "\n".join(fragments)

    payload: dict = {
        "topic": strip_tags(text),
        "user_type": user_type.value,
        "tags": extract_tags(text),
    }
    if (fmt := detect_format(text)) is not None:
        payload["format"] = fmt
    if (length := detect_length(text)) is not None:
        payload["length"] = length
    if (deadline := detect_deadline(text)) is not None:
        payload["deadline"] = deadline

    result = validate_data("intake", payload)
    if not result.is_valid:
        logger.info(f"Intake validation failed: {result.errors}")
        raise SchemaValidationError(result.errors)

    data: IntakeSchema = result.data  # type: ignore[assignment]
    return IntakeRequest(
        topic=data.topic,
        user_type=UserType(data.user_type),
        format=CitationFormat(data.format),
        length=data.length,
        deadline=data.deadline,
        tags=data.tags,
    )


def is_overdue(request: IntakeRequest) -> bool:
    return request.deadline is not None and request.deadline < date.today()
