"""
Callback data parsing.

Inline button data is parsed once into a closed set of callback kinds with
their payload; the controller matches on the kind only.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from academic_bot.core.session.models import UserType


class CallbackKind(Enum):
    SELECT_MODE = "type"
    CONFIRM = "confirm"
    ADD_MORE = "add_more"
    CANCEL = "cancel"
    APPROVE_SOURCE = "approve_source"
    APPROVE_ALL = "approve_all"
    GENERATE_DRAFT = "generate_draft"
    CANCEL_SOURCES = "cancel_sources"
    APPROVE_DRAFT = "approve_draft"
    REVISE_DRAFT = "revise_draft"
    VIEW_REPORT = "view_report"
    DOWNLOAD_FILES = "download_files"
    APPLY_REVISION = "apply_revision"
    CANCEL_REVISION = "cancel_revision"
    RATE = "rate"
    COMMENT = "comment"
    FILTER_TAG = "filter_tag"
    NEW_REQUEST = "new_request"


# Callbacks without payload
SIMPLE_KINDS = {
    kind.value: kind
    for kind in CallbackKind
    if kind
    not in {
        CallbackKind.SELECT_MODE,
        CallbackKind.APPROVE_SOURCE,
        CallbackKind.RATE,
        CallbackKind.COMMENT,
        CallbackKind.FILTER_TAG,
    }
}

SELECT_MODE_PATTERN = re.compile(r'^type_(student|tutor|mixed)$')
APPROVE_SOURCE_PATTERN = re.compile(r'^approve_source_(\d+)$')
RATE_PATTERN = re.compile(r'^rate_([A-Za-z0-9]+)_([1-5])$')
COMMENT_PATTERN = re.compile(r'^comment_([A-Za-z0-9]+)$')
FILTER_TAG_PATTERN = re.compile(r'^filter_tag_([\w-]{1,40})$')

MAX_CALLBACK_DATA_BYTES = 64


@dataclass(frozen=True)
class Callback:
    """Parsed callback data."""
    kind: CallbackKind
    user_type: Optional[UserType] = None
    index: Optional[int] = None
    draft_id: Optional[str] = None
    rating: Optional[int] = None
    tag: Optional[str] = None


def parse_callback(data: str | None) -> Optional[Callback]:
    """
    Parse raw callback data.

    Returns:
        Parsed callback, or None for data the bot never produces
    """
    if not data:
        return None

    if data in SIMPLE_KINDS:
        return Callback(SIMPLE_KINDS[data])

    if match := SELECT_MODE_PATTERN.match(data):
        return Callback(CallbackKind.SELECT_MODE, user_type=UserType(match.group(1)))
    if match := APPROVE_SOURCE_PATTERN.match(data):
        return Callback(CallbackKind.APPROVE_SOURCE, index=int(match.group(1)))
    if match := RATE_PATTERN.match(data):
        return Callback(
            CallbackKind.RATE, draft_id=match.group(1), rating=int(match.group(2))
        )
    if match := COMMENT_PATTERN.match(data):
        return Callback(CallbackKind.COMMENT, draft_id=match.group(1))
    if match := FILTER_TAG_PATTERN.match(data):
        return Callback(CallbackKind.FILTER_TAG, tag=match.group(1))

    return None


# =============================================================================
# Builders
# =============================================================================


def mode_data(user_type: UserType) -> str:
    return f"type_{user_type.value}"


def approve_source_data(index: int) -> str:
    return f"approve_source_{index}"


def rate_data(draft_id: str, rating: int) -> str:
    return f"rate_{draft_id}_{rating}"


def comment_data(draft_id: str) -> str:
    return f"comment_{draft_id}"


def filter_tag_data(tag: str) -> str:
    return f"filter_tag_{tag}"


def fits_callback_data(data: str) -> bool:
    """Telegram rejects callback data longer than 64 bytes."""
    return len(data.encode("utf-8")) <= MAX_CALLBACK_DATA_BYTES
