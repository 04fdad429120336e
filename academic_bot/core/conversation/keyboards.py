"""
Inline keyboards for the conversation flow.

Keyboards are plain rows of (label, callback data) so the controller does not
depend on the chat transport; the transport renders them.
"""

from dataclasses import dataclass

from academic_bot.core.conversation.callbacks import (
    CallbackKind,
    approve_source_data,
    comment_data,
    filter_tag_data,
    fits_callback_data,
    mode_data,
    rate_data,
)
from academic_bot.core.session.models import SourceRecord, UserType


@dataclass(frozen=True)
class Button:
    text: str
    data: str


Keyboard = list[list[Button]]

SOURCE_LABEL_CHARS = 40


def get_mode_keyboard() -> Keyboard:
    """Keyboard to pick the user mode."""
    return [
        [Button("🎓 Student", mode_data(UserType.STUDENT))],
        [Button("👨‍🏫 Tutor", mode_data(UserType.TUTOR))],
        [Button("🔄 Mixed", mode_data(UserType.MIXED))],
    ]


def get_intake_keyboard() -> Keyboard:
    """Keyboard shown while the request is being collected."""
    return [
        [Button("✅ Confirm request", CallbackKind.CONFIRM.value)],
        [
            Button("➕ Add more", CallbackKind.ADD_MORE.value),
            Button("❌ Cancel", CallbackKind.CANCEL.value),
        ],
    ]


def get_sources_keyboard(
    sources: list[SourceRecord], approved: list[SourceRecord]
) -> Keyboard:
    """One approve button per source plus batch actions."""
    keyboard: Keyboard = []
    for i, source in enumerate(sources):
        mark = "✅" if any(s is source for s in approved) else "➕"
        title = source.title
        if len(title) > SOURCE_LABEL_CHARS:
            title = title[:SOURCE_LABEL_CHARS - 3] + "..."
        keyboard.append([Button(f"{mark} {i + 1}. {title}", approve_source_data(i))])

    keyboard.append([Button("✅ Approve all", CallbackKind.APPROVE_ALL.value)])
    keyboard.append(
        [
            Button("📝 Generate draft", CallbackKind.GENERATE_DRAFT.value),
            Button("❌ Cancel", CallbackKind.CANCEL_SOURCES.value),
        ]
    )
    return keyboard


def get_draft_keyboard() -> Keyboard:
    """Actions for a delivered draft."""
    return [
        [Button("✅ Approve draft", CallbackKind.APPROVE_DRAFT.value)],
        [Button("📝 Request revision", CallbackKind.REVISE_DRAFT.value)],
        [Button("📊 View report", CallbackKind.VIEW_REPORT.value)],
        [Button("📁 Download files", CallbackKind.DOWNLOAD_FILES.value)],
    ]


def get_revision_keyboard() -> Keyboard:
    return [
        [
            Button("✅ Apply changes", CallbackKind.APPLY_REVISION.value),
            Button("❌ Cancel", CallbackKind.CANCEL_REVISION.value),
        ]
    ]


def get_rating_keyboard(draft_id: str) -> Keyboard:
    """1-5 star rating plus a comment button."""
    return [
        [Button("⭐" * rating, rate_data(draft_id, rating)) for rating in range(1, 6)],
        [Button("💬 Add comment", comment_data(draft_id))],
    ]


def get_history_keyboard(tags: list[str], limit: int = 5) -> Keyboard:
    # Tags too long for a button stay in the history text only
    usable = [tag for tag in tags if fits_callback_data(filter_tag_data(tag))]
    keyboard: Keyboard = [[Button(f"#{tag}", filter_tag_data(tag))] for tag in usable[:limit]]
    keyboard.append([Button("🆕 New request", CallbackKind.NEW_REQUEST.value)])
    return keyboard


def get_new_request_keyboard() -> Keyboard:
    return [[Button("🆕 New request", CallbackKind.NEW_REQUEST.value)]]
