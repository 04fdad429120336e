"""
Reply texts of the conversation flow (HTML).
"""

from html import escape

from academic_bot.core.session.models import DraftSummary, SourceRecord

TELEGRAM_CHUNK_SIZE = 4000
PREVIEW_CHUNKS = 2


WELCOME_MESSAGE = """👋 <b>Welcome to the Academic Paper Assistant!</b>

I help you go from an assignment to a cited draft:
1. Describe your assignment (text, photo or voice note)
2. Approve the sources I find
3. Get a draft with citations, a plagiarism check and a Word document

<b>Choose your mode:</b>"""


HELP_MESSAGE = """🤖 <b>How to use the bot:</b>

<b>Describe the assignment:</b>
• Send the topic as text, a photo of the task or a voice note
• Mention the citation style (APA, MLA, Chicago), length ("10 pages"),
  deadline (2025-05-01) and #tags if you like
• Press «✅ Confirm request» or write <code>done</code> when finished

<b>Commands:</b>
/start - choose your mode
/status - where you are in the workflow
/sources - sources found for the request
/revise - request a revision of the last draft
/report - report on the last draft
/files - your generated documents
/history - your previous requests
/cancel - start over
/help - this help"""


MODE_SELECTED = "✅ Mode set to <b>{mode}</b>.\n\nNow send me your assignment: text, a photo or a voice note."

FRAGMENT_RECEIVED = "📥 Got it ({count} part(s) so far). Add more details or confirm the request."
OCR_RECEIVED = "🖼 Text recognised from the image and added ({count} part(s) so far)."
VOICE_RECEIVED = "🎙 Voice note transcribed and added ({count} part(s) so far)."
PROCESSING_IMAGE = "🔍 Reading the image..."
PROCESSING_VOICE = "🎧 Transcribing the voice note..."
OCR_FAILED = "😔 I couldn't read text from this image. Please send a clearer photo or type the task."
VOICE_FAILED = "😔 I couldn't transcribe this voice note. Please try again or type the task."

REQUEST_SUMMARY = """📋 <b>Your request:</b>

{text}

Confirm to start the source search, or add more details."""

ADD_MORE = "➕ Send more details: text, a photo or a voice note."
NOTHING_TO_CONFIRM = "✍️ Nothing to confirm yet. Send me your assignment first."

REQUEST_CONFIRMED = """✅ <b>Request confirmed</b>

📝 <b>Topic:</b> {topic}
📄 <b>Format:</b> {format}
📊 <b>Length:</b> ~{length} pages{deadline}

🔍 Searching for sources..."""

DEADLINE_PASSED = "⚠️ The deadline you gave is already in the past."

NO_SOURCES = "😔 I couldn't find suitable sources (2020 or later, with a DOI). Try rephrasing the topic."

SOURCES_FOUND = """📚 <b>Found {count} source(s):</b>

{sources}

Approve the sources to cite, then press «📝 Generate draft»."""

SOURCE_APPROVED = "✅ Source {index} approved ({count} selected)."
ALL_SOURCES_APPROVED = "✅ All {count} sources approved."
NO_APPROVED_SOURCES = "☝️ Approve at least one source first."
SOURCES_CANCELLED = "❌ Source selection cancelled. Send a new topic whenever you're ready."

DRAFT_COMPLETE = """✅ <b>Draft complete!</b>

📝 <b>Topic:</b> {topic}
📄 <b>Format:</b> {format}
📊 <b>Length:</b> ~{length} pages
🔍 <b>Plagiarism:</b> {plagiarism:.1f}%
📚 <b>Sources:</b> {sources}{link}"""

PREVIEW = "📖 <b>Preview {index}:</b>\n{text}"

MANUAL_REVIEW = """⚠️ <b>Manual review required</b>

The draft still scored {score:.1f}% on the plagiarism check after {attempts} attempt(s).
An operator has been notified. You can adjust the sources and try again."""

DRAFT_APPROVED = """🎉 <b>Draft approved!</b>

⭐ How satisfied are you with the draft?"""

REVISION_PROMPT = "📝 Describe what should be changed in the draft."
REVISION_SUGGESTION = """💡 <b>Suggested changes:</b>

{suggestion}

Apply these changes to regenerate the draft?"""
REVISION_CANCELLED = "👌 Revision cancelled. The current draft stays as it is."
REVISION_APPLYING = "🔄 Applying the revision..."

RATING_THANKS = "🙏 Thank you for rating the draft {rating}⭐!"
LOW_RATING = "😔 Sorry the draft didn't meet your expectations. What should be improved? Send a comment."
COMMENT_PROMPT = "💬 Send your comment about the draft."
COMMENT_THANKS = "🙏 Thank you for your feedback!"

FEEDBACK_EXPECTED = "👆 Use the buttons under the draft: approve it, request a revision or rate it."
SOURCE_APPROVAL_EXPECTED = "👆 Use the buttons to approve sources, or /cancel to start over."
BUSY = "⏳ I'm still working on your request. Use /cancel to stop."
NO_DRAFT = "📭 No draft yet. Send me an assignment to get started."
NO_SOURCES_YET = "📭 No sources yet. Confirm a request first."
NO_FILES = "📭 No documents yet."
NO_HISTORY = "📭 No history yet."
NEW_REQUEST = "🆕 Send me your next assignment."
CANCELLED = "🔄 Cancelled. Send /start to choose a mode or just send a new topic."
UNKNOWN_ACTION = "🤔 This button has expired."
OPERATOR_ONLY = "⛔ This command is available to the operator only."

HISTORY_WARNING = "\n\n⚠️ <i>History could not be saved.</i>"
HISTORY_UNAVAILABLE = "⚠️ History is unavailable right now. Please try again later."

STATE_ERROR = "🤔 That doesn't fit the current step. Use /status to see where you are."
VALIDATION_ERROR = "⚠️ <b>Please check your request:</b>\n{errors}"
ADAPTER_ERROR = "⚠️ A service is temporarily unavailable ({service}). Please try again in a moment."
ADAPTER_DISABLED = "⚠️ This step needs a service that is not set up on this bot ({service}). Please contact the operator."
UNEXPECTED_ERROR = "❌ Something went wrong. Please try again or use /cancel."

ALERT_ADAPTER = "🚨 <b>{service}</b> failure in chat {chat_id}: {error}"
ALERT_UNEXPECTED = "🚨 Unexpected error in chat {chat_id}: {error}"
ALERT_MANUAL_REVIEW = "🚨 Manual review needed for chat {chat_id}: \"{topic}\" scored {score:.1f}% after {attempts} attempt(s)"
ALERT_LOW_RATING = "⚠️ Low rating {rating}⭐ from chat {chat_id} for draft {draft_id}"


def chunk_text(text: str, size: int = TELEGRAM_CHUNK_SIZE) -> list[str]:
    """Split text into pieces that fit in one message."""
    return [text[i:i + size] for i in range(0, len(text), size)]


def preview_chunks(content: str) -> list[str]:
    return chunk_text(content[:TELEGRAM_CHUNK_SIZE * PREVIEW_CHUNKS])[:PREVIEW_CHUNKS]


def format_source(index: int, source: SourceRecord) -> str:
    line = f"{index}. <b>{escape(source.title)}</b>"
    details = []
    if source.authors:
        authors = ", ".join(source.authors[:3])
        if len(source.authors) > 3:
            authors += " et al."
        details.append(escape(authors))
    if source.year:
        details.append(str(source.year))
    if details:
        line += f"\n   {' · '.join(details)}"
    if source.doi:
        line += f"\n   DOI: <code>{escape(source.doi)}</code>"
    return line


def format_sources(sources: list[SourceRecord]) -> str:
    return "\n\n".join(format_source(i, s) for i, s in enumerate(sources, start=1))


def format_draft_complete(draft: DraftSummary) -> str:
    link = f"\n\n📁 <b>Drive link:</b> {escape(draft.document_link)}" if draft.document_link else ""
    return DRAFT_COMPLETE.format(
        topic=escape(draft.topic),
        format=draft.format.value,
        length=draft.length,
        plagiarism=draft.plagiarism_score * 100,
        sources=draft.sources_count,
        link=link,
    )


def format_errors(errors: list[str]) -> str:
    return VALIDATION_ERROR.format(
        errors="\n".join(f"• {escape(error)}" for error in errors)
    )
