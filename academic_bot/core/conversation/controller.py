"""
Conversation controller.

Reads every inbound chat event against the chat's phase, calls the research
services, updates the session and replies. It only talks to the chat through
the ChatTransport protocol.

Results of service calls are applied only if the chat still has the
generation and phase that started the call; anything else is a stale result
(the chat was cancelled or moved on meanwhile) and is dropped.
"""

import asyncio
import functools
import logging
from html import escape
from pathlib import Path
from typing import Optional

from academic_bot.config import Settings
from academic_bot.core.conversation import messages
from academic_bot.core.conversation.callbacks import Callback, CallbackKind, parse_callback
from academic_bot.core.conversation.keyboards import (
    Keyboard,
    get_draft_keyboard,
    get_history_keyboard,
    get_intake_keyboard,
    get_mode_keyboard,
    get_new_request_keyboard,
    get_rating_keyboard,
    get_revision_keyboard,
    get_sources_keyboard,
)
from academic_bot.core.conversation.transport import ChatTransport
from academic_bot.core.drafts import DraftPipeline
from academic_bot.core.errors import (
    AdapterError,
    QualityGateFailure,
    SchemaValidationError,
    StateError,
)
from academic_bot.core.intake import OCR_PREFIX, VOICE_PREFIX, build_intake, is_overdue
from academic_bot.core.monitoring import ApiMonitor, monitor as api_monitor
from academic_bot.core.reports import (
    UsageReportExporter,
    format_admin_report,
    format_draft_report,
)
from academic_bot.core.services import ResearchServices
from academic_bot.core.session import (
    DraftSummary,
    PendingRevision,
    Phase,
    SessionStore,
    WaitingFor,
)
from academic_bot.core.session.store import AGGREGATION_PHASES, INTAKE_PHASES
from academic_bot.core.sources import find_sources
from academic_bot.health import build_health_status
from academic_bot.history import HistoryAction, HistoryEntry, HistoryStore

logger = logging.getLogger(__name__)

DONE_WORDS = {"done", "confirm"}
FEEDBACK_PHASES = {Phase.AWAITING_FEEDBACK, Phase.AWAITING_COMMENT_TEXT}
BUSY_PHASES = {Phase.PROCESSING_SOURCES, Phase.DRAFTING}

HISTORY_SHOWN = 5
HISTORY_TAGS_SHOWN = 5
FILTERED_HISTORY_SHOWN = 3


def chat_boundary(handler):
    """
    Catch every per-chat error, answer the user and keep the process alive.

    Operator-relevant failures are forwarded to the operator chat.
    """
    @functools.wraps(handler)
    async def wrapper(self: "ConversationController", chat_id: int, *args, **kwargs):
        try:
            return await handler(self, chat_id, *args, **kwargs)
        except SchemaValidationError as e:
            logger.info(f"Chat {chat_id}: validation failed: {e.errors}")
            await self._safe_reply(chat_id, messages.format_errors(e.errors))
        except StateError as e:
            logger.info(f"Chat {chat_id}: {e}")
            await self._safe_reply(chat_id, messages.STATE_ERROR)
        except AdapterError as e:
            logger.warning(f"Chat {chat_id}: {e}")
            text = messages.ADAPTER_ERROR if e.retryable else messages.ADAPTER_DISABLED
            await self._safe_reply(chat_id, text.format(service=e.service))
            await self._alert_operator(
                messages.ALERT_ADAPTER.format(
                    service=e.service, chat_id=chat_id, error=escape(str(e))
                )
            )
        except Exception as e:
            logger.error(f"Unhandled error in chat {chat_id}: {e}", exc_info=True)
            await self._safe_reply(chat_id, messages.UNEXPECTED_ERROR)
            await self._alert_operator(
                messages.ALERT_UNEXPECTED.format(chat_id=chat_id, error=escape(str(e)))
            )

    return wrapper


class ConversationController:
    """State machine driving one conversation per chat."""

    def __init__(
        self,
        transport: ChatTransport,
        services: ResearchServices,
        history: HistoryStore,
        settings: Settings,
        sessions: SessionStore | None = None,
        monitor: ApiMonitor | None = None,
        exporter: UsageReportExporter | None = None,
    ):
        self.transport = transport
        self.services = services
        self.history = history
        self.settings = settings
        self.sessions = sessions or SessionStore()
        self.monitor = monitor or api_monitor
        self.exporter = exporter or UsageReportExporter()

        self._commands = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "status": self._cmd_status,
            "sources": self._cmd_sources,
            "revise": self._request_revision,
            "report": self._show_report,
            "files": self._cmd_files,
            "history": self._cmd_history,
            "cancel": self._cmd_cancel,
            "adminreport": self._cmd_admin_report,
        }

    # =========================================================================
    # Entry points
    # =========================================================================

    @chat_boundary
    async def handle_command(self, chat_id: int, name: str) -> None:
        command = self._commands.get(name.lower())
        if command is None:
            raise StateError(f"unknown command /{name}")
        await command(chat_id)

    @chat_boundary
    async def handle_text(self, chat_id: int, text: str) -> None:
        text = text.strip()
        if not text:
            return

        session = self.sessions.get(chat_id)
        # A waiting marker takes the text before anything else
        if session.waiting_for is WaitingFor.REVISION:
            await self._receive_revision_text(chat_id, text)
        elif session.waiting_for is WaitingFor.COMMENT:
            await self._receive_comment(chat_id, text)
        elif session.phase in AGGREGATION_PHASES and text.lower() in DONE_WORDS:
            await self._summarize_request(chat_id)
        elif session.phase in INTAKE_PHASES:
            session = self.sessions.append_input(chat_id, text)
            await self._reply(
                chat_id,
                messages.FRAGMENT_RECEIVED.format(count=len(session.aggregated_inputs)),
                get_intake_keyboard(),
            )
        elif session.phase in BUSY_PHASES:
            await self._reply(chat_id, messages.BUSY)
        elif session.phase == Phase.AWAITING_SOURCE_APPROVAL:
            await self._reply(chat_id, messages.SOURCE_APPROVAL_EXPECTED)
        else:
            await self._reply(chat_id, messages.FEEDBACK_EXPECTED)

    @chat_boundary
    async def handle_photo(self, chat_id: int, image_ref: str) -> None:
        await self._receive_media(
            chat_id,
            image_ref,
            self.services.perform_ocr,
            OCR_PREFIX,
            messages.PROCESSING_IMAGE,
            messages.OCR_RECEIVED,
            messages.OCR_FAILED,
        )

    @chat_boundary
    async def handle_voice(self, chat_id: int, audio_ref: str) -> None:
        await self._receive_media(
            chat_id,
            audio_ref,
            self.services.transcribe_voice,
            VOICE_PREFIX,
            messages.PROCESSING_VOICE,
            messages.VOICE_RECEIVED,
            messages.VOICE_FAILED,
        )

    @chat_boundary
    async def handle_callback(self, chat_id: int, data: str) -> None:
        callback = parse_callback(data)
        if callback is None:
            logger.info(f"Chat {chat_id}: unknown callback data {data!r}")
            await self._reply(chat_id, messages.UNKNOWN_ACTION)
            return
        await self._dispatch_callback(chat_id, callback)

    async def _dispatch_callback(self, chat_id: int, callback: Callback) -> None:
        kind = callback.kind

        if kind is CallbackKind.SELECT_MODE:
            await self._select_mode(chat_id, callback)
        elif kind is CallbackKind.ADD_MORE:
            await self._add_more(chat_id)
        elif kind is CallbackKind.CONFIRM:
            await self._confirm_request(chat_id)
        elif kind is CallbackKind.CANCEL:
            self.sessions.reset(chat_id, keep_user_type=True)
            await self._reply(chat_id, messages.CANCELLED)
        elif kind is CallbackKind.APPROVE_SOURCE:
            await self._approve_source(chat_id, callback.index)
        elif kind is CallbackKind.APPROVE_ALL:
            await self._approve_all(chat_id)
        elif kind is CallbackKind.GENERATE_DRAFT:
            await self._generate_from_approved(chat_id)
        elif kind is CallbackKind.CANCEL_SOURCES:
            self._require_phase(chat_id, Phase.AWAITING_SOURCE_APPROVAL)
            self.sessions.reset(chat_id, keep_user_type=True)
            await self._reply(chat_id, messages.SOURCES_CANCELLED)
        elif kind is CallbackKind.APPROVE_DRAFT:
            await self._approve_draft(chat_id)
        elif kind is CallbackKind.REVISE_DRAFT:
            await self._request_revision(chat_id)
        elif kind is CallbackKind.VIEW_REPORT:
            await self._show_report(chat_id)
        elif kind is CallbackKind.DOWNLOAD_FILES:
            await self._download_files(chat_id)
        elif kind is CallbackKind.APPLY_REVISION:
            await self._apply_revision(chat_id)
        elif kind is CallbackKind.CANCEL_REVISION:
            self.sessions.set_pending_revision(chat_id, None)
            await self._reply(chat_id, messages.REVISION_CANCELLED)
        elif kind is CallbackKind.RATE:
            await self._rate_draft(chat_id, callback.draft_id, callback.rating)
        elif kind is CallbackKind.COMMENT:
            await self._request_comment(chat_id, callback.draft_id)
        elif kind is CallbackKind.FILTER_TAG:
            await self._filter_history(chat_id, callback.tag)
        elif kind is CallbackKind.NEW_REQUEST:
            self.sessions.reset(chat_id, keep_user_type=True)
            await self._reply(chat_id, messages.NEW_REQUEST)

    # =========================================================================
    # Mode and intake
    # =========================================================================

    async def _select_mode(self, chat_id: int, callback: Callback) -> None:
        user_type = callback.user_type
        self.sessions.set_user_type(chat_id, user_type)
        saved = await self._append_history(
            chat_id, HistoryEntry(action=HistoryAction.MODE, topic=user_type.value)
        )
        text = messages.MODE_SELECTED.format(mode=user_type.value.capitalize())
        await self._reply(chat_id, text + ("" if saved else messages.HISTORY_WARNING))

    async def _add_more(self, chat_id: int) -> None:
        session = self._require_phase(chat_id, *INTAKE_PHASES)
        if session.phase == Phase.AWAITING_CONFIRMATION:
            self.sessions.set_phase(chat_id, Phase.COLLECTING)
        await self._reply(chat_id, messages.ADD_MORE)

    async def _receive_media(
        self,
        chat_id: int,
        ref: str,
        extract,
        prefix: str,
        working_text: str,
        received_text: str,
        failed_text: str,
    ) -> None:
        session = self._require_phase(chat_id, *INTAKE_PHASES)
        generation = session.generation
        await self._reply(chat_id, working_text)

        text = await extract(ref)

        session = self.sessions.get(chat_id)
        if session.generation != generation or session.phase not in INTAKE_PHASES:
            logger.info(f"Chat {chat_id}: dropping stale media result")
            return
        if not text:
            await self._reply(chat_id, failed_text)
            return

        session = self.sessions.append_input(chat_id, prefix + text)
        await self._reply(
            chat_id,
            received_text.format(count=len(session.aggregated_inputs)),
            get_intake_keyboard(),
        )

    async def _summarize_request(self, chat_id: int) -> None:
        session = self.sessions.set_phase(chat_id, Phase.AWAITING_CONFIRMATION)
        await self._reply(
            chat_id,
            messages.REQUEST_SUMMARY.format(text=escape(session.aggregated_text)),
            get_intake_keyboard(),
        )

    async def _confirm_request(self, chat_id: int) -> None:
        session = self.sessions.get(chat_id)
        if session.phase not in AGGREGATION_PHASES or not session.aggregated_inputs:
            await self._reply(chat_id, messages.NOTHING_TO_CONFIRM)
            return

        try:
            request = build_intake(list(session.aggregated_inputs), session.user_type)
        except SchemaValidationError:
            self.sessions.set_phase(chat_id, Phase.COLLECTING)
            raise

        self.sessions.take_inputs(chat_id)
        self.sessions.set_request(chat_id, request)
        session = self.sessions.set_phase(chat_id, Phase.PROCESSING_SOURCES)
        generation = session.generation

        saved = await self._append_history(
            chat_id,
            HistoryEntry(action=HistoryAction.REQUEST, topic=request.topic),
            tags=request.tags,
        )

        deadline = f"\n📅 <b>Deadline:</b> {request.deadline.isoformat()}" if request.deadline else ""
        text = messages.REQUEST_CONFIRMED.format(
            topic=escape(request.title),
            format=request.format.value,
            length=request.length,
            deadline=deadline,
        )
        if is_overdue(request):
            text += "\n\n" + messages.DEADLINE_PASSED
        if not saved:
            text += messages.HISTORY_WARNING
        await self._reply(chat_id, text)

        await self._search_sources(chat_id, generation)

    # =========================================================================
    # Sources
    # =========================================================================

    async def _search_sources(self, chat_id: int, generation: int) -> None:
        request = self.sessions.get(chat_id).request
        prior_topics = [
            entry.topic
            for entry in await self._read_history(chat_id)
            if entry.action == HistoryAction.REQUEST and entry.topic and entry.topic != request.topic
        ]

        try:
            sources = await find_sources(
                self.services,
                request.topic,
                prior_topics,
                self.settings.source_search_limit,
            )
        except Exception as e:
            if not self.sessions.is_current(chat_id, generation, Phase.PROCESSING_SOURCES):
                logger.info(f"Chat {chat_id}: dropping stale source search failure: {e}")
                return
            # Source search is not retryable from this step
            self.sessions.reset(chat_id, keep_user_type=True)
            raise

        if not self.sessions.is_current(chat_id, generation, Phase.PROCESSING_SOURCES):
            logger.info(f"Chat {chat_id}: dropping stale source results")
            return

        if not sources:
            self.sessions.reset(chat_id, keep_user_type=True)
            await self._reply(chat_id, messages.NO_SOURCES, get_new_request_keyboard())
            return

        self.sessions.record_sources(chat_id, sources)
        self.sessions.set_phase(chat_id, Phase.AWAITING_SOURCE_APPROVAL)
        await self._send_sources(chat_id)

    async def _send_sources(self, chat_id: int) -> None:
        session = self.sessions.get(chat_id)
        await self._reply(
            chat_id,
            messages.SOURCES_FOUND.format(
                count=len(session.pending_sources),
                sources=messages.format_sources(session.pending_sources),
            ),
            get_sources_keyboard(session.pending_sources, session.approved_sources),
        )

    async def _approve_source(self, chat_id: int, index: int) -> None:
        session = self.sessions.get(chat_id)
        if session.phase != Phase.AWAITING_SOURCE_APPROVAL:
            logger.info(f"Chat {chat_id}: source approval outside selection ignored")
            return
        if not self.sessions.approve_source(chat_id, index):
            return
        await self._reply(
            chat_id,
            messages.SOURCE_APPROVED.format(
                index=index + 1, count=len(session.approved_sources)
            ),
        )

    async def _approve_all(self, chat_id: int) -> None:
        if await self._reply_if_busy(chat_id):
            return
        self._require_phase(chat_id, Phase.AWAITING_SOURCE_APPROVAL)
        count = self.sessions.approve_all(chat_id)
        await self._start_draft(
            chat_id, notice=messages.ALL_SOURCES_APPROVED.format(count=count)
        )

    async def _generate_from_approved(self, chat_id: int) -> None:
        if await self._reply_if_busy(chat_id):
            return
        session = self._require_phase(chat_id, Phase.AWAITING_SOURCE_APPROVAL)
        if not session.approved_sources:
            await self._reply(chat_id, messages.NO_APPROVED_SOURCES)
            return
        await self._start_draft(chat_id)

    # =========================================================================
    # Drafting
    # =========================================================================

    async def _start_draft(
        self,
        chat_id: int,
        revision_notes: str | None = None,
        notice: str | None = None,
    ) -> None:
        """
        Run the draft pipeline for the approved sources.

        The chat is moved to DRAFTING before the first suspension, so a second
        press of a draft button meets the DRAFTING phase and is refused.
        """
        # Where a failed run leaves the chat; both steps can be retried
        fallback = (
            Phase.AWAITING_FEEDBACK if revision_notes else Phase.AWAITING_SOURCE_APPROVAL
        )
        session = self._require_phase(chat_id, fallback)
        request = session.request
        sources = list(session.approved_sources)
        if request is None or not sources:
            raise StateError("nothing to draft")

        session = self.sessions.set_phase(chat_id, Phase.DRAFTING)
        generation = session.generation

        async def progress(text: str) -> None:
            if self.sessions.is_current(chat_id, generation, Phase.DRAFTING):
                await self._reply(chat_id, text)

        pipeline = DraftPipeline(
            self.services,
            plagiarism_threshold=self.settings.plagiarism_threshold,
            max_retries=self.settings.max_draft_retries,
            timeout=self.settings.draft_timeout_seconds,
            progress=progress,
        )

        try:
            if notice:
                await self._reply(chat_id, notice)
            result = await pipeline.run(
                topic=request.topic,
                sources=sources,
                citation_format=request.format,
                length=request.length,
                owner_id=str(chat_id),
                revision_notes=revision_notes,
            )
        except QualityGateFailure as e:
            if not self.sessions.is_current(chat_id, generation, Phase.DRAFTING):
                return
            self.sessions.set_phase(chat_id, fallback)
            await self._reply(
                chat_id,
                messages.MANUAL_REVIEW.format(score=e.score * 100, attempts=e.attempts),
            )
            await self._alert_operator(
                messages.ALERT_MANUAL_REVIEW.format(
                    chat_id=chat_id,
                    topic=escape(request.title),
                    score=e.score * 100,
                    attempts=e.attempts,
                )
            )
            return
        except AdapterError as e:
            if not self.sessions.is_current(chat_id, generation, Phase.DRAFTING):
                logger.info(f"Chat {chat_id}: dropping stale draft failure: {e}")
                return
            # A missing integration cannot be retried; a revision keeps its draft
            if e.retryable or revision_notes:
                self.sessions.set_phase(chat_id, fallback)
            else:
                self.sessions.reset(chat_id, keep_user_type=True)
            raise
        except Exception as e:
            if not self.sessions.is_current(chat_id, generation, Phase.DRAFTING):
                logger.info(f"Chat {chat_id}: dropping stale draft failure: {e}")
                return
            self.sessions.set_phase(chat_id, fallback)
            raise

        if not self.sessions.is_current(chat_id, generation, Phase.DRAFTING):
            logger.info(f"Chat {chat_id}: dropping stale draft")
            return

        draft = DraftSummary(
            topic=request.topic,
            format=request.format,
            length=request.length,
            plagiarism_score=result.plagiarism_score,
            filename=result.document.filename,
            document_link=result.document_link,
            document_path=str(result.document.path),
            content=result.content,
            bibliography=result.bibliography,
            sources_count=len(sources),
            attempts=result.attempts,
        )
        self.sessions.record_draft(chat_id, draft)
        self.sessions.set_pending_revision(chat_id, None)
        self.sessions.set_phase(chat_id, Phase.AWAITING_FEEDBACK)

        saved = await self._append_history(
            chat_id,
            HistoryEntry(
                action=HistoryAction.DRAFT, topic=request.topic, draft=draft.to_dict()
            ),
            tags=request.tags,
        )

        summary = messages.format_draft_complete(draft)
        if not saved:
            summary += messages.HISTORY_WARNING
        await self._reply(chat_id, summary, get_draft_keyboard())

        for i, chunk in enumerate(messages.preview_chunks(draft.content), start=1):
            await self._reply(chat_id, messages.PREVIEW.format(index=i, text=escape(chunk)))

    # =========================================================================
    # Feedback and revisions
    # =========================================================================

    async def _approve_draft(self, chat_id: int) -> None:
        session = self._require_phase(chat_id, *FEEDBACK_PHASES)
        if not self.sessions.approve_draft(chat_id):
            raise StateError("no draft to approve")
        await self._reply(
            chat_id,
            messages.DRAFT_APPROVED,
            get_rating_keyboard(session.last_draft.draft_id),
        )

    async def _request_revision(self, chat_id: int) -> None:
        session = self.sessions.get(chat_id)
        if session.last_draft is None:
            await self._reply(chat_id, messages.NO_DRAFT)
            return
        self._require_phase(chat_id, *FEEDBACK_PHASES)
        self.sessions.set_waiting_for(chat_id, WaitingFor.REVISION)
        await self._reply(chat_id, messages.REVISION_PROMPT)

    async def _receive_revision_text(self, chat_id: int, text: str) -> None:
        session = self.sessions.get(chat_id)
        draft = session.last_draft
        if draft is None:
            self.sessions.set_waiting_for(chat_id, None)
            raise StateError("revision without a draft")

        generation = session.generation
        suggestion = await self.services.suggest_revision(draft.topic, draft.content, text)

        if not self.sessions.is_current(chat_id, generation, Phase.AWAITING_REVISION_TEXT):
            logger.info(f"Chat {chat_id}: dropping stale revision suggestion")
            return

        self.sessions.set_pending_revision(chat_id, PendingRevision(text, suggestion))
        self.sessions.set_waiting_for(chat_id, None)

        saved = await self._append_history(
            chat_id, HistoryEntry(action=HistoryAction.REVISION, topic=text)
        )
        reply = messages.REVISION_SUGGESTION.format(suggestion=escape(suggestion))
        if not saved:
            reply += messages.HISTORY_WARNING
        await self._reply(chat_id, reply, get_revision_keyboard())

    async def _apply_revision(self, chat_id: int) -> None:
        if await self._reply_if_busy(chat_id):
            return
        session = self._require_phase(chat_id, Phase.AWAITING_FEEDBACK)
        revision = session.pending_revision
        if revision is None:
            raise StateError("no pending revision")
        await self._start_draft(
            chat_id,
            revision_notes=f"{revision.request}\n{revision.suggestion}",
            notice=messages.REVISION_APPLYING,
        )

    def _feedback_draft(self, chat_id: int, draft_id: str) -> DraftSummary:
        session = self._require_phase(chat_id, *FEEDBACK_PHASES)
        draft = session.last_draft
        if draft is None or draft.draft_id != draft_id:
            raise StateError(f"feedback for unknown draft {draft_id}")
        return draft

    async def _rate_draft(self, chat_id: int, draft_id: str, rating: int) -> None:
        draft = self._feedback_draft(chat_id, draft_id)

        saved = await self._save_feedback(chat_id, draft.draft_id, rating=rating)

        if rating <= self.settings.low_rating_threshold:
            self.sessions.set_waiting_for(chat_id, WaitingFor.COMMENT)
            reply = messages.LOW_RATING
            await self._alert_operator(
                messages.ALERT_LOW_RATING.format(
                    rating=rating, chat_id=chat_id, draft_id=draft.draft_id
                )
            )
        else:
            self.sessions.set_waiting_for(chat_id, None)
            reply = messages.RATING_THANKS.format(rating=rating)

        if not saved:
            reply += messages.HISTORY_WARNING
        await self._reply(chat_id, reply)

    async def _request_comment(self, chat_id: int, draft_id: str) -> None:
        self._feedback_draft(chat_id, draft_id)
        self.sessions.set_waiting_for(chat_id, WaitingFor.COMMENT)
        await self._reply(chat_id, messages.COMMENT_PROMPT)

    async def _receive_comment(self, chat_id: int, text: str) -> None:
        session = self.sessions.get(chat_id)
        draft_id = session.last_draft.draft_id if session.last_draft else "none"

        saved = await self._save_feedback(chat_id, draft_id, comment=text)
        self.sessions.set_waiting_for(chat_id, None)

        reply = messages.COMMENT_THANKS
        if not saved:
            reply += messages.HISTORY_WARNING
        await self._reply(chat_id, reply, get_new_request_keyboard())

    # =========================================================================
    # Reports, files and history
    # =========================================================================

    async def _show_report(self, chat_id: int) -> None:
        draft = self.sessions.get(chat_id).last_draft
        if draft is None:
            await self._reply(chat_id, messages.NO_DRAFT)
            return
        await self._reply(chat_id, format_draft_report(draft))

    async def _download_files(self, chat_id: int) -> None:
        draft = self.sessions.get(chat_id).last_draft
        if draft is None:
            await self._reply(chat_id, messages.NO_FILES)
            return

        if draft.document_path:
            await self.transport.send_document(
                chat_id, Path(draft.document_path), caption=f"📄 {escape(draft.filename)}"
            )
        elif draft.document_link:
            await self._reply(chat_id, f"📁 {escape(draft.document_link)}")
        else:
            await self._reply(chat_id, messages.NO_FILES)

    async def _cmd_files(self, chat_id: int) -> None:
        entries = await self._load_history(chat_id)
        if entries is None:
            return
        lines = []
        for entry in entries:
            if entry.action != HistoryAction.DRAFT or not entry.draft:
                continue
            name = escape(entry.draft.get("filename") or entry.topic or "draft")
            link = entry.document_link
            line = f"• {entry.timestamp.strftime('%Y-%m-%d')} {name}"
            if link:
                line += f"\n  {escape(link)}"
            lines.append(line)

        if not lines:
            await self._reply(chat_id, messages.NO_FILES)
            return
        await self._reply(chat_id, "📁 <b>Your documents:</b>\n\n" + "\n".join(lines))

    async def _cmd_history(self, chat_id: int) -> None:
        entries = await self._load_history(chat_id)
        if entries is None:
            return
        if not entries:
            await self._reply(chat_id, messages.NO_HISTORY, get_new_request_keyboard())
            return

        tags: list[str] = []
        for entry in entries:
            for tag in entry.tags:
                if tag not in tags:
                    tags.append(tag)

        text = "📚 <b>Your history:</b>\n\n" + format_history(entries[-HISTORY_SHOWN:])
        await self._reply(chat_id, text, get_history_keyboard(tags, HISTORY_TAGS_SHOWN))

    async def _filter_history(self, chat_id: int, tag: str) -> None:
        entries = await self._load_history(chat_id, tag)
        if entries is None:
            return
        if not entries:
            await self._reply(chat_id, messages.NO_HISTORY)
            return
        text = f"🏷 <b>#{escape(tag)}:</b>\n\n" + format_history(
            entries[-FILTERED_HISTORY_SHOWN:]
        )
        await self._reply(chat_id, text)

    # =========================================================================
    # Other commands
    # =========================================================================

    async def _cmd_start(self, chat_id: int) -> None:
        await self._reply(chat_id, messages.WELCOME_MESSAGE, get_mode_keyboard())

    async def _cmd_help(self, chat_id: int) -> None:
        await self._reply(chat_id, messages.HELP_MESSAGE)

    async def _cmd_status(self, chat_id: int) -> None:
        session = self.sessions.get(chat_id)
        features = build_health_status(self.settings)["features"]

        lines = [
            "📊 <b>Status</b>",
            "",
            f"👤 <b>Mode:</b> {session.user_type.value}",
            f"📍 <b>Step:</b> {session.phase.value.replace('_', ' ')}",
        ]
        if session.aggregated_inputs:
            lines.append(f"📥 <b>Parts collected:</b> {len(session.aggregated_inputs)}")
        if session.pending_sources:
            lines.append(
                f"📚 <b>Sources:</b> {len(session.approved_sources)} of "
                f"{len(session.pending_sources)} approved"
            )
        if session.last_draft:
            lines.append(f"📝 <b>Last draft:</b> {escape(session.last_draft.topic[:80])}")

        lines += ["", "<b>Integrations:</b>"]
        lines += [f"{'✅' if enabled else '➖'} {name}" for name, enabled in features.items()]
        await self._reply(chat_id, "\n".join(lines))

    async def _cmd_sources(self, chat_id: int) -> None:
        session = self.sessions.get(chat_id)
        if session.phase == Phase.AWAITING_SOURCE_APPROVAL:
            await self._send_sources(chat_id)
        elif session.approved_sources:
            await self._reply(
                chat_id,
                "📚 <b>Approved sources:</b>\n\n"
                + messages.format_sources(session.approved_sources),
            )
        else:
            await self._reply(chat_id, messages.NO_SOURCES_YET)

    async def _cmd_cancel(self, chat_id: int) -> None:
        self.sessions.reset(chat_id)
        await self._reply(chat_id, messages.CANCELLED)

    async def _cmd_admin_report(self, chat_id: int) -> None:
        if self.settings.admin_chat_id is None or chat_id != self.settings.admin_chat_id:
            await self._reply(chat_id, messages.OPERATOR_ONLY)
            return

        stats = self.monitor.get_stats()
        feedback = await self.history.list_feedback()
        await self._reply(chat_id, format_admin_report(stats, feedback))

        path = await asyncio.to_thread(
            self.exporter.export, stats, feedback, self.settings.reports_dir
        )
        await self.transport.send_document(chat_id, path, caption="📈 Usage report")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_phase(self, chat_id: int, *phases: Phase):
        session = self.sessions.get(chat_id)
        if session.phase not in phases:
            raise StateError(f"event not valid while {session.phase.value}")
        return session

    async def _reply_if_busy(self, chat_id: int) -> bool:
        if self.sessions.get(chat_id).phase not in BUSY_PHASES:
            return False
        await self._reply(chat_id, messages.BUSY)
        return True

    async def _reply(
        self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None
    ) -> None:
        await self.transport.send_message(chat_id, text, keyboard)

    async def _safe_reply(self, chat_id: int, text: str) -> None:
        try:
            await self.transport.send_message(chat_id, text)
        except Exception as e:
            logger.error(f"Failed to reply to chat {chat_id}: {e}")

    async def _alert_operator(self, text: str) -> None:
        if self.settings.admin_chat_id is None:
            return
        try:
            await self.transport.send_message(self.settings.admin_chat_id, text)
        except Exception as e:
            logger.error(f"Failed to alert operator: {e}")

    async def _append_history(
        self,
        chat_id: int,
        entry: HistoryEntry,
        tags: Optional[list[str]] = None,
    ) -> bool:
        """Write a history entry. A failed write is logged, never raised."""
        try:
            await self.history.append_entry(chat_id, entry, tags)
        except Exception as e:
            logger.warning(f"History write failed for chat {chat_id}: {e}", exc_info=True)
            return False
        return True

    async def _read_history(self, chat_id: int) -> list[HistoryEntry]:
        try:
            return await self.history.get_history(chat_id)
        except Exception as e:
            logger.warning(f"History read failed for chat {chat_id}: {e}")
            return []

    async def _load_history(
        self, chat_id: int, tag: Optional[str] = None
    ) -> Optional[list[HistoryEntry]]:
        """History for display; None (after telling the user) when the store fails."""
        try:
            return await self.history.get_history(chat_id, tag=tag)
        except Exception as e:
            logger.warning(f"History read failed for chat {chat_id}: {e}", exc_info=True)
            await self._reply(chat_id, messages.HISTORY_UNAVAILABLE)
            return None

    async def _save_feedback(
        self,
        chat_id: int,
        draft_id: str,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> bool:
        try:
            await self.history.save_feedback(chat_id, draft_id, rating=rating, comment=comment)
        except Exception as e:
            logger.warning(f"Feedback write failed for chat {chat_id}: {e}", exc_info=True)
            return False
        return True


def format_history(entries: list[HistoryEntry]) -> str:
    lines = []
    for entry in entries:
        line = f"• {entry.timestamp.strftime('%Y-%m-%d %H:%M')} · {entry.action}"
        if entry.topic:
            topic = entry.topic.splitlines()[0]
            line += f": {escape(topic[:60])}"
        if entry.tags:
            line += " " + " ".join(f"#{escape(tag)}" for tag in entry.tags)
        lines.append(line)
    return "\n".join(lines)
