"""
In-memory session store, partitioned by chat ID.

All mutations go through named operations so the session invariants hold:
aggregated input exists only while collecting, approved sources are always
a subset of the latest pending batch, and at most one waiting marker is set.
No I/O happens here.
"""

import logging
from typing import Optional

from academic_bot.core.errors import StateError
from academic_bot.core.session.models import (
    DraftSummary,
    IntakeRequest,
    PendingRevision,
    Phase,
    Session,
    SourceRecord,
    UserType,
    WAITING_PHASES,
    WaitingFor,
)

logger = logging.getLogger(__name__)

AGGREGATION_PHASES = {Phase.COLLECTING, Phase.AWAITING_CONFIRMATION}
INTAKE_PHASES = {Phase.IDLE} | AGGREGATION_PHASES


class SessionStore:
    """Per-chat sessions for the lifetime of the process."""

    def __init__(self):
        self._sessions: dict[int, Session] = {}
        self._generations: dict[int, int] = {}

    def get(self, chat_id: int) -> Session:
        """Get the chat's session, creating a default one if absent."""
        session = self._sessions.get(chat_id)
        if session is None:
            session = Session(
                chat_id=chat_id,
                generation=self._generations.get(chat_id, 0),
            )
            self._sessions[chat_id] = session
        return session

    def reset(self, chat_id: int, keep_user_type: bool = False) -> Session:
        """
        Replace the chat's session with a fresh default one.

        The generation counter keeps increasing across resets so results of
        calls started before the reset can be recognised as stale.
        """
        previous = self._sessions.get(chat_id)
        generation = self._generations.get(chat_id, 0) + 1
        self._generations[chat_id] = generation

        session = Session(chat_id=chat_id, generation=generation)
        if keep_user_type and previous is not None:
            session.user_type = previous.user_type
        self._sessions[chat_id] = session

        logger.debug(f"Session {chat_id} reset (generation {generation})")
        return session

    def is_current(self, chat_id: int, generation: int, phase: Phase) -> bool:
        """Check that a deferred result still applies to this chat."""
        session = self.get(chat_id)
        return session.generation == generation and session.phase == phase

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def set_phase(self, chat_id: int, phase: Phase) -> Session:
        session = self.get(chat_id)
        session.phase = phase
        if phase not in AGGREGATION_PHASES:
            session.aggregated_inputs = []
        if phase not in WAITING_PHASES.values():
            session.waiting_for = None
        return session

    def set_user_type(self, chat_id: int, user_type: UserType) -> Session:
        session = self.get(chat_id)
        session.user_type = user_type
        return session

    def append_input(self, chat_id: int, fragment: str) -> Session:
        """Append a fragment, starting aggregation when idle."""
        session = self.get(chat_id)
        if session.phase not in INTAKE_PHASES:
            raise StateError(f"cannot add input while {session.phase.value}")
        session.aggregated_inputs.append(fragment)
        session.phase = Phase.COLLECTING
        return session

    def take_inputs(self, chat_id: int) -> list[str]:
        """Return the aggregated fragments and clear them."""
        session = self.get(chat_id)
        fragments = list(session.aggregated_inputs)
        session.aggregated_inputs = []
        return fragments

    def set_request(self, chat_id: int, request: Optional[IntakeRequest]) -> Session:
        session = self.get(chat_id)
        session.request = request
        return session

    def set_waiting_for(self, chat_id: int, marker: Optional[WaitingFor]) -> Session:
        """
        Set or clear the one-shot waiting marker.

        Setting a marker moves the chat to the matching awaiting phase;
        clearing it returns the chat to awaiting_feedback.
        """
        session = self.get(chat_id)
        if marker is None:
            if session.phase in WAITING_PHASES.values():
                session.phase = Phase.AWAITING_FEEDBACK
            session.waiting_for = None
        else:
            session.waiting_for = marker
            session.phase = WAITING_PHASES[marker]
        return session

    def record_sources(self, chat_id: int, sources: list[SourceRecord]) -> Session:
        """Store a new search batch; approvals from older batches are dropped."""
        session = self.get(chat_id)
        session.pending_sources = list(sources)
        session.approved_sources = []
        return session

    def approve_source(self, chat_id: int, index: int) -> bool:
        """
        Approve one pending source by index.

        Returns False (and changes nothing) when the index is not part of
        the current batch or the source is already approved.
        """
        session = self.get(chat_id)
        if not 0 <= index < len(session.pending_sources):
            logger.debug(f"Chat {chat_id}: ignoring stale source index {index}")
            return False
        source = session.pending_sources[index]
        if any(s is source for s in session.approved_sources):
            return False
        session.approved_sources.append(source)
        return True

    def approve_all(self, chat_id: int) -> int:
        session = self.get(chat_id)
        session.approved_sources = list(session.pending_sources)
        return len(session.approved_sources)

    def record_draft(self, chat_id: int, draft: DraftSummary) -> Session:
        session = self.get(chat_id)
        session.last_draft = draft
        return session

    def approve_draft(self, chat_id: int) -> bool:
        """Mark the last draft approved. False when there is no draft."""
        session = self.get(chat_id)
        if session.last_draft is None:
            return False
        session.last_draft.approved = True
        return True

    def set_pending_revision(
        self, chat_id: int, revision: Optional[PendingRevision]
    ) -> Session:
        session = self.get(chat_id)
        session.pending_revision = revision
        return session
