import pytest

from academic_bot.core.errors import StateError
from academic_bot.core.session import Phase, SessionStore, UserType, WaitingFor
from academic_bot.core.session.models import DraftSummary, CitationFormat, SourceRecord

from conftest import make_source


def make_draft() -> DraftSummary:
    return DraftSummary(
        topic="Topic",
        format=CitationFormat.APA,
        length=5,
        plagiarism_score=0.05,
        filename="draft.docx",
    )


class TestSessionStore:

    def test_get_creates_default_session(self):
        store = SessionStore()
        session = store.get(1)

        assert session.phase == Phase.IDLE
        assert session.user_type == UserType.GUEST
        assert session.aggregated_inputs == []
        assert store.get(1) is session

    def test_sessions_are_partitioned_by_chat(self):
        store = SessionStore()
        store.append_input(1, "first chat")

        assert store.get(2).aggregated_inputs == []
        assert store.get(2).phase == Phase.IDLE

    def test_append_input_starts_collecting(self):
        store = SessionStore()
        store.append_input(1, "part one")
        session = store.append_input(1, "part two")

        assert session.phase == Phase.COLLECTING
        assert session.aggregated_inputs == ["part one", "part two"]
        assert session.aggregated_text == "part one\npart two"

    def test_append_input_rejected_outside_intake(self):
        store = SessionStore()
        store.set_phase(1, Phase.DRAFTING)

        with pytest.raises(StateError):
            store.append_input(1, "late fragment")

    def test_leaving_aggregation_clears_inputs(self):
        store = SessionStore()
        store.append_input(1, "text")
        session = store.set_phase(1, Phase.PROCESSING_SOURCES)

        assert session.aggregated_inputs == []

    def test_reset_bumps_generation_and_keeps_mode(self):
        store = SessionStore()
        store.set_user_type(1, UserType.TUTOR)
        generation = store.get(1).generation

        session = store.reset(1, keep_user_type=True)
        assert session.generation == generation + 1
        assert session.user_type == UserType.TUTOR

        session = store.reset(1)
        assert session.generation == generation + 2
        assert session.user_type == UserType.GUEST

    def test_is_current_checks_generation_and_phase(self):
        store = SessionStore()
        session = store.set_phase(1, Phase.DRAFTING)
        generation = session.generation

        assert store.is_current(1, generation, Phase.DRAFTING)
        assert not store.is_current(1, generation, Phase.AWAITING_FEEDBACK)

        store.reset(1)
        store.set_phase(1, Phase.DRAFTING)
        assert not store.is_current(1, generation, Phase.DRAFTING)

    def test_approvals_are_subset_of_pending(self):
        store = SessionStore()
        sources = [make_source(i) for i in range(3)]
        store.record_sources(1, sources)

        assert store.approve_source(1, 1)
        assert not store.approve_source(1, 1)  # already approved
        assert not store.approve_source(1, 7)
        assert not store.approve_source(1, -1)
        assert store.get(1).approved_sources == [sources[1]]

    def test_new_batch_drops_old_approvals(self):
        store = SessionStore()
        store.record_sources(1, [make_source(1)])
        store.approve_all(1)

        store.record_sources(1, [make_source(2), make_source(3)])
        assert store.get(1).approved_sources == []

    def test_approve_all(self):
        store = SessionStore()
        store.record_sources(1, [make_source(i) for i in range(4)])

        assert store.approve_all(1) == 4
        assert len(store.get(1).approved_sources) == 4

    def test_waiting_marker_moves_phase(self):
        store = SessionStore()
        store.set_phase(1, Phase.AWAITING_FEEDBACK)

        session = store.set_waiting_for(1, WaitingFor.REVISION)
        assert session.phase == Phase.AWAITING_REVISION_TEXT

        session = store.set_waiting_for(1, WaitingFor.COMMENT)
        assert session.waiting_for == WaitingFor.COMMENT
        assert session.phase == Phase.AWAITING_COMMENT_TEXT

        session = store.set_waiting_for(1, None)
        assert session.waiting_for is None
        assert session.phase == Phase.AWAITING_FEEDBACK

    def test_phase_change_clears_marker(self):
        store = SessionStore()
        store.set_phase(1, Phase.AWAITING_FEEDBACK)
        store.set_waiting_for(1, WaitingFor.REVISION)

        session = store.set_phase(1, Phase.DRAFTING)
        assert session.waiting_for is None

    def test_approve_draft(self):
        store = SessionStore()
        assert not store.approve_draft(1)

        store.record_draft(1, make_draft())
        assert store.approve_draft(1)
        assert store.get(1).last_draft.approved


class TestModels:

    def test_dedup_key_prefers_doi(self):
        assert SourceRecord(title="A", doi="10.1/x").dedup_key == "10.1/x"
        assert SourceRecord(title="A").dedup_key == "A"

    def test_format_short(self):
        source = SourceRecord(title="Paper", authors=["A", "B", "C"], year=2021)
        assert source.format_short() == "Paper, A, B et al., 2021"

    def test_draft_summary_dict_excludes_content(self):
        draft = make_draft()
        draft.content = "long text"
        data = draft.to_dict()

        assert "content" not in data
        assert data["format"] == "APA"
        assert len(data["draft_id"]) == 8
