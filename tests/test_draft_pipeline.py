import asyncio

import pytest

from academic_bot.core.drafts import DraftPipeline
from academic_bot.core.drafts.pipeline import PROGRESS_PACKAGED, PROGRESS_START
from academic_bot.core.errors import AdapterError, QualityGateFailure
from academic_bot.core.prompts import ORIGINALITY_NOTE
from academic_bot.core.session.models import CitationFormat

from conftest import make_source


@pytest.fixture
def sources():
    return [make_source(1), make_source(2)]


class TestDraftPipeline:

    async def test_accepts_clean_draft(self, services, sources):
        progress: list[str] = []

        async def record(text: str) -> None:
            progress.append(text)

        pipeline = DraftPipeline(services, progress=record)
        result = await pipeline.run("Soil health", sources, CitationFormat.MLA, 3)

        assert result.attempts == 1
        assert result.plagiarism_score == 0.05
        assert result.document.path.exists()
        assert result.document_link == "https://drive.example/doc"
        assert "Paper 1. DOI: 10.1000/paper.1" in result.bibliography
        assert progress[0] == PROGRESS_START
        assert progress[-1] == PROGRESS_PACKAGED

    async def test_regenerates_until_clean(self, services, sources):
        services.plagiarism_scores = [0.25, 0.05]

        result = await DraftPipeline(services).run("Soil health", sources)

        assert result.attempts == 2
        assert result.plagiarism_score == 0.05
        assert services.calls["generate_draft"] == 2
        assert services.draft_topics == ["Soil health", "Soil health" + ORIGINALITY_NOTE]
        # Bibliography is formatted once per run
        assert services.calls["format_bibliography"] == 1

    async def test_originality_note_not_repeated(self, services, sources):
        services.plagiarism_scores = [0.5, 0.5, 0.01]

        await DraftPipeline(services, max_retries=2).run("Topic", sources)

        assert services.draft_topics[-1] == "Topic" + ORIGINALITY_NOTE

    async def test_manual_review_after_retries(self, services, sources):
        services.plagiarism_scores = [0.3]

        with pytest.raises(QualityGateFailure) as exc_info:
            await DraftPipeline(services, max_retries=2).run("Topic", sources)

        assert exc_info.value.score == 0.3
        assert exc_info.value.attempts == 3
        assert services.calls["generate_draft"] == 3
        assert "build_document" not in services.calls
        assert "upload_document" not in services.calls

    @pytest.mark.parametrize("max_retries", [0, 1, 4])
    async def test_generation_count_is_bounded(self, services, sources, max_retries):
        services.plagiarism_scores = [0.9]

        with pytest.raises(QualityGateFailure):
            await DraftPipeline(services, max_retries=max_retries).run("Topic", sources)

        assert services.calls["generate_draft"] == max_retries + 1

    async def test_threshold_is_inclusive(self, services, sources):
        services.plagiarism_scores = [0.10]

        result = await DraftPipeline(services, plagiarism_threshold=0.10).run("T", sources)
        assert result.attempts == 1

    async def test_generation_timeout(self, services, sources):
        async def slow() -> None:
            await asyncio.sleep(1)

        services.hooks["generate_draft"] = slow

        with pytest.raises(AdapterError) as exc_info:
            await DraftPipeline(services, timeout=0.01).run("Topic", sources)
        assert exc_info.value.service == "groq"

    async def test_generation_error_propagates(self, services, sources):
        services.draft_error = AdapterError("groq", "rate limited")

        with pytest.raises(AdapterError):
            await DraftPipeline(services).run("Topic", sources)
        assert "check_plagiarism" not in services.calls

    async def test_missing_link_is_allowed(self, services, sources):
        services.link = None

        result = await DraftPipeline(services).run("Topic", sources)
        assert result.document_link is None

    async def test_revision_notes_reach_generator(self, services, sources):
        await DraftPipeline(services).run("Topic", sources, revision_notes="Shorter intro")
        assert services.revision_notes == ["Shorter intro"]
