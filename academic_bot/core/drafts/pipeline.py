"""
Draft pipeline graph.
Generates a cited draft, gates it on the plagiarism score and packages it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from langgraph.graph import END, START, StateGraph

from academic_bot.core.drafts.document import DocumentFile
from academic_bot.core.drafts.state import DraftState
from academic_bot.core.errors import AdapterError, QualityGateFailure, SchemaValidationError
from academic_bot.core.prompts import ORIGINALITY_NOTE
from academic_bot.core.session.models import CitationFormat, SourceRecord
from academic_bot.core.validation import validate_data

if TYPE_CHECKING:
    from academic_bot.core.services import ResearchServices

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], Awaitable[None]]

PROGRESS_START = "📝 Generating draft... 0%"
PROGRESS_GENERATED = "✅ Draft generated. Formatting citations... 25%"
PROGRESS_CITATIONS = "📚 Citations formatted. Checking plagiarism... 50%"
PROGRESS_CHECKED = "✅ Plagiarism check passed. Creating documents... 75%"
PROGRESS_PACKAGED = "📄 Documents created. Preparing delivery... 90%"
PROGRESS_REWRITE = "⚠️ Plagiarism score: {score:.1f}%. Rewriting (attempt {attempt} of {total})..."


@dataclass
class DraftResult:
    """Accepted draft."""
    content: str
    bibliography: str
    plagiarism_score: float
    attempts: int
    document: DocumentFile
    document_link: Optional[str] = None


async def _no_progress(text: str) -> None:
    return None


class DraftPipeline:
    """
    LangGraph pipeline for one draft.

    Flow:
        START -> generate -> bibliography -> plagiarism
        plagiarism -> generate          (score above threshold, retries left)
        plagiarism -> manual_review     (score above threshold, no retries left)
        plagiarism -> build_document -> upload -> END
    """

    def __init__(
        self,
        services: "ResearchServices",
        plagiarism_threshold: float = 0.10,
        max_retries: int = 2,
        timeout: float = 90.0,
        progress: ProgressCallback | None = None,
    ):
        self.services = services
        self.plagiarism_threshold = plagiarism_threshold
        self.max_retries = max_retries
        self.timeout = timeout
        self.progress = progress or _no_progress
        self.graph = self._create_graph().compile()

    def _create_graph(self) -> StateGraph:
        graph = StateGraph(DraftState)

        graph.add_node("generate", self.generate)
        graph.add_node("bibliography", self.bibliography)
        graph.add_node("plagiarism", self.plagiarism)
        graph.add_node("manual_review", self.manual_review)
        graph.add_node("build_document", self.build_document)
        graph.add_node("upload", self.upload)

        graph.add_edge(START, "generate")
        graph.add_edge("generate", "bibliography")
        graph.add_edge("bibliography", "plagiarism")
        graph.add_conditional_edges(
            "plagiarism",
            route_after_check,
            {
                "regenerate": "generate",
                "manual_review": "manual_review",
                "accept": "build_document",
            },
        )
        graph.add_edge("manual_review", END)
        graph.add_edge("build_document", "upload")
        graph.add_edge("upload", END)

        return graph

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    async def generate(self, state: DraftState) -> dict:
        attempts = state.get("attempts", 0) + 1
        if attempts == 1:
            await self.progress(PROGRESS_START)

        try:
            content = await asyncio.wait_for(
                self.services.generate_draft(
                    state["topic"],
                    state["sources"],
                    state["citation_format"],
                    state["length"],
                    state.get("revision_notes"),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise AdapterError(
                "groq", f"draft generation timed out after {self.timeout:.0f}s"
            ) from e

        logger.info(f"Draft attempt {attempts} generated ({len(content)} chars)")
        await self.progress(PROGRESS_GENERATED)
        return {"content": content, "attempts": attempts}

    async def bibliography(self, state: DraftState) -> dict:
        # Sources do not change between attempts
        if state.get("bibliography") is not None:
            return {}
        bibliography = await self.services.format_bibliography(
            state["sources"], state["citation_format"]
        )
        await self.progress(PROGRESS_CITATIONS)
        return {"bibliography": bibliography}

    async def plagiarism(self, state: DraftState) -> dict:
        score = await self.services.check_plagiarism(state["content"])
        regenerations = state.get("regenerations", 0)
        logger.info(f"Plagiarism score {score:.3f} on attempt {state['attempts']}")

        if score <= self.plagiarism_threshold:
            return {"plagiarism_score": score, "verdict": "accept"}

        if regenerations < self.max_retries:
            await self.progress(
                PROGRESS_REWRITE.format(
                    score=score * 100,
                    attempt=regenerations + 1,
                    total=self.max_retries,
                )
            )
            return {
                "plagiarism_score": score,
                "verdict": "regenerate",
                "regenerations": regenerations + 1,
                "topic": state["base_topic"] + ORIGINALITY_NOTE,
            }

        return {"plagiarism_score": score, "verdict": "manual_review"}

    async def manual_review(self, state: DraftState) -> dict:
        logger.warning(
            f"Draft for '{state['base_topic'][:50]}' needs manual review "
            f"(score {state['plagiarism_score']:.3f} after {state['attempts']} attempts)"
        )
        return {}

    async def build_document(self, state: DraftState) -> dict:
        result = validate_data(
            "draft",
            {
                "topic": state["base_topic"],
                "content": state["content"],
                "format": state["citation_format"].value,
                "length": state["length"],
                "sources": [s.to_dict() for s in state["sources"]],
                "plagiarism_score": state["plagiarism_score"],
            },
        )
        if not result.is_valid:
            raise SchemaValidationError(result.errors)

        document = await self.services.build_document(
            state["content"], state.get("bibliography") or "", state["base_topic"]
        )
        await self.progress(PROGRESS_CHECKED)
        return {"document": document}

    async def upload(self, state: DraftState) -> dict:
        link = await self.services.upload_document(
            state["document"].path, state.get("owner_id", "guest")
        )
        await self.progress(PROGRESS_PACKAGED)
        return {"document_link": link}

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    async def run(
        self,
        topic: str,
        sources: list[SourceRecord],
        citation_format: CitationFormat = CitationFormat.APA,
        length: int = 5,
        owner_id: str = "guest",
        revision_notes: str | None = None,
    ) -> DraftResult:
        """
        Run the pipeline to completion.

        Raises:
            AdapterError: generation failed or timed out
            QualityGateFailure: score stayed above the threshold after all retries
            SchemaValidationError: the accepted draft is not a valid record
        """
        initial: DraftState = {
            "base_topic": topic,
            "topic": topic,
            "sources": sources,
            "citation_format": citation_format,
            "length": length,
            "owner_id": owner_id,
            "revision_notes": revision_notes,
            "bibliography": None,
            "attempts": 0,
            "regenerations": 0,
        }
        # Each loop visits three nodes; keep the graph limit above the cap
        config = {"recursion_limit": 3 * (self.max_retries + 1) + 10}
        final = await self.graph.ainvoke(initial, config=config)

        if final.get("verdict") == "manual_review":
            raise QualityGateFailure(final["plagiarism_score"], final["attempts"])

        return DraftResult(
            content=final["content"],
            bibliography=final.get("bibliography") or "",
            plagiarism_score=final["plagiarism_score"],
            attempts=final["attempts"],
            document=final["document"],
            document_link=final.get("document_link"),
        )


def route_after_check(state: DraftState) -> str:
    return state["verdict"]
