"""
Draft pipeline state for LangGraph.
"""

from typing import Literal, Optional, TypedDict

from academic_bot.core.drafts.document import DocumentFile
from academic_bot.core.session.models import CitationFormat, SourceRecord


class DraftState(TypedDict, total=False):
    """
    State of one draft pipeline run.

    Attributes:
        base_topic: Topic as requested by the user
        topic: Topic sent to the model (annotated on regeneration)
        sources: Approved sources to cite
        citation_format: APA, MLA or Chicago
        length: Requested length in pages
        owner_id: Identifier used to name the uploaded file
        revision_notes: Extra instructions when re-drafting after a revision
        content: Latest generated draft
        bibliography: Formatted reference list
        plagiarism_score: Score of the latest draft
        attempts: Number of generate calls made
        regenerations: Number of regenerations triggered by the quality gate
        verdict: Decision of the quality gate
        document: Packaged document
        document_link: Shareable link of the uploaded document
    """
    base_topic: str
    topic: str
    sources: list[SourceRecord]
    citation_format: CitationFormat
    length: int
    owner_id: str
    revision_notes: Optional[str]

    content: str
    bibliography: Optional[str]
    plagiarism_score: float
    attempts: int
    regenerations: int
    verdict: Literal["accept", "regenerate", "manual_review"]

    document: Optional[DocumentFile]
    document_link: Optional[str]
