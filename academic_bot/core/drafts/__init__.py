"""
Draft generation: LangGraph pipeline and document packaging.
"""

from academic_bot.core.drafts.document import DocumentFile, build_document, safe_filename
from academic_bot.core.drafts.pipeline import DraftPipeline, DraftResult

__all__ = [
    "DocumentFile",
    "DraftPipeline",
    "DraftResult",
    "build_document",
    "safe_filename",
]
