from academic_bot.core.reports.exporter import UsageReportExporter
from academic_bot.core.reports.report import (
    FeedbackSummary,
    format_admin_report,
    format_draft_report,
    summarize_feedback,
)

__all__ = [
    "FeedbackSummary",
    "UsageReportExporter",
    "format_admin_report",
    "format_draft_report",
    "summarize_feedback",
]
