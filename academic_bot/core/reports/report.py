"""
Text reports: last draft of a chat and operator usage summary.
"""

from dataclasses import dataclass
from html import escape
from typing import Optional

from academic_bot.core.monitoring import UsageStats
from academic_bot.core.session.models import DraftSummary
from academic_bot.history.base import FeedbackEntry


@dataclass
class FeedbackSummary:
    count: int
    rated: int
    average_rating: Optional[float]
    comments: int


def summarize_feedback(feedback: list[FeedbackEntry]) -> FeedbackSummary:
    ratings = [f.rating for f in feedback if f.rating is not None]
    return FeedbackSummary(
        count=len(feedback),
        rated=len(ratings),
        average_rating=sum(ratings) / len(ratings) if ratings else None,
        comments=sum(1 for f in feedback if f.comment),
    )


def format_draft_report(draft: DraftSummary) -> str:
    """Report on the last draft of a chat."""
    status = "✅ Approved" if draft.approved else "⏳ Awaiting feedback"
    lines = [
        "📊 <b>Draft report</b>",
        "",
        f"📝 <b>Topic:</b> {escape(draft.topic)}",
        f"📄 <b>Format:</b> {draft.format.value}",
        f"📏 <b>Length:</b> ~{draft.length} pages",
        f"🔍 <b>Plagiarism:</b> {draft.plagiarism_score * 100:.1f}%",
        f"📚 <b>Sources:</b> {draft.sources_count}",
        f"🔁 <b>Attempts:</b> {draft.attempts}",
        f"🗂 <b>File:</b> {escape(draft.filename)}",
    ]
    if draft.document_link:
        lines.append(f"📁 <b>Link:</b> {escape(draft.document_link)}")
    lines.append(f"📌 <b>Status:</b> {status}")
    lines.append(f"🕒 <b>Created:</b> {draft.created_at.strftime('%Y-%m-%d %H:%M')}")
    return "\n".join(lines)


def format_admin_report(stats: UsageStats, feedback: list[FeedbackEntry]) -> str:
    """Operator summary of API usage and feedback."""
    summary = summarize_feedback(feedback)
    hours, remainder = divmod(stats.uptime_seconds, 3600)
    minutes = remainder // 60

    lines = [
        "📈 <b>Admin report</b>",
        "",
        f"⏱ <b>Uptime:</b> {hours}h {minutes}m",
        f"🔌 <b>API calls:</b> {stats.total_calls}",
        f"✅ <b>Success rate:</b> {stats.success_rate:.1f}%",
        "",
    ]
    for api, calls in stats.calls.items():
        if calls:
            lines.append(f"• {api}: {calls} call(s), {stats.failures.get(api, 0)} failed")

    average = f"{summary.average_rating:.2f}⭐" if summary.average_rating is not None else "n/a"
    lines += [
        "",
        f"⭐ <b>Average rating:</b> {average}",
        f"💬 <b>Feedback entries:</b> {summary.count} ({summary.comments} comment(s))",
    ]

    if stats.recent_errors:
        lines += ["", "🚨 <b>Recent errors:</b>"]
        for error in stats.recent_errors[-5:]:
            lines.append(
                f"• {error.timestamp.strftime('%H:%M:%S')} {error.api}: {escape(error.message[:100])}"
            )

    return "\n".join(lines)
