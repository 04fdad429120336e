from aiohttp import test_utils
from docx import Document
from openpyxl import load_workbook

from academic_bot.core.drafts.document import build_document, safe_filename
from academic_bot.core.monitoring import ApiMonitor
from academic_bot.core.reports import (
    UsageReportExporter,
    format_admin_report,
    format_draft_report,
)
from academic_bot.core.reports.report import summarize_feedback
from academic_bot.core.session.models import CitationFormat, DraftSummary
from academic_bot.health import build_health_status, create_health_app
from academic_bot.history import FeedbackEntry


def make_feedback() -> list[FeedbackEntry]:
    return [
        FeedbackEntry(chat_id=1, draft_id="a1", rating=5),
        FeedbackEntry(chat_id=2, draft_id="b2", rating=2),
        FeedbackEntry(chat_id=2, draft_id="b2", comment="Needs <more> data"),
    ]


class TestMonitor:

    def test_counts_and_errors(self):
        monitor = ApiMonitor()
        monitor.log_call("groq")
        monitor.log_call("groq", success=False, error="rate limited")
        monitor.log_call("zotero")

        stats = monitor.get_stats()
        assert stats.total_calls == 3
        assert stats.failures["groq"] == 1
        assert round(stats.success_rate, 1) == 66.7
        assert stats.recent_errors[0].message == "rate limited"

    def test_error_log_is_bounded(self):
        monitor = ApiMonitor()
        for i in range(ApiMonitor.MAX_ERRORS + 5):
            monitor.log_call("eden", success=False, error=f"error {i}")

        errors = monitor.get_stats().recent_errors
        assert len(errors) == ApiMonitor.MAX_ERRORS
        assert errors[-1].message == f"error {ApiMonitor.MAX_ERRORS + 4}"


class TestReports:

    def test_summarize_feedback(self):
        summary = summarize_feedback(make_feedback())
        assert summary.count == 3
        assert summary.rated == 2
        assert summary.average_rating == 3.5
        assert summary.comments == 1

    def test_draft_report(self):
        draft = DraftSummary(
            topic="Soil <health>",
            format=CitationFormat.MLA,
            length=4,
            plagiarism_score=0.062,
            filename="soil.docx",
            document_link="https://drive/x",
            approved=True,
        )
        text = format_draft_report(draft)

        assert "Soil &lt;health&gt;" in text
        assert "6.2%" in text
        assert "Approved" in text
        assert "https://drive/x" in text

    def test_admin_report(self):
        monitor = ApiMonitor()
        monitor.log_call("semantic_scholar", success=False, error="HTTP <503>")
        text = format_admin_report(monitor.get_stats(), make_feedback())

        assert "semantic_scholar: 1 call(s), 1 failed" in text
        assert "3.50" in text
        assert "HTTP &lt;503&gt;" in text

    def test_xlsx_export(self, tmp_path):
        monitor = ApiMonitor()
        monitor.log_call("groq")
        monitor.log_call("eden", success=False, error="timeout")

        path = UsageReportExporter().export(monitor.get_stats(), make_feedback(), tmp_path / "reports")

        assert path.exists()
        wb = load_workbook(path)
        assert wb.sheetnames == ["API usage", "Feedback"]
        feedback_sheet = wb["Feedback"]
        assert feedback_sheet.cell(row=1, column=1).value == "Chat"
        assert feedback_sheet.cell(row=4, column=4).value == "Needs <more> data"


class TestDocument:

    def test_safe_filename(self):
        assert safe_filename("Soil / erosion: a review?") == "Soil_erosion_a_review"
        assert safe_filename("???") == "draft"

    def test_markdown_structure(self, tmp_path):
        text = "# Introduction\nSome **bold** text.\n\n## Methods\n- first point"
        document = build_document(text, "Ref A\nRef B", "Soil health", tmp_path)

        doc = Document(str(document.path))
        paragraphs = [(p.style.name, p.text) for p in doc.paragraphs]

        assert ("Title", "Soil health") in paragraphs
        assert ("Heading 1", "Introduction") in paragraphs
        assert ("Heading 2", "Methods") in paragraphs
        assert ("Normal", "Some bold text.") in paragraphs
        assert ("List Bullet", "first point") in paragraphs
        assert ("Heading 1", "References") in paragraphs
        assert paragraphs[-1] == ("Normal", "Ref B")


class TestHealth:

    def test_status_reports_features(self, settings):
        status = build_health_status(settings)

        assert status["status"] == "OK"
        assert status["features"]["telegram"] is True
        assert status["features"]["google_drive"] is False

    async def test_health_endpoint(self, settings):
        async with test_utils.TestClient(test_utils.TestServer(create_health_app(settings))) as client:
            response = await client.get("/health")
            assert response.status == 200
            data = await response.json()
            assert (await client.get("/status")).status == 200

        assert data["status"] == "OK"
        assert data["bot"] == "Academic Paper Assistant"
