"""
Export usage reports to XLSX format.
"""

import logging
from datetime import datetime
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from academic_bot.core.monitoring import UsageStats
from academic_bot.core.reports.report import summarize_feedback
from academic_bot.history.base import FeedbackEntry

logger = logging.getLogger(__name__)


class UsageReportExporter:
    """Export API usage and feedback to XLSX format."""

    # Styles
    HEADER_FONT = Font(bold=True, size=14)
    SUBHEADER_FONT = Font(bold=True, size=11)

    HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    HEADER_FONT_WHITE = Font(bold=True, size=11, color="FFFFFF")

    ALT_ROW_FILL = PatternFill(start_color="D9E2F3", end_color="D9E2F3", fill_type="solid")

    THIN_BORDER = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    CENTER_ALIGN = Alignment(horizontal='center', vertical='center')
    LEFT_ALIGN = Alignment(horizontal='left', vertical='center')
    RIGHT_ALIGN = Alignment(horizontal='right', vertical='center')
    WRAP_ALIGN = Alignment(horizontal='left', vertical='top', wrap_text=True)

    def export(
        self,
        stats: UsageStats,
        feedback: list[FeedbackEntry],
        output_dir: Path,
    ) -> Path:
        """
        Export usage report to XLSX file.

        Args:
            stats: API usage snapshot
            feedback: All stored feedback
            output_dir: Directory for output file

        Returns:
            Path to created XLSX file
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = output_dir / f"usage_report_{timestamp}.xlsx"

        wb = Workbook()
        ws = wb.active
        ws.title = "API usage"
        self._write_usage(ws, stats, feedback)

        self._write_feedback(wb.create_sheet("Feedback"), feedback)

        wb.save(filepath)
        logger.info(f"Usage report exported: {filepath}")

        return filepath

    def _write_header_row(self, ws, row: int, headers: list[str]) -> None:
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = self.HEADER_FONT_WHITE
            cell.fill = self.HEADER_FILL
            cell.border = self.THIN_BORDER
            cell.alignment = self.CENTER_ALIGN

    def _write_usage(self, ws, stats: UsageStats, feedback: list[FeedbackEntry]) -> None:
        ws.column_dimensions['A'].width = 22
        ws.column_dimensions['B'].width = 12
        ws.column_dimensions['C'].width = 12
        ws.column_dimensions['D'].width = 14

        row = 1
        ws.merge_cells(f'A{row}:D{row}')
        cell = ws.cell(row=row, column=1, value="USAGE REPORT")
        cell.font = self.HEADER_FONT
        cell.alignment = self.CENTER_ALIGN
        row += 1

        ws.merge_cells(f'A{row}:D{row}')
        cell = ws.cell(row=row, column=1, value=datetime.now().strftime('%Y-%m-%d %H:%M'))
        cell.alignment = self.CENTER_ALIGN
        row += 2

        self._write_header_row(ws, row, ["Service", "Calls", "Failures", "Success, %"])
        row += 1

        for i, (api, calls) in enumerate(stats.calls.items(), 1):
            failures = stats.failures.get(api, 0)
            rate = 100.0 * (calls - failures) / calls if calls else 100.0
            for col, value in enumerate([api, calls, failures, round(rate, 1)], 1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = self.THIN_BORDER
                cell.alignment = self.LEFT_ALIGN if col == 1 else self.RIGHT_ALIGN
                if i % 2 == 0:
                    cell.fill = self.ALT_ROW_FILL
            row += 1

        # Total row
        cell = ws.cell(row=row, column=1, value="TOTAL:")
        cell.font = self.SUBHEADER_FONT
        cell.border = self.THIN_BORDER
        totals = [stats.total_calls, sum(stats.failures.values()), round(stats.success_rate, 1)]
        for col, value in enumerate(totals, 2):
            cell = ws.cell(row=row, column=col, value=value)
            cell.font = self.SUBHEADER_FONT
            cell.border = self.THIN_BORDER
            cell.alignment = self.RIGHT_ALIGN
        row += 2

        # === FEEDBACK SUMMARY ===
        summary = summarize_feedback(feedback)
        ws.cell(row=row, column=1, value="FEEDBACK:").font = self.SUBHEADER_FONT
        row += 1
        ws.cell(row=row, column=1, value="Entries:")
        ws.cell(row=row, column=2, value=summary.count)
        row += 1
        ws.cell(row=row, column=1, value="Average rating:")
        ws.cell(
            row=row,
            column=2,
            value=round(summary.average_rating, 2) if summary.average_rating is not None else "-",
        )
        row += 1
        ws.cell(row=row, column=1, value="Uptime, s:")
        ws.cell(row=row, column=2, value=stats.uptime_seconds)

    def _write_feedback(self, ws, feedback: list[FeedbackEntry]) -> None:
        widths = {'A': 16, 'B': 12, 'C': 8, 'D': 50, 'E': 18}
        for column, width in widths.items():
            ws.column_dimensions[column].width = width

        self._write_header_row(ws, 1, ["Chat", "Draft", "Rating", "Comment", "Time"])

        for i, entry in enumerate(feedback, 1):
            row = i + 1
            values = [
                entry.chat_id,
                entry.draft_id,
                entry.rating if entry.rating is not None else "",
                entry.comment or "",
                entry.timestamp.strftime('%Y-%m-%d %H:%M'),
            ]
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = self.THIN_BORDER
                cell.alignment = self.WRAP_ALIGN if col == 4 else self.LEFT_ALIGN
