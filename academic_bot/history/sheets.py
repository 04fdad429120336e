"""
Google Sheets history store.

One row per chat in columns A:M:
    A chat id, B role, C student id, D text buffer, E image refs,
    F voice refs, G deadline, H history (JSON), I tags (JSON),
    J folder id, K document link, L sharing flag, M payment status.
Feedback goes to the "Feedback" sheet, one row per rating or comment.

The Sheets client is synchronous; every call runs in a worker thread.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Optional

from googleapiclient.errors import HttpError

from academic_bot.config import Settings
from academic_bot.core.errors import AdapterError
from academic_bot.core.monitoring import monitor
from academic_bot.history.base import (
    FeedbackEntry,
    HistoryAction,
    HistoryEntry,
    HistoryStore,
    filter_by_tag,
    merge_tags,
)
from academic_bot.integrations.google_drive import SHEETS_SCOPES, build_google_service

logger = logging.getLogger(__name__)

ROWS_RANGE = "A:M"
FEEDBACK_RANGE = "Feedback!A:E"

COL_CHAT_ID = 0
COL_ROLE = 1
COL_HISTORY = 7
COL_TAGS = 8


def _cell(row: list[str], index: int, default: str = "") -> str:
    return row[index] if len(row) > index else default


def _row_history(row: list[str], chat_id: int) -> list[HistoryEntry]:
    raw = _cell(row, COL_HISTORY) or "[]"
    try:
        items = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Unreadable history cell for chat {chat_id}")
        return []
    return [HistoryEntry.from_dict(item, chat_id) for item in items]


class SheetsHistoryStore(HistoryStore):
    """History kept in a Google spreadsheet."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.spreadsheet_id = settings.google_sheets_id
        self._service = None

    def _values(self) -> Any:
        if self._service is None:
            self._service = build_google_service(
                self.settings, "sheets", "v4", SHEETS_SCOPES
            )
        return self._service.spreadsheets().values()

    async def _call(self, operation: str, func, *args) -> Any:
        try:
            result = await asyncio.to_thread(func, *args)
        except (HttpError, OSError) as e:
            monitor.log_call("google", success=False, error=f"sheets {operation}: {e}")
            raise AdapterError("google", f"sheets {operation} failed: {e}") from e
        monitor.log_call("google")
        return result

    # -------------------------------------------------------------------------
    # Sync helpers (run in a worker thread)
    # -------------------------------------------------------------------------

    def _get_rows(self, range_: str) -> list[list[str]]:
        response = self._values().get(
            spreadsheetId=self.spreadsheet_id, range=range_
        ).execute()
        return response.get("values", [])

    def _append_row(self, range_: str, row: list[Any]) -> None:
        self._values().append(
            spreadsheetId=self.spreadsheet_id,
            range=range_,
            valueInputOption="RAW",
            body={"values": [row]},
        ).execute()

    def _update_cells(self, updates: dict[str, Any]) -> None:
        self._values().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={
                "valueInputOption": "RAW",
                "data": [
                    {"range": cell, "values": [[value]]}
                    for cell, value in updates.items()
                ],
            },
        ).execute()

    # -------------------------------------------------------------------------
    # HistoryStore
    # -------------------------------------------------------------------------

    async def get_history(
        self, chat_id: int, tag: Optional[str] = None
    ) -> list[HistoryEntry]:
        rows = await self._call("read", self._get_rows, ROWS_RANGE)
        for row in rows:
            if _cell(row, COL_CHAT_ID) == str(chat_id):
                return filter_by_tag(_row_history(row, chat_id), tag)
        return []

    async def append_entry(
        self,
        chat_id: int,
        entry: HistoryEntry,
        tags: Optional[list[str]] = None,
    ) -> None:
        entry.chat_id = chat_id
        entry.tags = merge_tags(entry.tags, tags or [])

        rows = await self._call("read", self._get_rows, ROWS_RANGE)
        row_index = next(
            (i for i, row in enumerate(rows) if _cell(row, COL_CHAT_ID) == str(chat_id)),
            None,
        )

        if row_index is None:
            role = entry.topic if entry.action == HistoryAction.MODE else "guest"
            row = [
                str(chat_id),
                role,
                "new",
                "",
                "",
                "",
                "",
                json.dumps([entry.to_dict()]),
                json.dumps(entry.tags),
                self.settings.google_drive_folder_id or "",
                entry.document_link or "",
                "true" if entry.document_link else "false",
                "Free",
            ]
            await self._call("append", self._append_row, ROWS_RANGE, row)
            return

        row = rows[row_index]
        line = row_index + 1
        history = [e.to_dict() for e in _row_history(row, chat_id)]
        history.append(entry.to_dict())
        try:
            known_tags = json.loads(_cell(row, COL_TAGS) or "[]")
        except json.JSONDecodeError:
            known_tags = []

        updates: dict[str, Any] = {
            f"H{line}": json.dumps(history),
            f"I{line}": json.dumps(merge_tags(known_tags, entry.tags)),
        }
        if entry.action == HistoryAction.MODE and entry.topic:
            updates[f"B{line}"] = entry.topic
        if entry.action == HistoryAction.DRAFT and entry.document_link:
            updates[f"K{line}"] = entry.document_link
            updates[f"L{line}"] = "true"

        await self._call("update", self._update_cells, updates)

    async def save_feedback(
        self,
        chat_id: int,
        draft_id: str,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> None:
        row = [
            str(chat_id),
            draft_id,
            "" if rating is None else rating,
            comment or "",
            datetime.now().isoformat(),
        ]
        await self._call("append", self._append_row, FEEDBACK_RANGE, row)

    async def list_feedback(self) -> list[FeedbackEntry]:
        rows = await self._call("read", self._get_rows, FEEDBACK_RANGE)
        feedback = []
        for row in rows:
            chat_id = _cell(row, 0)
            # Skip the header row and anything malformed
            if not chat_id.lstrip("-").isdigit():
                continue
            rating = _cell(row, 2)
            timestamp = _cell(row, 4)
            feedback.append(
                FeedbackEntry(
                    chat_id=int(chat_id),
                    draft_id=_cell(row, 1),
                    rating=int(rating) if rating.isdigit() else None,
                    comment=_cell(row, 3) or None,
                    timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(),
                )
            )
        return feedback

    @property
    def name(self) -> str:
        return "sheets"
