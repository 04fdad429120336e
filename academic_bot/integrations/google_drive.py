"""
Google API helpers: service-account credentials and Drive uploads.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from academic_bot.config import Settings, get_settings
from academic_bot.core.monitoring import monitor

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

DOCX_MIME_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)


def build_google_service(
    settings: Settings, api: str, version: str, scopes: list[str]
) -> Any:
    """Build a googleapiclient resource authorised with the service account."""
    credentials = service_account.Credentials.from_service_account_file(
        str(settings.google_service_account_path), scopes=scopes
    )
    return build(api, version, credentials=credentials, cache_discovery=False)


class DriveUploader:
    """Uploads generated documents to the configured Drive folder."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._service = None

    @property
    def configured(self) -> bool:
        return self.settings.drive_configured

    def _get_service(self) -> Any:
        if self._service is None:
            self._service = build_google_service(
                self.settings, "drive", "v3", DRIVE_SCOPES
            )
        return self._service

    def _upload_sync(self, path: Path, owner_id: str) -> str:
        service = self._get_service()
        metadata = {
            "name": f"{owner_id}_{path.name}",
            "parents": [self.settings.google_drive_folder_id],
        }
        media = MediaFileUpload(str(path), mimetype=DOCX_MIME_TYPE)
        created = (
            service.files()
            .create(body=metadata, media_body=media, fields="id,webViewLink")
            .execute()
        )
        # Anyone with the link can read the draft
        service.permissions().create(
            fileId=created["id"],
            body={"role": "reader", "type": "anyone"},
        ).execute()
        return created["webViewLink"]

    async def upload_document(self, path: Path, owner_id: str) -> Optional[str]:
        """Upload a file and return its shareable link, or None on failure."""
        if not self.configured:
            logger.info("Google Drive not configured, skipping upload")
            return None

        try:
            link = await asyncio.to_thread(self._upload_sync, path, owner_id)
        except (HttpError, OSError, ValueError) as e:
            monitor.log_call("google", success=False, error=f"drive upload: {e}")
            logger.warning(f"Drive upload failed for {path.name}: {e}")
            return None

        monitor.log_call("google")
        logger.info(f"Uploaded {path.name} to Drive")
        return link
