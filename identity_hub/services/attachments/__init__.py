"""Profile-picture storage on Google Drive.

Every call authenticates with the configured service account. Failures are
reported as Err values; nothing here raises to the caller.
"""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from typing import Any, Callable, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiError
from googleapiclient.http import MediaIoBaseUpload

from identity_hub.utils.base import Err, Ok, Result
from identity_hub.utils.config import settings
from identity_hub.utils.errors import ExternalServiceError, UploadFailed
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)

DOWNLOAD_URL = "https://drive.google.com/u/1/uc?id={file_id}&export=download"
TOKEN_URI = "https://oauth2.googleapis.com/token"

# Failures of the auth exchange, the API call or the transport
DRIVE_ERRORS = (GoogleAuthError, GoogleApiError, OSError, ValueError)


@dataclass(frozen=True)
class UploadedFile:
    """In-memory upload handed over by the HTTP layer."""
    filename: str
    content_type: str
    content: bytes


def build_drive_service() -> Any:
    """Authorise the service account and return a Drive v3 client."""
    private_key = base64.b64decode(settings.google_drive_private_key).decode("utf-8")
    credentials = service_account.Credentials.from_service_account_info(
        {
            "type": "service_account",
            "client_email": settings.google_drive_client_email,
            "private_key": private_key,
            "token_uri": TOKEN_URI,
        },
        scopes=[settings.google_drive_scope],
    )
    return build("drive", "v3", credentials=credentials, cache_discovery=False)


class AttachmentManager:
    def __init__(self, service_factory: Optional[Callable[[], Any]] = None, folder_id: Optional[str] = None):
        self._service_factory = service_factory or build_drive_service
        self._folder_id = folder_id if folder_id is not None else settings.google_drive_folder_key

    def upload_file(self, file: UploadedFile) -> Result[dict]:
        """Upload, make link-readable and return `{file_id, shareable_link, download_link}`."""
        try:
            drive = self._service_factory()
            metadata = {"name": file.filename}
            if self._folder_id:
                metadata["parents"] = [self._folder_id]
            media = MediaIoBaseUpload(io.BytesIO(file.content), mimetype=file.content_type, resumable=False)

            created = drive.files().create(body=metadata, media_body=media, fields="id").execute()
            file_id = created["id"]
            drive.permissions().create(fileId=file_id, body={"role": "reader", "type": "anyone"}).execute()
            info = drive.files().get(fileId=file_id, fields="webViewLink").execute()
        except DRIVE_ERRORS as exc:
            logger.error("drive_upload_failed", filename=file.filename, error=str(exc))
            return Err(UploadFailed("Failed to upload picture to Google Drive."))

        logger.info("drive_upload_succeeded", file_id=file_id)
        return Ok({
            "file_id": file_id,
            "shareable_link": info.get("webViewLink"),
            "download_link": DOWNLOAD_URL.format(file_id=file_id),
        })

    def delete_file(self, file_id: str) -> Result[None]:
        try:
            drive = self._service_factory()
            drive.files().delete(fileId=file_id).execute()
        except DRIVE_ERRORS as exc:
            logger.warning("drive_delete_failed", file_id=file_id, error=str(exc))
            return Err(ExternalServiceError("Failed to delete file from Google Drive."))
        return Ok(None)


_manager: Optional[AttachmentManager] = None


def get_attachment_manager() -> AttachmentManager:
    global _manager
    if _manager is None:
        _manager = AttachmentManager()
    return _manager
