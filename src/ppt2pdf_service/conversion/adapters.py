import logging
import secrets
import time
from pathlib import Path
from typing import BinaryIO

import google_auth_httplib2
import httplib2
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.http import HttpRequest, MediaIoBaseUpload

from ..config import DRIVE_SCOPES, GOOGLE_TOKEN_URI, DriveCredentials
from .interfaces import DocumentServiceGateway, ScratchGateway

logger = logging.getLogger("ppt2pdf")

SLIDES_MIME = "application/vnd.google-apps.presentation"
PDF_MIME = "application/pdf"


class LocalScratch(ScratchGateway):
    def __init__(self, upload_dir: str | Path) -> None:
        self._base = Path(upload_dir).resolve()
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def base(self) -> Path:
        return self._base

    def new_path(self, original_name: str) -> Path:
        # Only the basename of the client-supplied name is kept
        safe_name = Path(original_name.replace("\\", "/")).name or "upload"
        stamp = int(time.time() * 1000)
        return self._base / f"{stamp}-{secrets.token_hex(4)}-{safe_name}"

    def remove(self, path: Path) -> None:
        Path(path).unlink()


class GoogleDriveDocumentService(DocumentServiceGateway):
    """Google Drive v3 client used as the conversion backend.

    Built once per process. Every request gets its own AuthorizedHttp since
    httplib2 connections are not thread-safe, while the credentials (and their
    refreshed access token) are shared.
    """

    def __init__(self, creds: DriveCredentials, *, timeout: float | None = None) -> None:
        self._timeout = timeout or None
        self._credentials = Credentials(
            token=None,
            refresh_token=creds.refresh_token,
            client_id=creds.client_id,
            client_secret=creds.client_secret,
            token_uri=GOOGLE_TOKEN_URI,
            scopes=DRIVE_SCOPES,
        )
        self._drive = build(
            "drive",
            "v3",
            http=self._authorized_http(),
            requestBuilder=self._build_request,
            cache_discovery=False,
        )

    def _authorized_http(self) -> google_auth_httplib2.AuthorizedHttp:
        return google_auth_httplib2.AuthorizedHttp(
            self._credentials, http=httplib2.Http(timeout=self._timeout)
        )

    def _build_request(self, http, *args, **kwargs) -> HttpRequest:
        return HttpRequest(self._authorized_http(), *args, **kwargs)

    def create_presentation(self, name: str, content_type: str, body: BinaryIO) -> str:
        media = MediaIoBaseUpload(body, mimetype=content_type, resumable=False)
        created = (
            self._drive.files()
            .create(body={"name": name, "mimeType": SLIDES_MIME}, media_body=media, fields="id")
            .execute()
        )
        file_id = (created or {}).get("id")
        if not file_id:
            raise RuntimeError("Drive did not return a file id")
        return str(file_id)

    def export_pdf(self, file_id: str) -> bytes:
        return self._drive.files().export(fileId=file_id, mimeType=PDF_MIME).execute()

    def delete(self, file_id: str) -> None:
        self._drive.files().delete(fileId=file_id).execute()
