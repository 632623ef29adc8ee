"""
Test Configuration and Fixtures
"""
import itertools
import threading

import pytest
from fastapi.testclient import TestClient

from ppt2pdf_service import webapi
from ppt2pdf_service.conversion import ConversionService
from ppt2pdf_service.conversion.adapters import LocalScratch

PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
PPT_MIME = "application/vnd.ms-powerpoint"
FAKE_PDF = b"%PDF-1.7\n% fake export\n%%EOF"


class FakeDocuments:
    """In-memory stand-in for the Drive gateway that records every call."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self.created: list[tuple[str, str, bytes]] = []
        self.created_ids: list[str] = []
        self.exported: list[str] = []
        self.deleted: list[str] = []
        self.fail_create: Exception | None = None
        self.fail_export: Exception | None = None
        self.fail_delete: Exception | None = None

    @property
    def calls(self) -> int:
        return len(self.created) + len(self.exported) + len(self.deleted)

    def create_presentation(self, name, content_type, body):
        if self.fail_create:
            raise self.fail_create
        with self._lock:
            file_id = f"remote-{next(self._ids)}"
            self.created.append((name, content_type, body.read()))
            self.created_ids.append(file_id)
        return file_id

    def export_pdf(self, file_id):
        with self._lock:
            self.exported.append(file_id)
        if self.fail_export:
            raise self.fail_export
        return FAKE_PDF + file_id.encode()

    def delete(self, file_id):
        with self._lock:
            self.deleted.append(file_id)
        if self.fail_delete:
            raise self.fail_delete


@pytest.fixture
def documents():
    return FakeDocuments()


@pytest.fixture
def scratch_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def service(scratch_dir, documents):
    return ConversionService(
        scratch=LocalScratch(scratch_dir),
        documents=documents,
        max_upload_bytes=50 * 1024 * 1024,
        settle_seconds=0,
    )


@pytest.fixture
def client(monkeypatch, service):
    """Test client wired to the fake gateway instead of Google Drive."""
    monkeypatch.setattr(webapi, "SERVICE", service)
    with TestClient(webapi.app) as test_client:
        yield test_client
