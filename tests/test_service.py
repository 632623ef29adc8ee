"""
Conversion Service Tests
"""
import asyncio
import io

import pytest

from conftest import FAKE_PDF, PPTX_MIME
from ppt2pdf_service.conversion import (
    ConversionJob,
    RemoteStepError,
    UploadRejected,
    is_powerpoint,
    pdf_filename,
)
from ppt2pdf_service.conversion.adapters import LocalScratch


def _reader(data: bytes):
    buf = io.BytesIO(data)

    async def read(n: int) -> bytes:
        return buf.read(n)

    return read


class TestPdfFilename:
    @pytest.mark.parametrize(
        "original,expected",
        [
            ("deck.pptx", "deck.pdf"),
            ("Slides.PPT", "Slides.pdf"),
            ("Quarterly.Review.PpTx", "Quarterly.Review.pdf"),
            ("export", "export.pdf"),
            ("notes.ppt.backup", "notes.ppt.pdf"),
            ("../../etc/deck.pptx", "deck.pdf"),
        ],
    )
    def test_extension_swap(self, original, expected):
        assert pdf_filename(original) == expected


class TestIsPowerpoint:
    def test_mime_match(self):
        assert is_powerpoint("whatever.bin", PPTX_MIME)

    def test_extension_match_is_case_insensitive(self):
        assert is_powerpoint("DECK.PPTX", "application/octet-stream")

    def test_neither_matches(self):
        assert not is_powerpoint("deck.pdf", "application/pdf")

    def test_missing_content_type(self):
        assert is_powerpoint("deck.ppt", None)
        assert not is_powerpoint("deck.odp", None)


class TestReceiveUpload:
    """Upload validation and scratch persistence"""

    def test_writes_to_scratch(self, service, scratch_dir):
        job = ConversionJob()
        upload = asyncio.run(service.receive_upload("deck.pptx", PPTX_MIME, _reader(b"abc"), job))
        assert upload.size_bytes == 3
        assert upload.path.read_bytes() == b"abc"
        assert upload.path.parent == scratch_dir.resolve()
        assert upload.path.name.endswith("-deck.pptx")
        assert job.upload_path == upload.path

    def test_missing_filename(self, service):
        job = ConversionJob()
        with pytest.raises(UploadRejected) as exc:
            asyncio.run(service.receive_upload("", PPTX_MIME, _reader(b"abc"), job))
        assert exc.value.error == "No file uploaded"
        assert job.upload_path is None

    def test_wrong_type_writes_nothing(self, service, scratch_dir):
        job = ConversionJob()
        with pytest.raises(UploadRejected):
            asyncio.run(service.receive_upload("a.txt", "text/plain", _reader(b"abc"), job))
        assert job.upload_path is None
        assert list(scratch_dir.iterdir()) == []

    def test_oversize_leaves_partial_file_for_cleanup(self, service, scratch_dir, monkeypatch):
        monkeypatch.setattr(service, "_max_upload_bytes", 10)
        job = ConversionJob()
        with pytest.raises(UploadRejected) as exc:
            asyncio.run(service.receive_upload("big.pptx", PPTX_MIME, _reader(b"x" * 11), job))
        assert exc.value.error == "File too large"
        assert job.upload_path is not None
        asyncio.run(service.cleanup(job))
        assert list(scratch_dir.iterdir()) == []


class TestConvert:
    """Remote sequence: create, settle, export, save"""

    def _upload(self, service, name="deck.pptx", data=b"slides"):
        job = ConversionJob()
        upload = asyncio.run(service.receive_upload(name, PPTX_MIME, _reader(data), job))
        return upload, job

    def test_fills_job_and_writes_pdf(self, service, documents):
        upload, job = self._upload(service)
        output_path, download_name = asyncio.run(service.convert(upload, job))
        assert download_name == "deck.pdf"
        assert job.remote_file_id == "remote-1"
        assert job.output_path == output_path
        assert output_path.read_bytes() == FAKE_PDF + b"remote-1"
        assert output_path != upload.path

    def test_settle_delay_between_create_and_export(self, service, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr(service, "_settle_seconds", 2.0)
        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        upload, job = self._upload(service)
        asyncio.run(service.convert(upload, job))
        assert delays.count(2.0) == 1

    def test_create_failure_prefix(self, service, documents):
        documents.fail_create = RuntimeError("boom")
        upload, job = self._upload(service)
        with pytest.raises(RemoteStepError, match="^Failed to upload to Google Drive: boom$"):
            asyncio.run(service.convert(upload, job))
        assert job.remote_file_id is None

    def test_export_failure_keeps_remote_id(self, service, documents):
        documents.fail_export = RuntimeError("boom")
        upload, job = self._upload(service)
        with pytest.raises(RemoteStepError, match="^Failed to convert to PDF: boom$"):
            asyncio.run(service.convert(upload, job))
        assert job.remote_file_id == "remote-1"
        assert job.output_path is None


class TestCleanup:
    def test_each_deletion_attempted_independently(self, service, documents, scratch_dir):
        documents.fail_delete = RuntimeError("remote gone")
        upload_path = scratch_dir / "1-a.pptx"
        output_path = scratch_dir / "1-a.pdf"
        upload_path.write_bytes(b"u")
        output_path.write_bytes(b"o")
        job = ConversionJob(upload_path=upload_path, remote_file_id="remote-9", output_path=output_path)

        asyncio.run(service.cleanup(job))

        assert documents.deleted == ["remote-9"]
        assert not upload_path.exists()
        assert not output_path.exists()

    def test_missing_local_files_are_ignored(self, service, scratch_dir):
        job = ConversionJob(upload_path=scratch_dir / "never-written.pptx")
        asyncio.run(service.cleanup(job))

    def test_empty_job_makes_no_calls(self, service, documents):
        asyncio.run(service.cleanup(ConversionJob()))
        assert documents.calls == 0


class TestConcurrentRequests:
    """Parallel requests keep their own artifacts"""

    def test_parallel_flows_do_not_interfere(self, service, documents, scratch_dir):
        async def one_request(name: str, data: bytes):
            job = ConversionJob()
            try:
                upload = await service.receive_upload(name, PPTX_MIME, _reader(data), job)
                output_path, download_name = await service.convert(upload, job)
                return download_name, output_path.read_bytes(), job
            finally:
                await service.cleanup(job)

        async def run_all():
            return await asyncio.gather(
                one_request("alpha.pptx", b"A"),
                one_request("beta.pptx", b"B"),
                one_request("gamma.ppt", b"C"),
            )

        results = asyncio.run(run_all())

        names = [r[0] for r in results]
        assert names == ["alpha.pdf", "beta.pdf", "gamma.pdf"]
        upload_paths = {r[2].upload_path for r in results}
        output_paths = {r[2].output_path for r in results}
        assert len(upload_paths) == 3
        assert len(output_paths) == 3
        assert sorted(documents.deleted) == sorted(documents.created_ids)
        assert len(documents.deleted) == 3
        assert list(scratch_dir.iterdir()) == []


class TestLocalScratch:
    def test_creates_directory(self, tmp_path):
        LocalScratch(tmp_path / "nested" / "uploads")
        assert (tmp_path / "nested" / "uploads").is_dir()

    def test_same_name_gets_distinct_paths(self, tmp_path):
        scratch = LocalScratch(tmp_path)
        assert scratch.new_path("deck.pptx") != scratch.new_path("deck.pptx")

    def test_strips_directories(self, tmp_path):
        scratch = LocalScratch(tmp_path)
        path = scratch.new_path("..\\..\\evil\\deck.pptx")
        assert path.parent == tmp_path.resolve()
        assert path.name.endswith("-deck.pptx")
