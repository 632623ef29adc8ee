import asyncio
import logging
import re
from pathlib import Path
from typing import Awaitable, Callable

from .interfaces import ConversionJob, DocumentServiceGateway, ScratchGateway, UploadedFile

logger = logging.getLogger("ppt2pdf")

POWERPOINT_MIME = {
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
}
POWERPOINT_EXTS = {".ppt", ".pptx"}

CHUNK = 1024 * 1024
_PPT_SUFFIX = re.compile(r"\.(ppt|pptx)$", re.IGNORECASE)


class UploadRejected(ValueError):
    """Client input problem; nothing was sent to the remote service."""

    def __init__(self, error: str, details: str = "") -> None:
        super().__init__(error)
        self.error = error
        self.details = details or error


class RemoteStepError(RuntimeError):
    """A remote step failed; the message names the step."""


def is_powerpoint(filename: str, content_type: str | None) -> bool:
    ct = (content_type or "").strip().lower()
    return ct in POWERPOINT_MIME or Path(filename or "").suffix.lower() in POWERPOINT_EXTS


def pdf_filename(original_name: str) -> str:
    """`deck.pptx` -> `deck.pdf`, `Slides.PPT` -> `Slides.pdf`."""
    name = Path((original_name or "").replace("\\", "/")).name or "converted"
    if _PPT_SUFFIX.search(name):
        return _PPT_SUFFIX.sub(".pdf", name)
    return f"{Path(name).stem or name}.pdf"


class ConversionService:
    """Core domain service for one-shot PowerPoint to PDF conversion.

    It is framework-agnostic: the HTTP layer feeds it an upload reader, calls
    `convert` with a fresh `ConversionJob`, and must call `cleanup` with the
    same job once the response is finished, whatever happened.
    """

    def __init__(
        self,
        scratch: ScratchGateway,
        documents: DocumentServiceGateway,
        *,
        max_upload_bytes: int,
        settle_seconds: float = 2.0,
    ) -> None:
        self._scratch = scratch
        self._documents = documents
        self._max_upload_bytes = max_upload_bytes
        self._settle_seconds = settle_seconds

    async def receive_upload(
        self,
        filename: str | None,
        content_type: str | None,
        reader: Callable[[int], Awaitable[bytes]],
        job: ConversionJob,
    ) -> UploadedFile:
        """Validate the upload and stream it into scratch storage.

        Raises UploadRejected for a missing file, a non-PowerPoint file, or
        one larger than the configured ceiling.
        """
        if not filename:
            raise UploadRejected("No file uploaded", "multipart field 'file' is required")
        if not is_powerpoint(filename, content_type):
            raise UploadRejected(
                "Only PowerPoint files are allowed!",
                f"{filename} ({content_type or 'unknown type'}) is not a .ppt or .pptx file",
            )

        path = self._scratch.new_path(filename)
        job.upload_path = path
        size_bytes = 0
        with path.open("wb") as f_out:
            while True:
                chunk = await reader(CHUNK)
                if not chunk:
                    break
                size_bytes += len(chunk)
                if size_bytes > self._max_upload_bytes:
                    limit_mb = self._max_upload_bytes // (1024 * 1024)
                    raise UploadRejected("File too large", f"upload exceeds {limit_mb} MB")
                f_out.write(chunk)

        return UploadedFile(
            name=filename,
            content_type=content_type or "application/octet-stream",
            size_bytes=size_bytes,
            path=path,
        )

    async def convert(self, upload: UploadedFile, job: ConversionJob) -> tuple[Path, str]:
        """Run create, settle, export and save. Returns (output path, download name)."""
        logger.info("Uploading %s to Google Drive", upload.name)
        try:
            job.remote_file_id = await asyncio.to_thread(self._create_remote, upload)
        except Exception as e:
            logger.error("Error uploading to Google Drive: %s", e)
            raise RemoteStepError(f"Failed to upload to Google Drive: {e}") from e
        logger.info("File uploaded and converted to Google Slides. File ID: %s", job.remote_file_id)

        # Drive gives no completion signal for the import
        await asyncio.sleep(self._settle_seconds)

        logger.info("Converting to PDF...")
        download_name = pdf_filename(upload.name)
        try:
            pdf = await asyncio.to_thread(self._documents.export_pdf, job.remote_file_id)
            output_path = self._scratch.new_path(download_name)
            job.output_path = output_path
            await asyncio.to_thread(output_path.write_bytes, pdf)
        except Exception as e:
            logger.error("Error converting to PDF: %s", e)
            raise RemoteStepError(f"Failed to convert to PDF: {e}") from e
        logger.info("Conversion completed successfully (%d bytes)", len(pdf))
        return output_path, download_name

    def _create_remote(self, upload: UploadedFile) -> str:
        with upload.path.open("rb") as body:
            return self._documents.create_presentation(upload.name, upload.content_type, body)

    async def cleanup(self, job: ConversionJob) -> None:
        """Delete every artifact recorded on the job. Never raises."""
        if job.remote_file_id:
            try:
                await asyncio.to_thread(self._documents.delete, job.remote_file_id)
                logger.info("Deleted file from Google Drive")
            except Exception as e:
                logger.error("Error deleting Drive file %s: %s", job.remote_file_id, e)
        for label, path in (("upload", job.upload_path), ("PDF", job.output_path)):
            if path is None:
                continue
            try:
                await asyncio.to_thread(self._scratch.remove, path)
                logger.info("Deleted temporary %s file", label)
            except FileNotFoundError:
                pass
            except Exception as e:
                logger.error("Error deleting temporary %s file %s: %s", label, path, e)
