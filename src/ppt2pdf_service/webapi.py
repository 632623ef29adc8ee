import sys
from contextlib import asynccontextmanager
from typing import Awaitable, Callable

from fastapi import FastAPI, File, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.datastructures import UploadFile as StarletteUploadFile
from starlette.types import Receive, Scope, Send

from . import __version__
from .config import DriveCredentials, MissingCredentialsError, Settings, load_credentials
from .conversion import ConversionJob, ConversionService, RemoteStepError, UploadRejected
from .conversion.adapters import GoogleDriveDocumentService, LocalScratch
from .logging_setup import setup_logging

logger = setup_logging()

SETTINGS = Settings.from_env()
SERVICE: ConversionService | None = None


def require_credentials() -> DriveCredentials:
    try:
        return load_credentials()
    except MissingCredentialsError as e:
        logger.error("%s", e)
        logger.error("Set these in the environment or a .env file in the working directory")
        sys.exit(1)


def build_service(settings: Settings) -> ConversionService:
    """Create the process-wide service. Exits if Drive credentials are missing."""
    creds = require_credentials()
    documents = GoogleDriveDocumentService(creds, timeout=settings.remote_timeout_sec)
    return ConversionService(
        scratch=LocalScratch(settings.upload_dir),
        documents=documents,
        max_upload_bytes=settings.max_upload_bytes,
        settle_seconds=settings.convert_settle_sec,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    global SERVICE
    if SERVICE is None:
        SERVICE = build_service(SETTINGS)
    yield


app = FastAPI(
    title="PowerPoint to PDF Service",
    version=__version__,
    description="Converts uploaded .ppt/.pptx decks to PDF through Google Drive.",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)


class CleanupFileResponse(FileResponse):
    """FileResponse that always runs `on_close`, even if the client went away mid-stream."""

    def __init__(self, *args, on_close: Callable[[], Awaitable[None]], **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except Exception as e:
            logger.error("Error sending file: %s", e)
            raise
        finally:
            await self._on_close()


def _error(status_code: int, error: str, details: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


@app.get("/health")
def health() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.post("/api/convert", response_model=None)
async def convert(file: UploadFile | str | None = File(None)) -> FileResponse | JSONResponse:
    """Convert an uploaded PowerPoint deck to PDF.

    Accepts multipart/form-data with a single part named "file". Returns the
    PDF as an attachment, or a JSON `{error, details}` body with 400 for bad
    input and 500 when a Drive step fails. Local and remote artifacts are
    removed in every case.
    """
    assert SERVICE is not None
    logger.info("Received conversion request")
    job = ConversionJob()
    # Set once the response owns cleanup; every other exit cleans up here
    handed_off = False

    try:
        # A part without a filename arrives as a plain form value
        if not isinstance(file, StarletteUploadFile):
            raise UploadRejected("No file uploaded", "multipart field 'file' is required")
        upload = await SERVICE.receive_upload(file.filename, file.content_type, file.read, job)
        logger.info(
            "File details: name=%s type=%s size=%d",
            upload.name,
            upload.content_type,
            upload.size_bytes,
        )
        output_path, download_name = await SERVICE.convert(upload, job)

        async def _cleanup() -> None:
            await SERVICE.cleanup(job)

        response = CleanupFileResponse(
            output_path,
            media_type="application/pdf",
            filename=download_name,
            on_close=_cleanup,
        )
        handed_off = True
        return response
    except UploadRejected as e:
        logger.warning("Rejected upload: %s (%s)", e.error, e.details)
        return _error(status.HTTP_400_BAD_REQUEST, e.error, e.details)
    except Exception as e:
        if not isinstance(e, RemoteStepError):
            logger.exception("Conversion error")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error converting file to PDF", str(e))
    finally:
        if not handed_off:
            await SERVICE.cleanup(job)


def run() -> None:
    """Run the API with uvicorn.

    Listens on HOST:PORT (default 0.0.0.0:3000); RELOAD=true enables reload.
    Credentials are checked before the server starts so a misconfigured
    process exits at once.
    """
    import uvicorn

    require_credentials()
    uvicorn.run(
        "ppt2pdf_service.webapi:app",
        host=SETTINGS.host,
        port=SETTINGS.port,
        reload=SETTINGS.reload,
    )


if __name__ == "__main__":
    run()
