from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Protocol


class DocumentServiceGateway(Protocol):
    """Remote store that converts office documents and exports them.

    All methods are blocking; callers should offload them to threads.
    """

    def create_presentation(self, name: str, content_type: str, body: BinaryIO) -> str:
        """Upload `body` as a native presentation and return the remote id."""

    def export_pdf(self, file_id: str) -> bytes:
        ...

    def delete(self, file_id: str) -> None:
        ...


class ScratchGateway(Protocol):
    def new_path(self, original_name: str) -> Path:
        ...

    def remove(self, path: Path) -> None:
        ...


@dataclass(frozen=True)
class UploadedFile:
    name: str
    content_type: str
    size_bytes: int
    path: Path


@dataclass
class ConversionJob:
    """Artifacts created while serving one request.

    Every field that is set must be deleted before the request is done.
    """

    upload_path: Path | None = None
    remote_file_id: str | None = None
    output_path: Path | None = None
