"""
HTTP client and form helpers used by the Streamlit front-end.

Kept free of Streamlit imports so the validation and progress rules can be
exercised directly.
"""
import os

import requests

from .conversion.service import is_powerpoint, pdf_filename

API_BASE = os.getenv("PPT2PDF_API_BASE", "http://localhost:3000").rstrip("/")
CLIENT_MAX_UPLOAD_MB = int(os.getenv("CLIENT_MAX_UPLOAD_MB", "10"))

PROGRESS_TICK_SEC = 0.5
PROGRESS_STEP = 10
PROGRESS_CAP = 90

STATUS_UPLOADING = "Uploading file to server..."
STATUS_PROCESSING = "Processing PowerPoint file..."
STATUS_CONVERTING = "Converting to PDF..."
STATUS_FINALIZING = "Finalizing..."

DEFAULT_ERROR = "An error occurred during conversion. Please try again."


class ConversionFailed(Exception):
    pass


def validate_selection(
    name: str, content_type: str | None, size_bytes: int, *, max_mb: int = CLIENT_MAX_UPLOAD_MB
) -> str | None:
    """Return an error message for a file the form must refuse, else None."""
    if not is_powerpoint(name, content_type):
        return "Please select a PowerPoint file (.ppt or .pptx)"
    if size_bytes > max_mb * 1024 * 1024:
        return f"File size exceeds the maximum limit of {max_mb}MB"
    return None


def advance_progress(progress: int, label: str) -> tuple[int, str]:
    """One timer tick of the simulated progress bar.

    The bar is not tied to the transfer: it moves 10 points per tick and
    stops at 90 until the response arrives.
    """
    if progress >= PROGRESS_CAP:
        return progress, label
    progress = min(progress + PROGRESS_STEP, PROGRESS_CAP)
    if 30 <= progress < 60:
        label = STATUS_PROCESSING
    elif 60 <= progress < 90:
        label = STATUS_CONVERTING
    return progress, label


def error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"{resp.status_code} {resp.reason}"
    if isinstance(data, dict):
        return str(data.get("details") or data.get("error") or DEFAULT_ERROR)
    return DEFAULT_ERROR


def convert_file(
    name: str,
    data: bytes,
    content_type: str | None,
    *,
    api_base: str = API_BASE,
    timeout: float = 300,
) -> tuple[bytes, str]:
    """POST the deck to the API and return (pdf bytes, download filename)."""
    files = {"file": (name, data, content_type or "application/octet-stream")}
    try:
        resp = requests.post(f"{api_base}/api/convert", files=files, timeout=timeout)
    except requests.RequestException as e:
        raise ConversionFailed(str(e)) from e
    if resp.status_code != 200:
        raise ConversionFailed(error_message(resp))
    if "application/pdf" not in resp.headers.get("content-type", ""):
        raise ConversionFailed("Invalid response type from server")
    return resp.content, pdf_filename(name)
