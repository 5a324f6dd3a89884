from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any

import PyPDF2
from PyPDF2.errors import PdfReadError

from .errors import UploadRejected, UpstreamUnavailable

logger = logging.getLogger(__name__)


def upload_path(file_obj) -> str:
    if file_obj is None:
        raise UploadRejected("No file uploaded.")
    return file_obj.name if hasattr(file_obj, 'name') else str(file_obj)


def read_json_content(file_obj):
    """Read JSON content from an uploaded file or file path."""
    if file_obj is None:
        raise ValueError("No file uploaded.")

    if hasattr(file_obj, 'read'):
        if hasattr(file_obj, 'seek'):
            file_obj.seek(0)
        content = file_obj.read()
        if isinstance(content, bytes):
            content = content.decode('utf-8')
        return json.loads(content)

    path = file_obj.name if hasattr(file_obj, 'name') else file_obj
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def check_upload_size(file_obj, max_bytes: int) -> int:
    """Reject uploads above `max_bytes` before anything reads their content."""
    path = upload_path(file_obj)
    try:
        size = os.path.getsize(path)
    except OSError as exc:
        raise UpstreamUnavailable("file read", str(exc)) from exc
    if size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise UploadRejected(f"File size exceeds {limit_mb}MB limit. Please select a smaller file.")
    return size


def extract_pdf_text(file_obj) -> str:
    """Extract all text from a PDF upload."""
    path = upload_path(file_obj)
    try:
        reader = PyPDF2.PdfReader(path)
        pages = [page.extract_text() or '' for page in reader.pages]
    except (OSError, PdfReadError) as exc:
        raise UpstreamUnavailable("PDF text extraction", str(exc)) from exc

    text = "\n".join(p for p in pages if p)
    logger.info("PDF parsed: %d pages, %d characters", len(pages), len(text))
    return text


def write_download(payload: Any, file_name: str, compact: bool = False) -> str:
    """Write `payload` as JSON into the temp dir and return the path."""
    path = os.path.join(tempfile.gettempdir(), file_name)
    with open(path, 'w', encoding='utf-8') as f:
        if compact:
            json.dump(payload, f, separators=(',', ':'), ensure_ascii=False)
        else:
            json.dump(payload, f, indent=2, ensure_ascii=False)
    return path
