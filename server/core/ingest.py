"""Text extraction for uploaded scope documents."""

from __future__ import annotations

import io
import logging
from typing import List

import PyPDF2
from PyPDF2.errors import PdfReadError


logger = logging.getLogger(__name__)


class IngestError(ValueError):
    """Raised when an upload cannot be turned into scope text."""


def extract_pdf_text(data: bytes) -> str:
    """Return the text of every page, in order, separated by blank lines."""

    if not data:
        raise IngestError("Uploaded file is empty")

    try:
        reader = PyPDF2.PdfReader(io.BytesIO(data))
        page_texts: List[str] = []
        for page in reader.pages:
            page_text = page.extract_text() or ""
            page_texts.append(page_text.strip())
    except (PdfReadError, ValueError, OSError) as exc:
        logger.warning("Unable to read PDF upload: %s", exc)
        raise IngestError(f"Unable to read PDF: {exc}") from exc

    text_content = "\n\n".join(text for text in page_texts if text).strip()
    if not text_content:
        raise IngestError("No extractable text found in PDF")

    logger.info("Extracted %d characters from %d page(s)", len(text_content), len(page_texts))
    return text_content
