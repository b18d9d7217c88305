"""
PDF helpers used for uploaded class material.

The extracted text of a jobsheet PDF is stored on the class and handed to the
AI tutor as module context.
"""

import logging
import re
from typing import List, Optional

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

PDF_MIME_TYPES: List[str] = ["application/pdf"]

_WHITESPACE = re.compile(r"\s+")
_PAGE_MARKERS = re.compile(r"Page \d+", re.IGNORECASE)


class ContentProcessingError(Exception):
    """Raised when a document cannot be read."""
    pass


def is_pdf(data: bytes) -> bool:
    """Check the PDF magic number."""
    return data[:4] == b"%PDF"


def clean_text(text: str) -> str:
    """Collapse whitespace and drop "Page N" headers and footers."""
    text = _PAGE_MARKERS.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


def extract_pdf_text(data: bytes) -> str:
    """Extract the text content of a PDF document."""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
        try:
            text_parts = [doc.load_page(i).get_text("text") for i in range(len(doc))]
        finally:
            doc.close()
    except Exception as e:
        raise ContentProcessingError(
            f"Failed to extract text from PDF. The file may be corrupted or encrypted: {e}"
        ) from e
    return clean_text("\n\n".join(text_parts))


def try_extract_pdf_text(data: Optional[bytes]) -> Optional[str]:
    """Like :func:`extract_pdf_text` but logs failures and returns ``None``."""
    if not data:
        return None
    try:
        text = extract_pdf_text(data)
    except ContentProcessingError as e:
        logger.error(str(e))
        return None
    return text or None
