"""Plain-text extraction from uploaded documents (PDF, Markdown, text)."""
from __future__ import annotations

import logging
from pathlib import Path

import PyPDF2
from PyPDF2.errors import PyPdfError

from flashy.errors import DocumentReadError, UnsupportedDocumentError

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = {".md", ".markdown"}
TEXT_SUFFIXES = {".txt"}


def extract_text(path: str | Path) -> str:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".pdf":
        extractor = extract_pdf
    elif suffix in MARKDOWN_SUFFIXES or suffix in TEXT_SUFFIXES:
        # Markdown is passed through raw; its structure helps the model.
        extractor = read_text_file
    else:
        raise UnsupportedDocumentError(f"Unsupported file type: {path.suffix or path.name}")

    try:
        text = extractor(path)
    except (OSError, UnicodeDecodeError, ValueError, PyPdfError) as e:
        logger.error(f"Error extracting text from {path}: {e}")
        raise DocumentReadError(f"Failed to extract text from {path.name}") from e

    logger.info(f"Extracted {len(text)} characters", extra={"file": path.name})
    return text


def extract_pdf(path: Path) -> str:
    """Concatenate page text, each page prefixed with a ``--- Page N ---`` marker."""
    with path.open("rb") as fh:
        reader = PyPDF2.PdfReader(fh)
        parts = []
        for page_num, page in enumerate(reader.pages, start=1):
            page_text = page.extract_text() or ""
            parts.append(f"\n\n--- Page {page_num} ---\n{page_text}")
    return "".join(parts)


def read_text_file(path: Path) -> str:
    return path.read_text(encoding="utf-8")
