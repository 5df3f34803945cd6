from __future__ import annotations

import hashlib
import logging
import re
from io import BytesIO
from pathlib import PurePath

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from app.core.config import settings
from app.core.errors import ExtractionFailure

from .models import ParsedBlock, ParsedDoc

logger = logging.getLogger(__name__)

_BLANK_RUN_RE = re.compile(r"\n\s*\n+")


def _compute_doc_id(text: str, filename: str) -> str:
    seed = text if text.strip() else filename
    digest = hashlib.sha256(seed.encode("utf-8", errors="ignore")).hexdigest()
    return digest[:16]


def collapse_blank_lines(text: str) -> str:
    return _BLANK_RUN_RE.sub("\n", (text or "").replace("\r\n", "\n")).strip()


def _pdf_pages(data: bytes) -> list[str]:
    try:
        reader = PdfReader(BytesIO(data))
        return [(page.extract_text() or "").strip() for page in reader.pages]
    except (PdfReadError, ValueError, OSError) as exc:
        logger.warning("pdf_text_extraction_failed bytes=%s: %s", len(data), exc)
        raise ExtractionFailure(f"Could not read the PDF: {exc}") from exc


def extract_pdf_text(data: bytes) -> str:
    """Plain text of every page, blank-line runs collapsed."""
    return collapse_blank_lines("\n".join(page for page in _pdf_pages(data) if page))


def ensure_usable_text(text: str, min_chars: int | None = None) -> str:
    minimum = settings.min_resume_text_chars if min_chars is None else min_chars
    cleaned = (text or "").strip()
    if len(cleaned) < minimum:
        raise ExtractionFailure(
            f"Extracted text is too short ({len(cleaned)} characters, need at least {minimum})."
        )
    return cleaned


def parse_upload(data: bytes, filename: str) -> ParsedDoc:
    extension = PurePath(filename or "").suffix.lower()
    warnings: list[str] = []
    blocks: list[ParsedBlock] = []

    if extension == ".pdf":
        source_type = "pdf"
        for index, page_text in enumerate(_pdf_pages(data), start=1):
            if page_text:
                blocks.append(ParsedBlock(page=index, text=page_text))
        if not blocks:
            warnings.append("No extractable text found in PDF.")
        text = collapse_blank_lines("\n".join(block.text for block in blocks))
    elif extension == ".txt":
        source_type = "txt"
        text = collapse_blank_lines(data.decode("utf-8", errors="replace"))
    else:
        raise ExtractionFailure(f"Unsupported file type '{extension or filename}'. Supported types: .pdf, .txt")

    return ParsedDoc(
        doc_id=_compute_doc_id(text, filename),
        source_type=source_type,
        filename=filename,
        text=text,
        blocks=blocks,
        parsing_warnings=warnings,
    )
