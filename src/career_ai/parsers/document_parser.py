"""Plain-text extraction from uploaded resume documents (PDF, DOCX, TXT)."""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePath

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.ms-word.document.macroEnabled.12": "docx",
    "application/msword": "doc",
    "text/plain": "txt",
    "text/markdown": "txt",
}
EXTENSIONS = {".pdf": "pdf", ".docx": "docx", ".doc": "doc", ".txt": "txt", ".md": "txt"}

MIN_TEXT_CHARS = 100
MIN_WORDS = 20
MAX_SPECIAL_CHAR_RATIO = 0.3

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_INVISIBLE_RE = re.compile(r"[\u200b\u200c\u200d\u00ad\u2060\ufeff]")
_SPECIAL_RE = re.compile(r"[^\w\s.,;:!?()'\"/@+#&%-]")


class DocumentError(ValueError):
    """The document type is unsupported or its text could not be read."""


@dataclass
class DocumentText:
    text: str
    file_type: str
    word_count: int
    page_count: int | None = None
    warnings: list[str] = field(default_factory=list)


def detect_file_type(mime_type: str | None, file_name: str | None) -> str:
    """Resolve the format from the MIME type, falling back to the file extension."""
    file_type = MIME_TYPES.get((mime_type or "").split(";")[0].strip().lower())
    if file_type is None and file_name:
        file_type = EXTENSIONS.get(PurePath(file_name).suffix.lower())
    if file_type is None:
        raise DocumentError("Unsupported file type. Supported formats: PDF, DOCX, DOC, TXT")
    return file_type


def extract_text(
    data: bytes, mime_type: str | None = None, file_name: str | None = None
) -> DocumentText:
    """Extract, clean and check the text of a document held in memory.

    Quality problems (very short text, few words, mostly symbols) come back
    as warnings on the result. Only an unreadable or unsupported document
    raises ``DocumentError``.
    """
    file_type = detect_file_type(mime_type, file_name)
    logger.info("Extracting text: type=%s size=%d name=%s", file_type, len(data), file_name)

    page_count = None
    if file_type == "pdf":
        raw, page_count = _parse_pdf(data)
    elif file_type in ("docx", "doc"):
        raw = _parse_docx(data)
    else:
        raw = data.decode("utf-8", errors="replace")

    text = clean_text(raw)
    result = DocumentText(
        text=text,
        file_type=file_type,
        word_count=len(text.split()),
        page_count=page_count,
        warnings=validate_text(text),
    )
    if result.warnings:
        logger.warning("Extracted text issues (%s): %s", file_name, "; ".join(result.warnings))
    logger.info("Extracted %d words (%d chars)", result.word_count, len(text))
    return result


def clean_text(text: str) -> str:
    """Strip control and invisible characters and collapse whitespace, keeping line breaks."""
    text = _INVISIBLE_RE.sub("", text.replace("\r\n", "\n").replace("\r", "\n"))
    text = _CONTROL_RE.sub("", text)
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.split("\n")]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def validate_text(text: str) -> list[str]:
    issues: list[str] = []
    if not text.strip():
        return ["Extracted text is empty"]
    if len(text) < MIN_TEXT_CHARS:
        issues.append(f"Extracted text is very short ({len(text)} characters)")
    words = text.split()
    if len(words) < MIN_WORDS:
        issues.append(f"Extracted text has very few words ({len(words)})")
    compact = re.sub(r"\s", "", text)
    if compact:
        ratio = len(_SPECIAL_RE.findall(compact)) / len(compact)
        if ratio > MAX_SPECIAL_CHAR_RATIO:
            issues.append(f"High proportion of special characters ({ratio:.0%}); text may be garbled")
    return issues


def _parse_pdf(data: bytes) -> tuple[str, int]:
    import fitz  # pymupdf

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise DocumentError(f"Failed to read PDF: {exc}") from exc
    try:
        pages = [page.get_text() for page in doc]
    finally:
        doc.close()
    return "\n".join(pages), len(pages)


def _parse_docx(data: bytes) -> str:
    from docx import Document

    try:
        doc = Document(io.BytesIO(data))
    except Exception as exc:
        # Legacy binary .doc files land here too
        raise DocumentError(f"Failed to read Word document: {exc}") from exc
    parts = [p.text for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n".join(parts)
