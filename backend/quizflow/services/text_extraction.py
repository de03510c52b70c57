"""
Text extraction for uploaded lecture files: PDF (PyPDF2), DOCX (python-docx), TXT.
Text-based PDFs only; image-only PDFs yield little text and fail the length check.
"""
import logging
from pathlib import Path

from docx import Document as DocxDocument
from PyPDF2 import PdfReader

from quizflow.errors import ContentTooShortError, UnsupportedFileTypeError

logger = logging.getLogger(__name__)

PDF = "PDF"
DOCX = "DOCX"
TXT = "TXT"
FILE_TYPES = (PDF, DOCX, TXT)

MIN_CONTENT_CHARS = 100

_MIME_TYPES = {
    "application/pdf": PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DOCX,
    "text/plain": TXT,
}
_EXTENSIONS = {".pdf": PDF, ".docx": DOCX, ".txt": TXT}


def file_type_for(content_type: str | None, filename: str | None = None) -> str:
    """Map MIME type (or, failing that, the file extension) to PDF | DOCX | TXT."""
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in _MIME_TYPES:
        return _MIME_TYPES[mime]
    suffix = Path(filename or "").suffix.lower()
    if suffix in _EXTENSIONS:
        return _EXTENSIONS[suffix]
    raise UnsupportedFileTypeError("Invalid file type. Only PDF, DOCX, and TXT are allowed")


def extension_for(file_type: str) -> str:
    return "." + file_type.lower()


def _extract_pdf(path: Path) -> str:
    reader = PdfReader(str(path))
    parts = []
    for page in reader.pages:
        text = page.extract_text()
        if text:
            parts.append(text)
    return "\n\n".join(parts)


def _extract_docx(path: Path) -> str:
    doc = DocxDocument(str(path))
    parts = [p.text for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n".join(parts)


def _extract_txt(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


_EXTRACTORS = {PDF: _extract_pdf, DOCX: _extract_docx, TXT: _extract_txt}


def extract_text(file_path: str | Path, declared_type: str, min_chars: int = MIN_CONTENT_CHARS) -> str:
    """
    Return plain text for a stored file. Raises FileNotFoundError if missing,
    UnsupportedFileTypeError for unknown types, ContentTooShortError when the
    trimmed text is shorter than min_chars.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Upload not found: {file_path}")
    extractor = _EXTRACTORS.get((declared_type or "").upper())
    if extractor is None:
        raise UnsupportedFileTypeError(f"Unsupported file type: {declared_type}")
    text = extractor(path) or ""
    logger.info("extract_text: type=%s chars=%s path=%s", declared_type, len(text), path.name)
    if len(text.strip()) < min_chars:
        raise ContentTooShortError(
            f"File content too short or empty. Please upload a file with at least {min_chars} characters."
        )
    return text
