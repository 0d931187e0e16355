"""Text extraction from uploaded document bytes.

Turns raw upload bytes into normalized text plus a detected title.  Formats:

* **PDF** -- PyMuPDF (``fitz``) page-by-page text.
* **DOCX** -- python-docx paragraph text joined with blank lines.
* **Plain text / Markdown** -- UTF-8 decode, invalid bytes replaced.

When the structured parser raises or recovers fewer than
``min_chars`` characters, a byte-level heuristic runs instead: PDF text
operators between ``BT``/``ET`` markers are decoded, and failing that,
printable ASCII runs are salvaged.  Fallback output is capped at 10,000
characters.  :class:`ExtractionError` is raised only when even the
heuristic cannot recover enough text.

The extractor is pure over bytes: no files are written or read.
"""

from __future__ import annotations

import io
import re
from pathlib import PurePath

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog
from docx import Document

from lexbrief.models.knowledge import DocumentType, ExtractedDocument
from lexbrief.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_MIME = "application/msword"
TEXT_MIMES = frozenset({"text/plain", "text/markdown"})

SUPPORTED_MIME_TYPES = frozenset({PDF_MIME, DOCX_MIME, DOC_MIME, *TEXT_MIMES})

_EXTENSION_FORMATS: dict[str, str] = {
    ".pdf": "pdf",
    ".docx": "docx",
    ".doc": "docx",
    ".txt": "text",
    ".md": "text",
    ".markdown": "text",
}

DEFAULT_MIN_CHARS = 50
FALLBACK_MAX_CHARS = 10_000
UNTITLED = "Untitled Document"
_TITLE_MAX_CHARS = 100

# -- Normalization patterns ---------------------------------------------------
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_TRAILING_SPACES = re.compile(r"[ \t]+\n")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")

# -- PDF fallback patterns ----------------------------------------------------
_PDF_TEXT_BLOCK = re.compile(r"BT\s*(.*?)\s*ET", re.DOTALL)
_PDF_STRING = re.compile(r"\((.*?)\)|<(.*?)>", re.DOTALL)
_PDF_OCTAL_ESCAPE = re.compile(r"\\[0-7]{3}")
_PDF_ESCAPES = {"\\n": "\n", "\\r": "\r", "\\t": "\t"}
_NON_PRINTABLE = re.compile(r"[^\x20-\x7e\n\r\t]")
_HAS_LETTER = re.compile(r"[A-Za-z]")
_TITLE_STRIP = re.compile(r"[^\w\s-]")


def normalize_text(text: str) -> str:
    """Normalize line endings, control characters and blank-line runs."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text)
    text = _TRAILING_SPACES.sub("\n", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def extract_title(text: str) -> str:
    """Derive a title from the first non-empty line(s) of *text*.

    A first line shorter than 10 characters is joined with the second.
    Characters other than word characters, whitespace and ``-`` are removed
    and the result is capped at 100 characters (plus ``...``).
    """
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    if not lines:
        return UNTITLED

    title = lines[0]
    if len(title) < 10 and len(lines) > 1:
        title = f"{title} {lines[1]}"

    title = _TITLE_STRIP.sub("", title).strip()
    if len(title) > _TITLE_MAX_CHARS:
        title = title[:_TITLE_MAX_CHARS] + "..."
    return title or UNTITLED


def detect_format(mime_type: str, file_name: str) -> str:
    """Return ``"pdf"``, ``"docx"`` or ``"text"`` for an upload.

    The declared MIME type wins when it is supported; otherwise the file
    extension decides.

    Raises
    ------
    ExtractionError
        If neither the MIME type nor the extension is supported.
    """
    mime = (mime_type or "").split(";")[0].strip().lower()
    if mime == PDF_MIME:
        return "pdf"
    if mime in (DOCX_MIME, DOC_MIME):
        return "docx"
    if mime in TEXT_MIMES:
        return "text"

    suffix = PurePath(file_name or "").suffix.lower()
    if suffix in _EXTENSION_FORMATS:
        return _EXTENSION_FORMATS[suffix]

    raise ExtractionError(
        f"Unsupported file type: {mime_type or 'unknown'} ({file_name or 'unnamed'}). "
        "Supported types: PDF, DOCX, DOC, TXT, MD"
    )


class TextExtractor:
    """Extracts normalized text from PDF, DOCX and plain-text uploads.

    Parameters
    ----------
    min_chars:
        Minimum usable text length; shorter structured output triggers the
        fallback, shorter fallback output raises.
    """

    def __init__(self, min_chars: int = DEFAULT_MIN_CHARS) -> None:
        self._min_chars = min_chars

    def extract(self, data: bytes, mime_type: str, file_name: str) -> ExtractedDocument:
        """Extract text and a title from *data*.

        Raises
        ------
        ExtractionError
            If the format is unsupported or no usable text can be recovered.
        """
        fmt = detect_format(mime_type, file_name)
        doc_type = DocumentType.UPLOADED_PDF if fmt == "pdf" else DocumentType.UPLOADED_TEXT

        text = ""
        page_count = 1
        method = "structured"
        try:
            if fmt == "pdf":
                text, page_count = self._extract_pdf(data)
            elif fmt == "docx":
                text = self._extract_docx(data)
            else:
                text = data.decode("utf-8", errors="replace")
            text = normalize_text(text)
        except Exception as exc:
            logger.warning(
                "structured_extraction_failed",
                file_name=file_name,
                format=fmt,
                error=str(exc),
            )
            text = ""

        if len(text) < self._min_chars:
            logger.info(
                "extraction_fallback",
                file_name=file_name,
                format=fmt,
                structured_chars=len(text),
            )
            text = self._fallback(data, is_pdf=fmt == "pdf")
            method = "fallback"
            if fmt == "pdf":
                page_count = 1

        if len(text) < self._min_chars:
            raise ExtractionError(
                f"Unable to extract sufficient text from {file_name or 'upload'} "
                f"({len(text)} chars, minimum {self._min_chars})"
            )

        result = ExtractedDocument(
            title=extract_title(text),
            text=text,
            page_count=page_count,
            word_count=len(text.split()),
            method=method,
            document_type=doc_type,
        )
        logger.info(
            "text_extracted",
            file_name=file_name,
            format=fmt,
            method=method,
            chars=len(text),
            pages=page_count,
        )
        return result

    # ------------------------------------------------------------------
    # Structured parsers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pdf(data: bytes) -> tuple[str, int]:
        doc = fitz.open(stream=data, filetype="pdf")
        try:
            pages = [doc[i].get_text("text") for i in range(len(doc))]
            page_count = len(doc)
        finally:
            doc.close()
        return "\n\n".join(p.strip() for p in pages if p.strip()), page_count

    @staticmethod
    def _extract_docx(data: bytes) -> str:
        document = Document(io.BytesIO(data))
        paragraphs = [p.text.strip() for p in document.paragraphs if p.text.strip()]
        return "\n\n".join(paragraphs)

    # ------------------------------------------------------------------
    # Byte-level fallback
    # ------------------------------------------------------------------

    def _fallback(self, data: bytes, is_pdf: bool) -> str:
        text = ""
        if is_pdf:
            text = _decode_pdf_text_operators(data)
        if len(text) < self._min_chars:
            salvaged = _salvage_printable(data)
            if len(salvaged) > len(text):
                text = salvaged
        return " ".join(text.split())[:FALLBACK_MAX_CHARS]


def _decode_pdf_text_operators(data: bytes) -> str:
    """Decode string operands found between ``BT`` and ``ET`` markers."""
    raw = data.decode("latin-1")
    pieces: list[str] = []
    for block in _PDF_TEXT_BLOCK.finditer(raw):
        for match in _PDF_STRING.finditer(block.group(1)):
            content = match.group(1) or match.group(2)
            if not content:
                continue
            for escape, replacement in _PDF_ESCAPES.items():
                content = content.replace(escape, replacement)
            content = content.replace("\\\\", "\\")
            pieces.append(_PDF_OCTAL_ESCAPE.sub("", content))
    return " ".join(pieces)


def _salvage_printable(data: bytes) -> str:
    """Keep printable ASCII words of 3+ characters that contain a letter."""
    raw = _NON_PRINTABLE.sub(" ", data.decode("ascii", errors="replace"))
    words = [w for w in raw.split() if len(w) > 2 and _HAS_LETTER.search(w)]
    return " ".join(words)
