"""
File Extractor — turn an uploaded resume into text or an opaque payload.

Responsibilities:
  • Classify the upload by declared media type, falling back to extension
  • Plain text / word-processor files → cleaned text (python-docx for DOCX)
  • Everything else (PDF, images) → base64 payload + media type, passed through
  • Count PDF pages (pdfplumber) for document metadata
"""

from __future__ import annotations

import base64
import logging
import mimetypes
import warnings
from io import BytesIO

import docx
import pdfplumber

from app.exceptions import UnreadableFileError
from app.models.resume_models import ExtractedContent
from app.utils.text_cleanup import normalize_text

logger = logging.getLogger(__name__)

# pdfminer is noisy about CropBox/fonts on perfectly readable files
logging.getLogger("pdfminer").setLevel(logging.ERROR)
warnings.filterwarnings("ignore", category=UserWarning, module="pdfminer")

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

PLAIN_TEXT_TYPES = {"text/plain", "text/markdown"}
WORD_TYPES = {DOCX_TYPE, "application/msword"}

# Declared types browsers send when they don't know better
_AMBIGUOUS_TYPES = {"", "application/octet-stream", "binary/octet-stream", "application/zip"}

_EXTENSION_TYPES = {
    "txt": "text/plain",
    "md": "text/markdown",
    "docx": DOCX_TYPE,
    "doc": "application/msword",
    "pdf": "application/pdf",
}


# ── Public API ───────────────────────────────────────────────────────────────


def extract_file_content(
    file_bytes: bytes,
    file_name: str,
    content_type: str | None = None,
) -> ExtractedContent:
    """
    Classify and read an uploaded file.

    Returns ExtractedContent with either ``resume_text`` (text/word files) or
    ``encoded_file`` + ``content_type`` (everything else), never both.

    Raises:
        UnreadableFileError: empty upload, corrupt document, or a type
            that cannot be identified at all.
    """
    if not file_bytes:
        raise UnreadableFileError(f"Uploaded file '{file_name}' is empty.")

    media_type = classify_media_type(file_name, content_type)
    ext = _extension(file_name)

    if media_type in PLAIN_TEXT_TYPES:
        text = _decode_text(file_bytes, file_name)
        return _text_result(text, file_name, source_type=ext or "txt")

    if media_type in WORD_TYPES:
        text = _extract_docx_text(file_bytes, file_name)
        return _text_result(text, file_name, source_type="docx")

    page_count: int | None = None
    if media_type == "application/pdf":
        source_type = "pdf"
        page_count = _count_pdf_pages(file_bytes)
    elif media_type.startswith("image/"):
        source_type = "image"
        page_count = 1
    else:
        source_type = ext or "binary"

    logger.info(
        f"Passing '{file_name}' through as {media_type} ({len(file_bytes)} bytes, pages={page_count})"
    )
    return ExtractedContent(
        encoded_file=base64.b64encode(file_bytes).decode("ascii"),
        content_type=media_type,
        file_name=file_name,
        source_type=source_type,
        page_count=page_count,
    )


def classify_media_type(file_name: str, content_type: str | None) -> str:
    """
    Resolve the effective media type of an upload.

    The declared type wins unless it is missing or ambiguous, in which case the
    extension decides (so a ``.docx`` sent as octet-stream is still a Word file).
    """
    declared = (content_type or "").split(";", 1)[0].strip().lower()
    ext = _extension(file_name)

    if declared and declared not in _AMBIGUOUS_TYPES:
        return declared

    if ext in _EXTENSION_TYPES:
        return _EXTENSION_TYPES[ext]
    guessed, _ = mimetypes.guess_type(file_name)
    if guessed:
        return guessed

    raise UnreadableFileError(
        f"Could not determine the type of '{file_name}'. Please upload PDF, DOCX, TXT or an image."
    )


# ── Text Extraction ──────────────────────────────────────────────────────────


def _decode_text(file_bytes: bytes, file_name: str) -> str:
    """Decode a plain-text upload (UTF-8 with BOM tolerated, Latin-1 fallback)."""
    if b"\x00" in file_bytes:
        raise UnreadableFileError(f"'{file_name}' does not look like a text file.")
    try:
        return file_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning(f"'{file_name}' is not valid UTF-8, decoding as Latin-1")
        return file_bytes.decode("latin-1")


def _extract_docx_text(file_bytes: bytes, file_name: str) -> str:
    """Extract text from a DOCX file using python-docx."""
    try:
        document = docx.Document(BytesIO(file_bytes))
    except Exception as e:
        raise UnreadableFileError(
            f"Could not read '{file_name}' as a Word document ({e}). "
            "Legacy .doc files must be saved as .docx or PDF first."
        ) from e

    text_parts: list[str] = []
    for para in document.paragraphs:
        stripped = para.text.strip()
        if stripped:
            text_parts.append(stripped)

    # Many resume templates lay out columns with tables
    for table in document.tables:
        for row in table.rows:
            for cell in row.cells:
                cell_text = cell.text.strip()
                if cell_text:
                    text_parts.append(cell_text)

    return "\n".join(text_parts)


def _count_pdf_pages(file_bytes: bytes) -> int | None:
    """Best-effort page count; the model still gets the file if this fails."""
    try:
        with pdfplumber.open(BytesIO(file_bytes)) as pdf:
            return len(pdf.pages)
    except Exception as e:
        logger.warning(f"Could not count PDF pages: {e}")
        return None


# ── Helpers ──────────────────────────────────────────────────────────────────


def _text_result(text: str, file_name: str, source_type: str) -> ExtractedContent:
    cleaned = normalize_text(text)
    if not cleaned:
        raise UnreadableFileError(f"No text could be extracted from '{file_name}'.")
    logger.info(f"Extracted {len(cleaned)} chars of text from '{file_name}'")
    return ExtractedContent(
        resume_text=cleaned,
        file_name=file_name,
        source_type=source_type,
    )


def _extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
