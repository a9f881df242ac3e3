"""Text extraction from uploaded PDF, DOCX, CSV and XLSX files."""

import csv
import io
import logging
from io import BytesIO

from docx import Document as DocxDocument
from openpyxl import load_workbook
from pypdf import PdfReader

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
CSV_MIME = "text/csv"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/jpg", "image/gif", "image/webp"})
EXTRACTABLE_MIME_TYPES = frozenset({PDF_MIME, DOCX_MIME, CSV_MIME, XLSX_MIME})
ALLOWED_MIME_TYPES = EXTRACTABLE_MIME_TYPES | IMAGE_MIME_TYPES

MAX_UPLOAD_BYTES = 50 * 1024 * 1024
MAX_FILES_PER_UPLOAD = 10

# Memory guards for parsing
MAX_EXTRACT_BYTES = 10 * 1024 * 1024
MAX_ROWS = 1000
MAX_TEXT_CHARS = 500_000


class ExtractionError(Exception):
    """Text could not be extracted from a file."""


def _check_size(data: bytes, kind: str) -> None:
    if len(data) > MAX_EXTRACT_BYTES:
        raise ExtractionError(
            f"{kind} file too large: {len(data)} bytes. Maximum allowed: {MAX_EXTRACT_BYTES} bytes"
        )


def _truncate(text: str, kind: str) -> str:
    if len(text) > MAX_TEXT_CHARS:
        logger.warning(f"{kind} text too large ({len(text)} chars), truncating to {MAX_TEXT_CHARS}")
        return text[:MAX_TEXT_CHARS]
    return text


def extract_pdf(data: bytes) -> str:
    """Join page texts with blank lines."""
    try:
        reader = PdfReader(BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from PDF: {e}") from e
    return "\n\n".join(pages).strip()


def extract_docx(data: bytes) -> str:
    """Raw paragraph text of a Word document."""
    _check_size(data, "DOCX")
    try:
        doc = DocxDocument(BytesIO(data))
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from DOCX: {e}") from e
    text = "\n\n".join(p.text for p in doc.paragraphs if p.text.strip())
    return _truncate(text.strip(), "DOCX")


def _rows_to_csv(rows) -> str:
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    for index, row in enumerate(rows):
        if index >= MAX_ROWS:
            break
        writer.writerow(["" if cell is None else cell for cell in row])
    return out.getvalue()


def extract_csv(data: bytes) -> str:
    """First MAX_ROWS rows of a CSV file, re-serialized."""
    _check_size(data, "CSV")
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = data.decode("latin-1")
    try:
        rendered = _rows_to_csv(csv.reader(io.StringIO(text)))
    except csv.Error as e:
        raise ExtractionError(f"Failed to extract text from CSV: {e}") from e
    return _truncate(rendered, "CSV")


def extract_xlsx(data: bytes) -> str:
    """Every sheet as ``Sheet: <name>`` followed by its rows in CSV form."""
    _check_size(data, "XLSX")
    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from XLSX: {e}") from e

    full_text = ""
    try:
        for sheet in workbook.worksheets:
            full_text += f"Sheet: {sheet.title}\n{_rows_to_csv(sheet.iter_rows(values_only=True))}\n\n"
            if len(full_text) > MAX_TEXT_CHARS:
                return _truncate(full_text, "XLSX")
    except Exception as e:
        raise ExtractionError(f"Failed to read rows from XLSX: {e}") from e
    finally:
        workbook.close()
    return full_text.strip()


_EXTRACTORS = {
    PDF_MIME: extract_pdf,
    DOCX_MIME: extract_docx,
    CSV_MIME: extract_csv,
    XLSX_MIME: extract_xlsx,
}


def extract_text(data: bytes, mime_type: str) -> str:
    """Extract plain text from a supported document.

    Raises:
        ExtractionError: For unsupported types or unreadable files
    """
    extractor = _EXTRACTORS.get(mime_type)
    if extractor is None:
        raise ExtractionError(f"Unsupported file type: {mime_type}")
    return extractor(data)


def file_type_category(mime_type: str) -> str:
    """Short category stored on the upload row (pdf, docx, csv, xlsx, image or default)."""
    categories = {PDF_MIME: "pdf", DOCX_MIME: "docx", CSV_MIME: "csv", XLSX_MIME: "xlsx"}
    if mime_type in categories:
        return categories[mime_type]
    if mime_type.startswith("image/"):
        return "image"
    return "default"
