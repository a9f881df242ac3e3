"""Unit tests for text extraction from uploaded files."""

from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest
from docx import Document as DocxDocument
from openpyxl import Workbook

from backend.app.files.extract import (
    CSV_MIME,
    DOCX_MIME,
    MAX_EXTRACT_BYTES,
    MAX_ROWS,
    PDF_MIME,
    XLSX_MIME,
    ExtractionError,
    extract_csv,
    extract_text,
    file_type_category,
)


def _docx_bytes(*paragraphs: str) -> bytes:
    doc = DocxDocument()
    for text in paragraphs:
        doc.add_paragraph(text)
    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def _xlsx_bytes() -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Prices"
    sheet.append(["sku", "price"])
    sheet.append(["A-1", 9.5])
    other = workbook.create_sheet("Notes")
    other.append(["note", None])
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestExtractText:
    """Test extraction per file type."""

    def test_docx_paragraphs(self) -> None:
        """Non-empty paragraphs are joined with blank lines."""
        data = _docx_bytes("First paragraph", "", "Second paragraph")

        assert extract_text(data, DOCX_MIME) == "First paragraph\n\nSecond paragraph"

    def test_csv_rows(self) -> None:
        """CSV rows are re-serialized, BOM stripped."""
        data = "\ufeffname,qty\nwidget,3\n".encode()

        assert extract_text(data, CSV_MIME) == "name,qty\nwidget,3\n"

    def test_csv_latin1_fallback(self) -> None:
        """Non-UTF-8 CSV files are decoded as latin-1."""
        assert extract_csv("café,1\n".encode("latin-1")) == "café,1\n"

    def test_csv_row_cap(self) -> None:
        """Only the first MAX_ROWS rows are kept."""
        data = "".join(f"{i}\n" for i in range(MAX_ROWS + 50)).encode()

        assert extract_csv(data).count("\n") == MAX_ROWS

    def test_xlsx_sheets(self) -> None:
        """Every sheet is rendered with its name and CSV rows."""
        text = extract_text(_xlsx_bytes(), XLSX_MIME)

        assert text.startswith("Sheet: Prices\nsku,price\nA-1,9.5\n")
        assert text.endswith("Sheet: Notes\nnote,")

    def test_xlsx_row_read_failure_raises(self) -> None:
        """Errors while reading rows of an opened workbook raise ExtractionError."""
        sheet = MagicMock(title="Broken")
        sheet.iter_rows.side_effect = KeyError("sharedStrings")
        workbook = MagicMock(worksheets=[sheet])

        with patch("backend.app.files.extract.load_workbook", return_value=workbook):
            with pytest.raises(ExtractionError, match="XLSX"):
                extract_text(_xlsx_bytes(), XLSX_MIME)

        workbook.close.assert_called_once()

    def test_corrupt_docx_raises(self) -> None:
        """Unreadable files raise ExtractionError."""
        with pytest.raises(ExtractionError):
            extract_text(b"not a zip", DOCX_MIME)

    def test_corrupt_pdf_raises(self) -> None:
        """Unreadable PDFs raise ExtractionError."""
        with pytest.raises(ExtractionError):
            extract_text(b"", PDF_MIME)

    def test_oversized_csv_raises(self) -> None:
        """Files above the extraction size cap are refused."""
        with pytest.raises(ExtractionError, match="too large"):
            extract_csv(b"x" * (MAX_EXTRACT_BYTES + 1))

    def test_unsupported_type_raises(self) -> None:
        """Images have no extractor."""
        with pytest.raises(ExtractionError, match="Unsupported"):
            extract_text(b"\x89PNG", "image/png")


@pytest.mark.parametrize(
    "mime,category",
    [
        (PDF_MIME, "pdf"),
        (DOCX_MIME, "docx"),
        (CSV_MIME, "csv"),
        (XLSX_MIME, "xlsx"),
        ("image/png", "image"),
        ("application/zip", "default"),
    ],
)
def test_file_type_category(mime: str, category: str) -> None:
    """Mime types map to short categories."""
    assert file_type_category(mime) == category
