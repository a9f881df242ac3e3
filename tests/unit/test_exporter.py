"""Unit tests for Markdown, Word and HTML export."""

from datetime import UTC, datetime
from io import BytesIO

import pytest
from docx import Document as DocxDocument

from backend.app.export.exporter import (
    DOCX_MEDIA_TYPE,
    export_document,
    export_filename,
    export_html,
    export_markdown,
)
from backend.app.models.common import DocumentType, ExportFormat, Language
from backend.app.models.documents import Document, Template


@pytest.fixture
def document() -> Document:
    """Sample document."""
    return Document(
        title="Cold Chain Policy",
        content="## Scope\n\nApplies to **all** sites.\n\nStore below 8°C.",
        document_type=DocumentType.policy,
        language=Language.en,
        created_at=datetime(2025, 3, 4, tzinfo=UTC),
    )


@pytest.fixture
def template() -> Template:
    """Template with header and footer."""
    return Template(name="Brand", header="ACME Pharma", footer="Confidential")


class TestMarkdown:
    """Test Markdown export."""

    def test_without_template_has_no_header_or_footer(self, document: Document) -> None:
        """Only title, metadata and content are emitted."""
        text = export_markdown(document).decode("utf-8")

        assert text.startswith("# Cold Chain Policy\n\n")
        assert "*Language: EN*" in text
        assert "*Type: policy*" in text
        assert "*Created: 2025-03-04*" in text
        assert text.endswith("Store below 8°C.")

    def test_with_template_wraps_header_and_footer(self, document: Document, template: Template) -> None:
        """Header and footer frame the document."""
        text = export_markdown(document, template).decode("utf-8")

        assert text.startswith("---\nACME Pharma\n---\n\n# Cold Chain Policy")
        assert text.endswith("\n\n---\nConfidential\n")

    def test_template_without_header_or_footer(self, document: Document) -> None:
        """A template lacking both adds nothing."""
        assert export_markdown(document, Template(name="Plain")) == export_markdown(document)


class TestDocx:
    """Test Word export."""

    def test_docx_contains_title_content_and_branding(self, document: Document, template: Template) -> None:
        """The Word file has the header, title, content paragraphs and footer."""
        body, media_type, filename = export_document(document, template, ExportFormat.docx)

        assert media_type == DOCX_MEDIA_TYPE
        assert filename == "Cold_Chain_Policy.docx"

        paragraphs = [p.text for p in DocxDocument(BytesIO(body)).paragraphs]
        assert paragraphs[0] == "ACME Pharma"
        assert paragraphs[1] == "Cold Chain Policy"
        assert "Scope" in paragraphs
        assert "Store below 8°C." in paragraphs
        assert paragraphs[-1] == "Confidential"

    def test_heading_blocks_are_bold(self, document: Document) -> None:
        """Markdown headings become bold runs without the hashes."""
        body, _, _ = export_document(document, None, ExportFormat.docx)

        heading = next(p for p in DocxDocument(BytesIO(body)).paragraphs if p.text == "Scope")
        assert heading.runs[0].bold is True


class TestHtml:
    """Test the printable HTML export used for pdf."""

    def test_pdf_is_served_as_html(self, document: Document, template: Template) -> None:
        """pdf requests produce an HTML page."""
        body, media_type, filename = export_document(document, template, ExportFormat.pdf)
        page = body.decode("utf-8")

        assert media_type.startswith("text/html")
        assert filename.endswith(".html")
        assert page.startswith("<!DOCTYPE html>")
        assert '<div class="header">ACME Pharma</div>' in page
        assert "<h2>Scope</h2>" in page
        assert "<strong>all</strong>" in page
        assert '<div class="footer">Confidential</div>' in page

    def test_title_is_escaped(self, document: Document) -> None:
        """Markup in the title is not injected."""
        unsafe = document.model_copy(update={"title": "<script>x</script>"})

        assert "<script>x</script>" not in export_html(unsafe).decode("utf-8")


def test_markdown_media_type(document: Document) -> None:
    """md export is served as text/markdown."""
    _, media_type, filename = export_document(document, None, ExportFormat.md)

    assert media_type.startswith("text/markdown")
    assert filename == "Cold_Chain_Policy.md"


def test_filename_falls_back_for_non_ascii_titles(document: Document) -> None:
    """Titles without ASCII word characters use a generic name."""
    assert export_filename(document.model_copy(update={"title": "سياسة"}), "md") == "document.md"
