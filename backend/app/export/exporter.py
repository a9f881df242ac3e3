"""Document export to Markdown, DOCX and HTML.

PDF requests are served as a print-ready HTML page; no PDF renderer is bundled.
"""

import html
import re
from io import BytesIO

from docx import Document as DocxDocument
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt
from markdown_it import MarkdownIt

from backend.app.models.common import ExportFormat
from backend.app.models.documents import Document, Template

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
SEPARATOR = "─" * 50

_markdown = MarkdownIt()

HTML_STYLE = """
    body {
      font-family: 'Georgia', serif;
      max-width: 800px;
      margin: 40px auto;
      padding: 20px;
      line-height: 1.6;
      color: #333;
    }
    .header, .footer {
      text-align: center;
      font-style: italic;
      color: #666;
      padding: 20px 0;
      border-bottom: 1px solid #ddd;
      margin-bottom: 30px;
    }
    .footer {
      border-top: 1px solid #ddd;
      border-bottom: none;
      margin-top: 30px;
      margin-bottom: 0;
    }
    h1 {
      text-align: center;
      color: #222;
      margin-bottom: 10px;
    }
    .metadata {
      text-align: center;
      font-style: italic;
      color: #666;
      margin-bottom: 30px;
      padding-bottom: 20px;
      border-bottom: 1px solid #ddd;
    }
    .content {
      text-align: justify;
    }
    h2, h3, h4 {
      margin-top: 30px;
      color: #444;
    }
    p {
      margin: 15px 0;
    }
"""


def _created(document: Document) -> str:
    return document.created_at.strftime("%Y-%m-%d")


def _metadata_line(document: Document) -> str:
    return (
        f"Language: {document.language.value.upper()} | "
        f"Type: {document.document_type.value} | "
        f"Created: {_created(document)}"
    )


def export_markdown(document: Document, template: Template | None = None) -> bytes:
    """Render a document as Markdown.

    The template header and footer are emitted only when a template supplies them.
    """
    parts: list[str] = []
    if template and template.header:
        parts.append(f"---\n{template.header}\n---\n\n")

    parts.append(f"# {document.title}\n\n")
    parts.append(f"*Language: {document.language.value.upper()}*\n")
    parts.append(f"*Type: {document.document_type.value}*\n")
    parts.append(f"*Created: {_created(document)}*\n\n")
    parts.append("---\n\n")
    parts.append(document.content)

    if template and template.footer:
        parts.append(f"\n\n---\n{template.footer}\n")

    return "".join(parts).encode("utf-8")


def _centered(doc, text: str, *, italic: bool = False, bold: bool = False, size: float | None = None):
    paragraph = doc.add_paragraph()
    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = paragraph.add_run(text)
    run.italic = italic
    run.bold = bold
    if size is not None:
        run.font.size = Pt(size)
    return paragraph


def export_docx(document: Document, template: Template | None = None) -> bytes:
    """Render a document as a Word file.

    Content is split into paragraphs on blank lines; paragraphs starting with
    ``#`` become bold headings sized by level.
    """
    doc = DocxDocument()

    if template and template.header:
        _centered(doc, template.header, italic=True, size=10)

    _centered(doc, document.title, bold=True, size=16)
    _centered(doc, _metadata_line(document), italic=True, size=9)
    _centered(doc, SEPARATOR)

    for block in re.split(r"\n\n+", document.content):
        text = block.strip()
        if not text:
            continue
        if text.startswith("#"):
            level = len(re.match(r"^#+", text).group(0))
            heading = re.sub(r"^#+\s*", "", text)
            run = doc.add_paragraph().add_run(heading)
            run.bold = True
            # Half-point sizes: 28 for h1 down to a floor of 20
            run.font.size = Pt(max(32 - level * 4, 20) / 2)
        else:
            run = doc.add_paragraph().add_run(text)
            run.font.size = Pt(12)

    if template and template.footer:
        _centered(doc, SEPARATOR)
        _centered(doc, template.footer, italic=True, size=10)

    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def export_html(document: Document, template: Template | None = None) -> bytes:
    """Render a document as a standalone HTML page with Markdown content converted."""
    body: list[str] = []
    if template and template.header:
        body.append(f'<div class="header">{html.escape(template.header)}</div>')

    body.append(f"<h1>{html.escape(document.title)}</h1>")
    body.append(f'<div class="metadata">{html.escape(_metadata_line(document))}</div>')
    body.append(f'<div class="content">{_markdown.render(document.content)}</div>')

    if template and template.footer:
        body.append(f'<div class="footer">{html.escape(template.footer)}</div>')

    page = (
        "<!DOCTYPE html>\n"
        f'<html lang="{document.language.value}">\n'
        "<head>\n"
        '  <meta charset="UTF-8">\n'
        f"  <title>{html.escape(document.title)}</title>\n"
        f"  <style>{HTML_STYLE}  </style>\n"
        "</head>\n"
        "<body>\n"
        + "\n".join(body)
        + "\n</body>\n</html>\n"
    )
    return page.encode("utf-8")


def export_filename(document: Document, extension: str) -> str:
    """Attachment filename derived from the document title."""
    slug = re.sub(r"[^\w\-]+", "_", document.title, flags=re.ASCII).strip("_") or "document"
    return f"{slug}.{extension}"


def export_document(
    document: Document,
    template: Template | None,
    export_format: ExportFormat,
) -> tuple[bytes, str, str]:
    """Export a document in the requested format.

    Args:
        document: Document to export
        template: Optional branding template
        export_format: md, docx or pdf (pdf is delivered as HTML)

    Returns:
        (body, media type, attachment filename)
    """
    if export_format == ExportFormat.md:
        return export_markdown(document, template), "text/markdown; charset=utf-8", export_filename(document, "md")
    if export_format == ExportFormat.docx:
        return export_docx(document, template), DOCX_MEDIA_TYPE, export_filename(document, "docx")
    return export_html(document, template), "text/html; charset=utf-8", export_filename(document, "html")
