"""Document endpoints - CRUD, AI generate/rewrite/translate/QA, versions, export."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import Field

from backend.app.api.auth import get_current_user
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.export.exporter import export_document
from backend.app.llm.client import LLMClient, get_llm_client
from backend.app.llm.prompts import MAX_SOURCE_CHARS
from backend.app.llm.writer import (
    generate_document,
    perform_qa_check,
    rewrite_document,
    translate_document,
)
from backend.app.middleware.daily_limit import check_daily_limit
from backend.app.models.common import ApiModel, DocumentType, ExportFormat, Language, QACheckType
from backend.app.models.documents import (
    Document,
    DocumentVersion,
    QACheckResult,
    StyleProfile,
    Template,
)
from backend.app.models.users import User
from backend.app.plans import today_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"], dependencies=[Depends(get_current_user)])
archive_router = APIRouter(prefix="/api/archive", tags=["archive"], dependencies=[Depends(get_current_user)])


class GenerateRequest(ApiModel):
    """Request body for POST /api/documents/generate."""

    document_type: DocumentType
    language: Language
    prompt: str = Field(..., min_length=1)
    template_id: str | None = None
    style_profile_id: str | None = None
    source_file_ids: list[str] | None = None


class UpdateDocumentRequest(ApiModel):
    """Partial update for PUT /api/documents/{id}."""

    title: str | None = Field(None, min_length=1)
    content: str | None = None
    document_type: DocumentType | None = None
    language: Language | None = None
    template_id: str | None = None
    style_profile_id: str | None = None


class RewriteRequest(ApiModel):
    """Request body for POST /api/documents/{id}/rewrite."""

    style_profile_id: str | None = None
    remove_duplication: bool = False


class TranslateRequest(ApiModel):
    """Request body for POST /api/documents/{id}/translate."""

    target_language: Language
    style_profile_id: str | None = None


class QACheckRequest(ApiModel):
    """Request body for POST /api/documents/{id}/qa-check."""

    check_type: QACheckType


class ExportRequest(ApiModel):
    """Request body for POST /api/documents/{id}/export."""

    format: ExportFormat


def get_document_or_404(
    document_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Document:
    """Load a document by path id.

    Raises:
        HTTPException: 404 if it does not exist
    """
    document = storage.get_document(document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return document


def _optional_template(storage: Storage, template_id: str | None) -> Template | None:
    return storage.get_template(template_id) if template_id else None


def _optional_style(storage: Storage, profile_id: str | None) -> StyleProfile | None:
    return storage.get_style_profile(profile_id) if profile_id else None


def collect_source_content(storage: Storage, file_ids: list[str] | None) -> str:
    """Extracted text of the selected uploads (all uploads when none are selected).

    The result is capped at the prompt's reference-material limit.
    """
    if file_ids:
        files = [f for f in (storage.get_uploaded_file(fid) for fid in file_ids) if f is not None]
    else:
        files = storage.list_uploaded_files()
    joined = "\n\n".join(f.extracted_content for f in files if f.extracted_content)
    return joined[:MAX_SOURCE_CHARS]


@router.get("", response_model=list[Document])
async def list_documents(storage: Annotated[Storage, Depends(get_storage)]) -> list[Document]:
    """All documents, newest first."""
    return storage.list_documents()


@router.post("/generate", response_model=Document)
async def generate(
    request: GenerateRequest,
    _user: Annotated[User, Depends(check_daily_limit)],
    storage: Annotated[Storage, Depends(get_storage)],
    client: Annotated[LLMClient, Depends(get_llm_client)],
) -> Document:
    """Generate a new document with AI and store it."""
    content = await generate_document(
        client,
        document_type=request.document_type.value,
        language=request.language.value,
        prompt=request.prompt,
        template=_optional_template(storage, request.template_id),
        style_profile=_optional_style(storage, request.style_profile_id),
        source_content=collect_source_content(storage, request.source_file_ids) or None,
    )

    document = storage.create_document(
        Document(
            title=f"{request.document_type.value} - {today_utc()}",
            content=content,
            document_type=request.document_type,
            language=request.language,
            template_id=request.template_id,
            style_profile_id=request.style_profile_id,
        )
    )
    logger.info("Document generated", extra={"structured": {"document_id": document.id}})
    return document


@router.get("/{document_id}", response_model=Document)
async def get_document(document: Annotated[Document, Depends(get_document_or_404)]) -> Document:
    """Single document."""
    return document


@router.put("/{document_id}", response_model=Document)
async def update_document(
    document_id: str,
    request: UpdateDocumentRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Document:
    """Update the given document fields. Only template and style profile can be cleared."""
    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key in ("template_id", "style_profile_id")
    }
    updated = storage.update_document(document_id, changes)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return updated


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> dict[str, bool]:
    """Delete a document. Its versions and QA results are kept."""
    if not storage.delete_document(document_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return {"success": True}


@router.post("/{document_id}/rewrite", response_model=Document)
async def rewrite(
    request: RewriteRequest,
    document: Annotated[Document, Depends(get_document_or_404)],
    _user: Annotated[User, Depends(check_daily_limit)],
    storage: Annotated[Storage, Depends(get_storage)],
    client: Annotated[LLMClient, Depends(get_llm_client)],
) -> Document:
    """Rewrite a document in place, snapshotting the previous content as a version."""
    rewritten = await rewrite_document(
        client,
        content=document.content,
        language=document.language.value,
        style_profile=_optional_style(storage, request.style_profile_id),
        remove_duplication=request.remove_duplication,
    )

    storage.create_document_version(document.id, document.content, "Rewritten with AI")
    updated = storage.update_document(document.id, {"content": rewritten})
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return updated


@router.post("/{document_id}/translate", response_model=Document)
async def translate(
    request: TranslateRequest,
    document: Annotated[Document, Depends(get_document_or_404)],
    _user: Annotated[User, Depends(check_daily_limit)],
    storage: Annotated[Storage, Depends(get_storage)],
    client: Annotated[LLMClient, Depends(get_llm_client)],
) -> Document:
    """Translate a document into a new document; the source is left untouched."""
    translated = await translate_document(
        client,
        content=document.content,
        source_language=document.language.value,
        target_language=request.target_language.value,
        style_profile=_optional_style(storage, request.style_profile_id),
    )

    return storage.create_document(
        Document(
            title=f"{document.title} ({request.target_language.value})",
            content=translated,
            document_type=document.document_type,
            language=request.target_language,
            template_id=document.template_id,
            style_profile_id=document.style_profile_id,
        )
    )


@router.post("/{document_id}/qa-check", response_model=QACheckResult)
async def qa_check(
    request: QACheckRequest,
    document: Annotated[Document, Depends(get_document_or_404)],
    _user: Annotated[User, Depends(check_daily_limit)],
    storage: Annotated[Storage, Depends(get_storage)],
    client: Annotated[LLMClient, Depends(get_llm_client)],
) -> QACheckResult:
    """Run a QA check and store its result."""
    check_status, issues = await perform_qa_check(
        client, content=document.content, check_type=request.check_type
    )
    return storage.create_qa_result(
        QACheckResult(
            document_id=document.id,
            check_type=request.check_type,
            status=check_status,
            issues=issues,
        )
    )


@router.get("/{document_id}/qa-results", response_model=list[QACheckResult])
async def qa_results(
    document_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[QACheckResult]:
    """Stored QA results for a document."""
    return storage.list_qa_results(document_id)


@router.get("/{document_id}/versions", response_model=list[DocumentVersion])
async def versions(
    document_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[DocumentVersion]:
    """Versions of a document, newest first."""
    return storage.list_document_versions(document_id)


@router.post("/{document_id}/export")
async def export(
    request: ExportRequest,
    document: Annotated[Document, Depends(get_document_or_404)],
    storage: Annotated[Storage, Depends(get_storage)],
) -> Response:
    """Download the document as md, docx or pdf (served as HTML)."""
    template = _optional_template(storage, document.template_id)
    body, media_type, filename = export_document(document, template, request.format)
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@archive_router.get("/versions", response_model=list[DocumentVersion])
async def all_versions(storage: Annotated[Storage, Depends(get_storage)]) -> list[DocumentVersion]:
    """Every stored version across documents, newest first."""
    return storage.list_all_versions()
