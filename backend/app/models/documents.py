"""Document, template, style profile, upload, version and QA models."""

from datetime import datetime

from pydantic import Field

from backend.app.models.common import (
    ApiModel,
    DocumentType,
    Language,
    QACheckType,
    QAStatus,
    new_id,
    utcnow,
)


class Document(ApiModel):
    """A written document."""

    id: str = Field(default_factory=new_id)
    title: str
    content: str
    document_type: DocumentType
    language: Language = Language.en
    template_id: str | None = None
    style_profile_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class BrandColors(ApiModel):
    """Template brand colors."""

    primary: str | None = None
    secondary: str | None = None


class Template(ApiModel):
    """Branding template applied to exports and generation prompts."""

    id: str = Field(default_factory=new_id)
    name: str
    header: str | None = None
    footer: str | None = None
    logo_url: str | None = None
    brand_colors: BrandColors | None = None
    font_family: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class StyleProfile(ApiModel):
    """Named bundle of writing preferences."""

    id: str = Field(default_factory=new_id)
    name: str
    tone: str
    voice: str
    audience: str | None = None
    structure: str | None = None
    guidelines: str | None = None
    preferred_phrases: list[str] = Field(default_factory=list)
    avoid_phrases: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class UploadedFile(ApiModel):
    """Uploaded file metadata. Raw bytes are held by storage, outside the row."""

    id: str = Field(default_factory=new_id)
    filename: str
    file_type: str = "default"
    mime_type: str | None = None
    size_bytes: int = 0
    storage_url: str | None = None
    extracted_content: str | None = None
    uploaded_at: datetime = Field(default_factory=utcnow)


class DocumentVersion(ApiModel):
    """Snapshot of document content taken before a rewrite."""

    id: str = Field(default_factory=new_id)
    document_id: str
    version: int
    content: str
    change_summary: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class QAIssue(ApiModel):
    """Single issue reported by a QA check."""

    description: str = ""
    severity: str = "low"
    suggestion: str = ""


class QACheckResult(ApiModel):
    """Stored QA check outcome."""

    id: str = Field(default_factory=new_id)
    document_id: str
    check_type: QACheckType
    status: QAStatus
    issues: list[QAIssue] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
