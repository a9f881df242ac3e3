"""Models package - re-exports for convenience."""

from backend.app.models.common import (
    LANGUAGE_NAMES,
    ApiModel,
    DocumentType,
    EntityType,
    ExportFormat,
    Language,
    Plan,
    QACheckType,
    QAStatus,
    Role,
)
from backend.app.models.documents import (
    BrandColors,
    Document,
    DocumentVersion,
    QACheckResult,
    QAIssue,
    StyleProfile,
    Template,
    UploadedFile,
)
from backend.app.models.topics import (
    ChunkMetadata,
    DocumentChunk,
    DocumentTopic,
    Entity,
    PriorityRule,
    SampleSection,
    SearchResult,
    Topic,
    TopicPack,
)
from backend.app.models.users import PublicUser, TokenPayload, User

__all__ = [
    # Common
    "ApiModel",
    "LANGUAGE_NAMES",
    "Plan",
    "Role",
    "DocumentType",
    "Language",
    "QACheckType",
    "QAStatus",
    "EntityType",
    "ExportFormat",
    # Users
    "User",
    "PublicUser",
    "TokenPayload",
    # Documents
    "Document",
    "Template",
    "BrandColors",
    "StyleProfile",
    "UploadedFile",
    "DocumentVersion",
    "QAIssue",
    "QACheckResult",
    # Topics
    "DocumentChunk",
    "ChunkMetadata",
    "Topic",
    "DocumentTopic",
    "TopicPack",
    "PriorityRule",
    "SampleSection",
    "Entity",
    "SearchResult",
]
