"""Repository protocol interfaces for data access."""

from dataclasses import dataclass
from typing import Any, Protocol

from backend.app.models.documents import (
    Document,
    DocumentVersion,
    QACheckResult,
    StyleProfile,
    Template,
    UploadedFile,
)
from backend.app.models.topics import DocumentChunk, DocumentTopic, Entity, Topic, TopicPack
from backend.app.models.users import User


class DuplicateEmailError(Exception):
    """Raised when a user with the same email already exists."""


@dataclass(frozen=True)
class UsageDecision:
    """Outcome of an atomic daily-usage check-and-increment."""

    allowed: bool
    used: int


class UserRepository(Protocol):
    """Repository for user accounts and their usage counters."""

    def create_user(self, user: User) -> User:
        """Insert a new user.

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        ...

    def get_user(self, user_id: str) -> User | None: ...

    def get_user_by_email(self, email: str) -> User | None: ...

    def list_users(self) -> list[User]: ...

    def update_user(self, user_id: str, changes: dict[str, Any]) -> User | None:
        """Apply field changes to a user; returns None if the user is missing."""
        ...

    def consume_daily_usage(self, user_id: str, today: str, limit: int) -> UsageDecision:
        """Atomically check the daily counter and increment it.

        The counter restarts at 1 when the stored date differs from ``today``.
        When the count for ``today`` already reached ``limit`` nothing changes
        and the decision is ``allowed=False``.

        Args:
            user_id: User whose counter is consumed
            today: Current UTC date as YYYY-MM-DD
            limit: Maximum operations per day

        Returns:
            UsageDecision with the count after the operation (or the blocking count)
        """
        ...


class DocumentRepository(Protocol):
    """Repository for documents, their versions and QA results."""

    def create_document(self, document: Document) -> Document: ...

    def get_document(self, document_id: str) -> Document | None: ...

    def list_documents(self) -> list[Document]:
        """All documents, newest first."""
        ...

    def update_document(self, document_id: str, changes: dict[str, Any]) -> Document | None: ...

    def delete_document(self, document_id: str) -> bool: ...

    def create_document_version(
        self, document_id: str, content: str, change_summary: str | None = None
    ) -> DocumentVersion:
        """Append a version; the number is one past the document's latest version."""
        ...

    def list_document_versions(self, document_id: str) -> list[DocumentVersion]:
        """Versions of one document, highest version first."""
        ...

    def list_all_versions(self) -> list[DocumentVersion]:
        """Versions across all documents, newest first."""
        ...

    def create_qa_result(self, result: QACheckResult) -> QACheckResult: ...

    def list_qa_results(self, document_id: str) -> list[QACheckResult]: ...


class TemplateRepository(Protocol):
    """Repository for templates and style profiles."""

    def create_template(self, template: Template) -> Template: ...

    def get_template(self, template_id: str) -> Template | None: ...

    def list_templates(self) -> list[Template]: ...

    def update_template(self, template_id: str, changes: dict[str, Any]) -> Template | None: ...

    def delete_template(self, template_id: str) -> bool: ...

    def create_style_profile(self, profile: StyleProfile) -> StyleProfile: ...

    def get_style_profile(self, profile_id: str) -> StyleProfile | None: ...

    def list_style_profiles(self) -> list[StyleProfile]: ...

    def update_style_profile(
        self, profile_id: str, changes: dict[str, Any]
    ) -> StyleProfile | None: ...

    def delete_style_profile(self, profile_id: str) -> bool: ...


class UploadRepository(Protocol):
    """Repository for uploaded files and their raw bytes."""

    def create_uploaded_file(self, file: UploadedFile, data: bytes | None = None) -> UploadedFile: ...

    def get_uploaded_file(self, file_id: str) -> UploadedFile | None: ...

    def list_uploaded_files(self) -> list[UploadedFile]: ...

    def get_file_content(self, file_id: str) -> bytes | None: ...

    def delete_uploaded_file(self, file_id: str) -> bool: ...


class TopicRepository(Protocol):
    """Repository for chunks, topics, links, entities and topic packs."""

    def create_chunks(self, chunks: list[DocumentChunk]) -> list[DocumentChunk]: ...

    def delete_chunks_for_file(self, file_id: str) -> int:
        """Remove a file's chunks and their entities; returns the chunk count removed."""
        ...

    def list_chunks(
        self, file_ids: list[str] | None = None, limit: int | None = None
    ) -> list[DocumentChunk]:
        """Chunks in insertion order, optionally restricted to some files."""
        ...

    def create_topic(self, topic: Topic) -> Topic: ...

    def get_topic(self, topic_id: str) -> Topic | None: ...

    def list_topics(self) -> list[Topic]: ...

    def update_topic(self, topic_id: str, changes: dict[str, Any]) -> Topic | None: ...

    def delete_topic(self, topic_id: str) -> bool:
        """Delete a topic together with its file links and pack."""
        ...

    def link_document_topic(self, link: DocumentTopic) -> DocumentTopic:
        """Create or refresh the link between a file and a topic."""
        ...

    def list_document_topics(
        self, topic_id: str | None = None, file_id: str | None = None
    ) -> list[DocumentTopic]: ...

    def create_entities(self, entities: list[Entity]) -> list[Entity]: ...

    def list_entities(self, chunk_ids: list[str]) -> list[Entity]: ...

    def get_topic_pack(self, topic_id: str) -> TopicPack | None: ...

    def save_topic_pack(self, pack: TopicPack) -> TopicPack:
        """Insert the pack, or update the topic's existing pack in place."""
        ...


class Storage(
    UserRepository,
    DocumentRepository,
    TemplateRepository,
    UploadRepository,
    TopicRepository,
    Protocol,
):
    """Complete storage surface used by the API."""

    backend: str

    def ping(self) -> None:
        """Raise if the backing store is unreachable."""
        ...
