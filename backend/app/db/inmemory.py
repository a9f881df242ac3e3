"""In-memory implementation of the storage interface."""

import threading
from typing import Any, TypeVar

from pydantic import BaseModel

from backend.app.db.repositories import DuplicateEmailError, UsageDecision
from backend.app.models.common import utcnow
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

ModelT = TypeVar("ModelT", bound=BaseModel)


def _newest_first(items: list[ModelT], attr: str = "created_at") -> list[ModelT]:
    # Reverse first so equal timestamps keep latest-inserted first
    return sorted(reversed(items), key=lambda item: getattr(item, attr), reverse=True)


class InMemoryStorage:
    """Map-backed storage guarded by a single lock.

    Suitable for development and tests. Every mutating operation holds the
    lock, so the daily usage check-and-increment is atomic.
    """

    backend = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._documents: dict[str, Document] = {}
        self._templates: dict[str, Template] = {}
        self._style_profiles: dict[str, StyleProfile] = {}
        self._uploads: dict[str, UploadedFile] = {}
        self._file_data: dict[str, bytes] = {}
        self._versions: dict[str, DocumentVersion] = {}
        self._qa_results: dict[str, QACheckResult] = {}
        self._chunks: dict[str, DocumentChunk] = {}
        self._topics: dict[str, Topic] = {}
        self._document_topics: dict[str, DocumentTopic] = {}
        self._entities: dict[str, Entity] = {}
        self._topic_packs: dict[str, TopicPack] = {}

    def ping(self) -> None:
        return None

    # Users

    def create_user(self, user: User) -> User:
        with self._lock:
            if self._find_user_by_email(user.email) is not None:
                raise DuplicateEmailError(user.email)
            self._users[user.id] = user
            return user

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> User | None:
        with self._lock:
            return self._find_user_by_email(email)

    def _find_user_by_email(self, email: str) -> User | None:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    def list_users(self) -> list[User]:
        return _newest_first(list(self._users.values()))

    def update_user(self, user_id: str, changes: dict[str, Any]) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            updated = user.model_copy(update={**changes, "updated_at": utcnow()})
            self._users[user_id] = updated
            return updated

    def consume_daily_usage(self, user_id: str, today: str, limit: int) -> UsageDecision:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return UsageDecision(allowed=False, used=0)

            current = user.daily_usage_count if user.daily_usage_date == today else 0
            if current >= limit:
                return UsageDecision(allowed=False, used=current)

            self._users[user_id] = user.model_copy(
                update={
                    "daily_usage_count": current + 1,
                    "daily_usage_date": today,
                    "updated_at": utcnow(),
                }
            )
            return UsageDecision(allowed=True, used=current + 1)

    # Documents

    def create_document(self, document: Document) -> Document:
        with self._lock:
            self._documents[document.id] = document
            return document

    def get_document(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)

    def list_documents(self) -> list[Document]:
        return _newest_first(list(self._documents.values()))

    def update_document(self, document_id: str, changes: dict[str, Any]) -> Document | None:
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                return None
            updated = document.model_copy(update={**changes, "updated_at": utcnow()})
            self._documents[document_id] = updated
            return updated

    def delete_document(self, document_id: str) -> bool:
        with self._lock:
            return self._documents.pop(document_id, None) is not None

    def create_document_version(
        self, document_id: str, content: str, change_summary: str | None = None
    ) -> DocumentVersion:
        with self._lock:
            latest = max(
                (v.version for v in self._versions.values() if v.document_id == document_id),
                default=0,
            )
            version = DocumentVersion(
                document_id=document_id,
                version=latest + 1,
                content=content,
                change_summary=change_summary,
            )
            self._versions[version.id] = version
            return version

    def list_document_versions(self, document_id: str) -> list[DocumentVersion]:
        versions = [v for v in self._versions.values() if v.document_id == document_id]
        return sorted(versions, key=lambda v: v.version, reverse=True)

    def list_all_versions(self) -> list[DocumentVersion]:
        return _newest_first(list(self._versions.values()))

    def create_qa_result(self, result: QACheckResult) -> QACheckResult:
        with self._lock:
            self._qa_results[result.id] = result
            return result

    def list_qa_results(self, document_id: str) -> list[QACheckResult]:
        results = [r for r in self._qa_results.values() if r.document_id == document_id]
        return _newest_first(results)

    # Templates and style profiles

    def create_template(self, template: Template) -> Template:
        with self._lock:
            self._templates[template.id] = template
            return template

    def get_template(self, template_id: str) -> Template | None:
        return self._templates.get(template_id)

    def list_templates(self) -> list[Template]:
        return _newest_first(list(self._templates.values()))

    def update_template(self, template_id: str, changes: dict[str, Any]) -> Template | None:
        with self._lock:
            template = self._templates.get(template_id)
            if template is None:
                return None
            updated = Template.model_validate(template.model_dump() | changes)
            self._templates[template_id] = updated
            return updated

    def delete_template(self, template_id: str) -> bool:
        with self._lock:
            return self._templates.pop(template_id, None) is not None

    def create_style_profile(self, profile: StyleProfile) -> StyleProfile:
        with self._lock:
            self._style_profiles[profile.id] = profile
            return profile

    def get_style_profile(self, profile_id: str) -> StyleProfile | None:
        return self._style_profiles.get(profile_id)

    def list_style_profiles(self) -> list[StyleProfile]:
        return _newest_first(list(self._style_profiles.values()))

    def update_style_profile(
        self, profile_id: str, changes: dict[str, Any]
    ) -> StyleProfile | None:
        with self._lock:
            profile = self._style_profiles.get(profile_id)
            if profile is None:
                return None
            updated = profile.model_copy(update=changes)
            self._style_profiles[profile_id] = updated
            return updated

    def delete_style_profile(self, profile_id: str) -> bool:
        with self._lock:
            return self._style_profiles.pop(profile_id, None) is not None

    # Uploads

    def create_uploaded_file(self, file: UploadedFile, data: bytes | None = None) -> UploadedFile:
        with self._lock:
            self._uploads[file.id] = file
            if data is not None:
                self._file_data[file.id] = data
            return file

    def get_uploaded_file(self, file_id: str) -> UploadedFile | None:
        return self._uploads.get(file_id)

    def list_uploaded_files(self) -> list[UploadedFile]:
        return _newest_first(list(self._uploads.values()), attr="uploaded_at")

    def get_file_content(self, file_id: str) -> bytes | None:
        return self._file_data.get(file_id)

    def delete_uploaded_file(self, file_id: str) -> bool:
        with self._lock:
            self._file_data.pop(file_id, None)
            return self._uploads.pop(file_id, None) is not None

    # Topic intelligence

    def create_chunks(self, chunks: list[DocumentChunk]) -> list[DocumentChunk]:
        with self._lock:
            for chunk in chunks:
                self._chunks[chunk.id] = chunk
            return chunks

    def delete_chunks_for_file(self, file_id: str) -> int:
        with self._lock:
            chunk_ids = {c.id for c in self._chunks.values() if c.uploaded_file_id == file_id}
            for chunk_id in chunk_ids:
                del self._chunks[chunk_id]
            self._entities = {
                eid: e for eid, e in self._entities.items() if e.chunk_id not in chunk_ids
            }
            return len(chunk_ids)

    def list_chunks(
        self, file_ids: list[str] | None = None, limit: int | None = None
    ) -> list[DocumentChunk]:
        chunks = list(self._chunks.values())
        if file_ids is not None:
            wanted = set(file_ids)
            chunks = [c for c in chunks if c.uploaded_file_id in wanted]
        return chunks[:limit] if limit is not None else chunks

    def create_topic(self, topic: Topic) -> Topic:
        with self._lock:
            self._topics[topic.id] = topic
            return topic

    def get_topic(self, topic_id: str) -> Topic | None:
        return self._topics.get(topic_id)

    def list_topics(self) -> list[Topic]:
        return _newest_first(list(self._topics.values()))

    def update_topic(self, topic_id: str, changes: dict[str, Any]) -> Topic | None:
        with self._lock:
            topic = self._topics.get(topic_id)
            if topic is None:
                return None
            updated = topic.model_copy(update=changes)
            self._topics[topic_id] = updated
            return updated

    def delete_topic(self, topic_id: str) -> bool:
        with self._lock:
            if self._topics.pop(topic_id, None) is None:
                return False
            self._document_topics = {
                lid: link
                for lid, link in self._document_topics.items()
                if link.topic_id != topic_id
            }
            self._topic_packs = {
                pid: pack for pid, pack in self._topic_packs.items() if pack.topic_id != topic_id
            }
            return True

    def link_document_topic(self, link: DocumentTopic) -> DocumentTopic:
        with self._lock:
            for existing in self._document_topics.values():
                if (
                    existing.topic_id == link.topic_id
                    and existing.uploaded_file_id == link.uploaded_file_id
                ):
                    refreshed = existing.model_copy(update={"confidence": link.confidence})
                    self._document_topics[existing.id] = refreshed
                    return refreshed
            self._document_topics[link.id] = link
            return link

    def list_document_topics(
        self, topic_id: str | None = None, file_id: str | None = None
    ) -> list[DocumentTopic]:
        links = list(self._document_topics.values())
        if topic_id is not None:
            links = [link for link in links if link.topic_id == topic_id]
        if file_id is not None:
            links = [link for link in links if link.uploaded_file_id == file_id]
        return links

    def create_entities(self, entities: list[Entity]) -> list[Entity]:
        with self._lock:
            for entity in entities:
                self._entities[entity.id] = entity
            return entities

    def list_entities(self, chunk_ids: list[str]) -> list[Entity]:
        wanted = set(chunk_ids)
        return [e for e in self._entities.values() if e.chunk_id in wanted]

    def get_topic_pack(self, topic_id: str) -> TopicPack | None:
        for pack in self._topic_packs.values():
            if pack.topic_id == topic_id:
                return pack
        return None

    def save_topic_pack(self, pack: TopicPack) -> TopicPack:
        with self._lock:
            existing = self.get_topic_pack(pack.topic_id)
            if existing is not None:
                pack = pack.model_copy(
                    update={
                        "id": existing.id,
                        "name": existing.name,
                        "created_at": existing.created_at,
                        "updated_at": utcnow(),
                    }
                )
            self._topic_packs[pack.id] = pack
            return pack
