"""SQL implementation of the storage interface."""

from enum import Enum
from typing import Any

from pydantic import BaseModel
from sqlalchemy import and_, case, delete, func, or_, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from backend.app.db.models import (
    DocumentChunkRow,
    DocumentRow,
    DocumentTopicRow,
    DocumentVersionRow,
    EntityRow,
    FileBlobRow,
    QACheckResultRow,
    StyleProfileRow,
    TemplateRow,
    TopicPackRow,
    TopicRow,
    UploadedFileRow,
    UserRow,
)
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


def _plain(values: dict[str, Any]) -> dict[str, Any]:
    """Unwrap enums and nested models into column-ready values."""
    result: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, BaseModel):
            value = value.model_dump()
        result[key] = value
    return result


def _columns(model: BaseModel) -> dict[str, Any]:
    return _plain(model.model_dump())


def _row_values(row: Any) -> dict[str, Any]:
    return {column.key: getattr(row, column.key) for column in row.__mapper__.column_attrs}


def _to_user(row: UserRow) -> User:
    return User.model_validate(_row_values(row))


def _to_chunk(row: DocumentChunkRow) -> DocumentChunk:
    values = _row_values(row)
    values["metadata"] = values.pop("chunk_metadata")
    return DocumentChunk.model_validate(values)


def _to_entity(row: EntityRow) -> Entity:
    values = _row_values(row)
    values["metadata"] = values.pop("entity_metadata")
    return Entity.model_validate(values)


class SqlStorage:
    """SQLAlchemy-backed storage. Each call runs in its own short session."""

    backend = "sql"

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def ping(self) -> None:
        with self._session_factory() as session:
            session.execute(text("SELECT 1"))

    # Users

    def create_user(self, user: User) -> User:
        values = _columns(user)
        values["password_hash"] = user.password_hash
        try:
            with self._session_factory.begin() as session:
                session.add(UserRow(**values))
        except IntegrityError as e:
            raise DuplicateEmailError(user.email) from e
        return user

    def get_user(self, user_id: str) -> User | None:
        with self._session_factory() as session:
            row = session.get(UserRow, user_id)
            return _to_user(row) if row else None

    def get_user_by_email(self, email: str) -> User | None:
        with self._session_factory() as session:
            row = session.scalars(select(UserRow).where(UserRow.email == email)).first()
            return _to_user(row) if row else None

    def list_users(self) -> list[User]:
        with self._session_factory() as session:
            rows = session.scalars(select(UserRow).order_by(UserRow.created_at.desc()))
            return [_to_user(row) for row in rows]

    def update_user(self, user_id: str, changes: dict[str, Any]) -> User | None:
        with self._session_factory.begin() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return None
            for key, value in _plain(changes).items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.flush()
            return _to_user(row)

    def consume_daily_usage(self, user_id: str, today: str, limit: int) -> UsageDecision:
        """Single conditional UPDATE; concurrent requests cannot both pass the limit."""
        is_today = UserRow.daily_usage_date == today
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .where(
                or_(
                    UserRow.daily_usage_date.is_(None),
                    UserRow.daily_usage_date != today,
                    and_(is_today, UserRow.daily_usage_count < limit),
                )
            )
            .values(
                daily_usage_count=case((is_today, UserRow.daily_usage_count + 1), else_=1),
                daily_usage_date=today,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        with self._session_factory.begin() as session:
            if limit <= 0:
                allowed = False
            else:
                allowed = session.execute(stmt).rowcount == 1
            row = session.get(UserRow, user_id)
            if row is None:
                return UsageDecision(allowed=False, used=0)
            used = row.daily_usage_count if row.daily_usage_date == today else 0
            return UsageDecision(allowed=allowed, used=used)

    # Documents

    def create_document(self, document: Document) -> Document:
        with self._session_factory.begin() as session:
            session.add(DocumentRow(**_columns(document)))
        return document

    def get_document(self, document_id: str) -> Document | None:
        with self._session_factory() as session:
            row = session.get(DocumentRow, document_id)
            return Document.model_validate(_row_values(row)) if row else None

    def list_documents(self) -> list[Document]:
        with self._session_factory() as session:
            rows = session.scalars(select(DocumentRow).order_by(DocumentRow.created_at.desc()))
            return [Document.model_validate(_row_values(row)) for row in rows]

    def update_document(self, document_id: str, changes: dict[str, Any]) -> Document | None:
        with self._session_factory.begin() as session:
            row = session.get(DocumentRow, document_id)
            if row is None:
                return None
            for key, value in _plain(changes).items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.flush()
            return Document.model_validate(_row_values(row))

    def delete_document(self, document_id: str) -> bool:
        with self._session_factory.begin() as session:
            result = session.execute(delete(DocumentRow).where(DocumentRow.id == document_id))
            return result.rowcount > 0

    def create_document_version(
        self, document_id: str, content: str, change_summary: str | None = None
    ) -> DocumentVersion:
        with self._session_factory.begin() as session:
            latest = session.scalar(
                select(func.max(DocumentVersionRow.version)).where(
                    DocumentVersionRow.document_id == document_id
                )
            )
            version = DocumentVersion(
                document_id=document_id,
                version=(latest or 0) + 1,
                content=content,
                change_summary=change_summary,
            )
            session.add(DocumentVersionRow(**_columns(version)))
        return version

    def list_document_versions(self, document_id: str) -> list[DocumentVersion]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(DocumentVersionRow)
                .where(DocumentVersionRow.document_id == document_id)
                .order_by(DocumentVersionRow.version.desc())
            )
            return [DocumentVersion.model_validate(_row_values(row)) for row in rows]

    def list_all_versions(self) -> list[DocumentVersion]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(DocumentVersionRow).order_by(DocumentVersionRow.created_at.desc())
            )
            return [DocumentVersion.model_validate(_row_values(row)) for row in rows]

    def create_qa_result(self, result: QACheckResult) -> QACheckResult:
        with self._session_factory.begin() as session:
            session.add(QACheckResultRow(**_columns(result)))
        return result

    def list_qa_results(self, document_id: str) -> list[QACheckResult]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(QACheckResultRow)
                .where(QACheckResultRow.document_id == document_id)
                .order_by(QACheckResultRow.created_at.desc())
            )
            return [QACheckResult.model_validate(_row_values(row)) for row in rows]

    # Templates and style profiles

    def create_template(self, template: Template) -> Template:
        with self._session_factory.begin() as session:
            session.add(TemplateRow(**_columns(template)))
        return template

    def get_template(self, template_id: str) -> Template | None:
        with self._session_factory() as session:
            row = session.get(TemplateRow, template_id)
            return Template.model_validate(_row_values(row)) if row else None

    def list_templates(self) -> list[Template]:
        with self._session_factory() as session:
            rows = session.scalars(select(TemplateRow).order_by(TemplateRow.created_at.desc()))
            return [Template.model_validate(_row_values(row)) for row in rows]

    def update_template(self, template_id: str, changes: dict[str, Any]) -> Template | None:
        with self._session_factory.begin() as session:
            row = session.get(TemplateRow, template_id)
            if row is None:
                return None
            for key, value in _plain(changes).items():
                setattr(row, key, value)
            session.flush()
            return Template.model_validate(_row_values(row))

    def delete_template(self, template_id: str) -> bool:
        with self._session_factory.begin() as session:
            result = session.execute(delete(TemplateRow).where(TemplateRow.id == template_id))
            return result.rowcount > 0

    def create_style_profile(self, profile: StyleProfile) -> StyleProfile:
        with self._session_factory.begin() as session:
            session.add(StyleProfileRow(**_columns(profile)))
        return profile

    def get_style_profile(self, profile_id: str) -> StyleProfile | None:
        with self._session_factory() as session:
            row = session.get(StyleProfileRow, profile_id)
            return StyleProfile.model_validate(_row_values(row)) if row else None

    def list_style_profiles(self) -> list[StyleProfile]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(StyleProfileRow).order_by(StyleProfileRow.created_at.desc())
            )
            return [StyleProfile.model_validate(_row_values(row)) for row in rows]

    def update_style_profile(
        self, profile_id: str, changes: dict[str, Any]
    ) -> StyleProfile | None:
        with self._session_factory.begin() as session:
            row = session.get(StyleProfileRow, profile_id)
            if row is None:
                return None
            for key, value in _plain(changes).items():
                setattr(row, key, value)
            session.flush()
            return StyleProfile.model_validate(_row_values(row))

    def delete_style_profile(self, profile_id: str) -> bool:
        with self._session_factory.begin() as session:
            result = session.execute(
                delete(StyleProfileRow).where(StyleProfileRow.id == profile_id)
            )
            return result.rowcount > 0

    # Uploads

    def create_uploaded_file(self, file: UploadedFile, data: bytes | None = None) -> UploadedFile:
        with self._session_factory.begin() as session:
            session.add(UploadedFileRow(**_columns(file)))
            if data is not None:
                session.add(FileBlobRow(file_id=file.id, data=data))
        return file

    def get_uploaded_file(self, file_id: str) -> UploadedFile | None:
        with self._session_factory() as session:
            row = session.get(UploadedFileRow, file_id)
            return UploadedFile.model_validate(_row_values(row)) if row else None

    def list_uploaded_files(self) -> list[UploadedFile]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(UploadedFileRow).order_by(UploadedFileRow.uploaded_at.desc())
            )
            return [UploadedFile.model_validate(_row_values(row)) for row in rows]

    def get_file_content(self, file_id: str) -> bytes | None:
        with self._session_factory() as session:
            row = session.get(FileBlobRow, file_id)
            return row.data if row else None

    def delete_uploaded_file(self, file_id: str) -> bool:
        with self._session_factory.begin() as session:
            session.execute(delete(FileBlobRow).where(FileBlobRow.file_id == file_id))
            result = session.execute(delete(UploadedFileRow).where(UploadedFileRow.id == file_id))
            return result.rowcount > 0

    # Topic intelligence

    def create_chunks(self, chunks: list[DocumentChunk]) -> list[DocumentChunk]:
        with self._session_factory.begin() as session:
            for chunk in chunks:
                values = _columns(chunk)
                values["chunk_metadata"] = values.pop("metadata")
                session.add(DocumentChunkRow(**values))
        return chunks

    def delete_chunks_for_file(self, file_id: str) -> int:
        with self._session_factory.begin() as session:
            chunk_ids = select(DocumentChunkRow.id).where(
                DocumentChunkRow.uploaded_file_id == file_id
            )
            session.execute(delete(EntityRow).where(EntityRow.chunk_id.in_(chunk_ids)))
            result = session.execute(
                delete(DocumentChunkRow).where(DocumentChunkRow.uploaded_file_id == file_id)
            )
            return result.rowcount

    def list_chunks(
        self, file_ids: list[str] | None = None, limit: int | None = None
    ) -> list[DocumentChunk]:
        query = select(DocumentChunkRow).order_by(
            DocumentChunkRow.created_at, DocumentChunkRow.chunk_index
        )
        if file_ids is not None:
            query = query.where(DocumentChunkRow.uploaded_file_id.in_(file_ids))
        if limit is not None:
            query = query.limit(limit)
        with self._session_factory() as session:
            return [_to_chunk(row) for row in session.scalars(query)]

    def create_topic(self, topic: Topic) -> Topic:
        with self._session_factory.begin() as session:
            session.add(TopicRow(**_columns(topic)))
        return topic

    def get_topic(self, topic_id: str) -> Topic | None:
        with self._session_factory() as session:
            row = session.get(TopicRow, topic_id)
            return Topic.model_validate(_row_values(row)) if row else None

    def list_topics(self) -> list[Topic]:
        with self._session_factory() as session:
            rows = session.scalars(select(TopicRow).order_by(TopicRow.created_at.desc()))
            return [Topic.model_validate(_row_values(row)) for row in rows]

    def update_topic(self, topic_id: str, changes: dict[str, Any]) -> Topic | None:
        with self._session_factory.begin() as session:
            row = session.get(TopicRow, topic_id)
            if row is None:
                return None
            for key, value in _plain(changes).items():
                setattr(row, key, value)
            session.flush()
            return Topic.model_validate(_row_values(row))

    def delete_topic(self, topic_id: str) -> bool:
        with self._session_factory.begin() as session:
            result = session.execute(delete(TopicRow).where(TopicRow.id == topic_id))
            if result.rowcount == 0:
                return False
            session.execute(delete(DocumentTopicRow).where(DocumentTopicRow.topic_id == topic_id))
            session.execute(delete(TopicPackRow).where(TopicPackRow.topic_id == topic_id))
            return True

    def link_document_topic(self, link: DocumentTopic) -> DocumentTopic:
        with self._session_factory.begin() as session:
            row = session.scalars(
                select(DocumentTopicRow).where(
                    DocumentTopicRow.topic_id == link.topic_id,
                    DocumentTopicRow.uploaded_file_id == link.uploaded_file_id,
                )
            ).first()
            if row is None:
                session.add(DocumentTopicRow(**_columns(link)))
                return link
            row.confidence = link.confidence
            session.flush()
            return DocumentTopic.model_validate(_row_values(row))

    def list_document_topics(
        self, topic_id: str | None = None, file_id: str | None = None
    ) -> list[DocumentTopic]:
        query = select(DocumentTopicRow).order_by(DocumentTopicRow.created_at)
        if topic_id is not None:
            query = query.where(DocumentTopicRow.topic_id == topic_id)
        if file_id is not None:
            query = query.where(DocumentTopicRow.uploaded_file_id == file_id)
        with self._session_factory() as session:
            return [DocumentTopic.model_validate(_row_values(row)) for row in session.scalars(query)]

    def create_entities(self, entities: list[Entity]) -> list[Entity]:
        with self._session_factory.begin() as session:
            for entity in entities:
                values = _columns(entity)
                values["entity_metadata"] = values.pop("metadata")
                session.add(EntityRow(**values))
        return entities

    def list_entities(self, chunk_ids: list[str]) -> list[Entity]:
        if not chunk_ids:
            return []
        with self._session_factory() as session:
            rows = session.scalars(
                select(EntityRow)
                .where(EntityRow.chunk_id.in_(chunk_ids))
                .order_by(EntityRow.created_at)
            )
            return [_to_entity(row) for row in rows]

    def get_topic_pack(self, topic_id: str) -> TopicPack | None:
        with self._session_factory() as session:
            row = session.scalars(
                select(TopicPackRow).where(TopicPackRow.topic_id == topic_id)
            ).first()
            return TopicPack.model_validate(_row_values(row)) if row else None

    def save_topic_pack(self, pack: TopicPack) -> TopicPack:
        with self._session_factory.begin() as session:
            row = session.scalars(
                select(TopicPackRow).where(TopicPackRow.topic_id == pack.topic_id)
            ).first()
            if row is None:
                session.add(TopicPackRow(**_columns(pack)))
                return pack
            values = _columns(pack)
            row.terminology_map = values["terminology_map"]
            row.priority_rules = values["priority_rules"]
            row.sample_sections = values["sample_sections"]
            row.updated_at = utcnow()
            session.flush()
            return TopicPack.model_validate(_row_values(row))
