"""Storage contract tests run against the in-memory and SQL backends."""

import pytest

from backend.app.db.repositories import DuplicateEmailError, Storage
from backend.app.models.common import DocumentType, EntityType, Plan, QACheckType, QAStatus
from backend.app.models.documents import Document, QACheckResult, StyleProfile, Template, UploadedFile
from backend.app.models.topics import ChunkMetadata, DocumentChunk, DocumentTopic, Entity, Topic, TopicPack
from backend.app.models.users import User
from backend.app.plans import today_utc


@pytest.fixture(params=["memory", "sql"])
def any_storage(request: pytest.FixtureRequest) -> Storage:
    """Each storage backend in turn."""
    fixture = "storage" if request.param == "memory" else "sql_storage"
    return request.getfixturevalue(fixture)


def _user(email: str = "store@example.com") -> User:
    return User(email=email, password_hash="hash")


def _chunk(file_id: str, index: int, content: str) -> DocumentChunk:
    return DocumentChunk(
        uploaded_file_id=file_id,
        chunk_index=index,
        content=content,
        embedding=[0.1, 0.2],
        metadata=ChunkMetadata(start_char=0, end_char=len(content), section="Intro"),
    )


class TestUsers:
    """Test user rows and the usage counter."""

    def test_duplicate_email_is_rejected(self, any_storage: Storage) -> None:
        """A second user with the same email raises DuplicateEmailError."""
        any_storage.create_user(_user())

        with pytest.raises(DuplicateEmailError):
            any_storage.create_user(_user())

    def test_lookup_and_update(self, any_storage: Storage) -> None:
        """Users can be fetched by id and email and updated."""
        user = any_storage.create_user(_user())

        assert any_storage.get_user_by_email("store@example.com").id == user.id
        assert any_storage.get_user_by_email("missing@example.com") is None

        updated = any_storage.update_user(user.id, {"plan": Plan.PRO_YEARLY})
        assert updated.plan == Plan.PRO_YEARLY
        assert any_storage.get_user(user.id).plan == Plan.PRO_YEARLY
        assert any_storage.update_user("missing", {"plan": Plan.FREE}) is None

    def test_password_hash_survives_storage(self, any_storage: Storage) -> None:
        """The excluded password hash is still persisted."""
        user = any_storage.create_user(_user())

        assert any_storage.get_user(user.id).password_hash == "hash"

    def test_consume_daily_usage(self, any_storage: Storage) -> None:
        """The counter increments until the limit and then refuses."""
        user = any_storage.create_user(_user())
        today = today_utc()

        decisions = [any_storage.consume_daily_usage(user.id, today, 2) for _ in range(3)]

        assert [(d.allowed, d.used) for d in decisions] == [(True, 1), (True, 2), (False, 2)]
        assert any_storage.get_user(user.id).daily_usage_count == 2

    def test_consume_resets_on_new_day(self, any_storage: Storage) -> None:
        """A new date restarts the count at one."""
        user = any_storage.create_user(_user())
        any_storage.consume_daily_usage(user.id, "2000-01-01", 1)

        decision = any_storage.consume_daily_usage(user.id, "2000-01-02", 1)

        assert decision.allowed
        assert decision.used == 1
        assert any_storage.get_user(user.id).daily_usage_date == "2000-01-02"


class TestDocuments:
    """Test documents, versions and QA results."""

    def test_document_crud(self, any_storage: Storage) -> None:
        """Documents are created, updated, listed and deleted."""
        doc = any_storage.create_document(
            Document(title="T", content="C", document_type=DocumentType.blog)
        )

        assert any_storage.get_document(doc.id).title == "T"
        assert any_storage.update_document(doc.id, {"content": "New"}).content == "New"
        assert [d.id for d in any_storage.list_documents()] == [doc.id]
        assert any_storage.delete_document(doc.id) is True
        assert any_storage.delete_document(doc.id) is False
        assert any_storage.get_document(doc.id) is None

    def test_versions_increment_per_document(self, any_storage: Storage) -> None:
        """Version numbers are one past the latest and listed highest first."""
        any_storage.create_document_version("doc-a", "v1")
        any_storage.create_document_version("doc-a", "v2", "Rewritten with AI")
        any_storage.create_document_version("doc-b", "other")

        versions = any_storage.list_document_versions("doc-a")

        assert [v.version for v in versions] == [2, 1]
        assert versions[0].change_summary == "Rewritten with AI"
        assert any_storage.list_document_versions("doc-b")[0].version == 1
        assert len(any_storage.list_all_versions()) == 3

    def test_qa_results(self, any_storage: Storage) -> None:
        """QA results are stored per document."""
        any_storage.create_qa_result(
            QACheckResult(document_id="doc-a", check_type=QACheckType.disclaimer, status=QAStatus.passed)
        )

        assert len(any_storage.list_qa_results("doc-a")) == 1
        assert any_storage.list_qa_results("doc-b") == []


class TestTemplatesAndProfiles:
    """Test templates and style profiles."""

    def test_template_update_and_delete(self, any_storage: Storage) -> None:
        """Template fields can be updated or cleared."""
        template = any_storage.create_template(Template(name="Brand", header="H"))

        updated = any_storage.update_template(template.id, {"header": None, "footer": "F"})

        assert updated.header is None
        assert updated.footer == "F"
        assert any_storage.delete_template(template.id) is True
        assert any_storage.get_template(template.id) is None

    def test_style_profile_lists(self, any_storage: Storage) -> None:
        """Phrase lists round-trip."""
        profile = any_storage.create_style_profile(
            StyleProfile(name="P", tone="warm", voice="first", preferred_phrases=["we care"])
        )

        assert any_storage.get_style_profile(profile.id).preferred_phrases == ["we care"]
        assert any_storage.update_style_profile(profile.id, {"tone": "dry"}).tone == "dry"


class TestUploads:
    """Test uploaded files and their bytes."""

    def test_upload_with_bytes(self, any_storage: Storage) -> None:
        """Raw bytes are kept next to the metadata and removed with it."""
        file = any_storage.create_uploaded_file(UploadedFile(filename="a.csv", size_bytes=3), b"a,b")

        assert any_storage.get_file_content(file.id) == b"a,b"
        assert any_storage.delete_uploaded_file(file.id) is True
        assert any_storage.get_file_content(file.id) is None


class TestTopicData:
    """Test chunks, topics, links, entities and packs."""

    def test_chunks_and_entities(self, any_storage: Storage) -> None:
        """Deleting a file's chunks also deletes their entities."""
        chunks = any_storage.create_chunks([_chunk("f1", 0, "zero"), _chunk("f1", 1, "one"), _chunk("f2", 0, "x")])
        any_storage.create_entities(
            [Entity(chunk_id=chunks[0].id, entity_type=EntityType.number, value="5", metadata={"unit": "kg"})]
        )

        assert [c.content for c in any_storage.list_chunks(file_ids=["f1"])] == ["zero", "one"]
        assert len(any_storage.list_chunks(limit=2)) == 2
        assert any_storage.list_chunks(file_ids=["f1"])[0].metadata.section == "Intro"
        assert any_storage.list_entities([chunks[0].id])[0].metadata == {"unit": "kg"}

        assert any_storage.delete_chunks_for_file("f1") == 2
        assert any_storage.list_entities([chunks[0].id]) == []
        assert len(any_storage.list_chunks()) == 1

    def test_link_is_refreshed_not_duplicated(self, any_storage: Storage) -> None:
        """Linking the same file and topic twice updates the confidence."""
        topic = any_storage.create_topic(Topic(name="Cold chain"))
        any_storage.link_document_topic(DocumentTopic(uploaded_file_id="f1", topic_id=topic.id, confidence=0.5))
        any_storage.link_document_topic(DocumentTopic(uploaded_file_id="f1", topic_id=topic.id, confidence=0.9))

        links = any_storage.list_document_topics(topic_id=topic.id)

        assert len(links) == 1
        assert links[0].confidence == pytest.approx(0.9)

    def test_delete_topic_removes_links_and_pack(self, any_storage: Storage) -> None:
        """Deleting a topic cascades to its links and pack."""
        topic = any_storage.create_topic(Topic(name="Labelling"))
        any_storage.link_document_topic(DocumentTopic(uploaded_file_id="f1", topic_id=topic.id, confidence=1.0))
        any_storage.save_topic_pack(TopicPack(topic_id=topic.id, name="Pack"))

        assert any_storage.delete_topic(topic.id) is True
        assert any_storage.list_document_topics(file_id="f1") == []
        assert any_storage.get_topic_pack(topic.id) is None

    def test_save_topic_pack_updates_in_place(self, any_storage: Storage) -> None:
        """Saving a pack twice keeps one pack per topic."""
        topic = any_storage.create_topic(Topic(name="Storage"))
        first = any_storage.save_topic_pack(TopicPack(topic_id=topic.id, name="Pack", terminology_map={"a": "b"}))

        second = any_storage.save_topic_pack(TopicPack(topic_id=topic.id, name="Pack", terminology_map={"c": "d"}))

        assert second.id == first.id
        assert any_storage.get_topic_pack(topic.id).terminology_map == {"c": "d"}

