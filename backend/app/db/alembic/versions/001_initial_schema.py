"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates all tables:
- users
- documents, document_versions, qa_check_results
- templates, style_profiles
- uploaded_files, file_blobs
- document_chunks, topics, document_topics, entities, topic_packs
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("plan", sa.String(20), nullable=False, server_default="FREE"),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("daily_usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("daily_usage_date", sa.String(10), nullable=True),
        sa.Column("plan_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("plan_expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "documents",
        _id(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("document_type", sa.String(40), nullable=False),
        sa.Column("language", sa.String(5), nullable=False, server_default="en"),
        sa.Column("template_id", sa.String(36), nullable=True),
        sa.Column("style_profile_id", sa.String(36), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "templates",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("header", sa.Text(), nullable=True),
        sa.Column("footer", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("brand_colors", sa.JSON(), nullable=True),
        sa.Column("font_family", sa.Text(), nullable=True),
        _created_at(),
    )

    op.create_table(
        "style_profiles",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("tone", sa.Text(), nullable=False),
        sa.Column("voice", sa.Text(), nullable=False),
        sa.Column("audience", sa.Text(), nullable=True),
        sa.Column("structure", sa.Text(), nullable=True),
        sa.Column("guidelines", sa.Text(), nullable=True),
        sa.Column("preferred_phrases", sa.JSON(), nullable=False),
        sa.Column("avoid_phrases", sa.JSON(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "uploaded_files",
        _id(),
        sa.Column("filename", sa.Text(), nullable=False),
        sa.Column("file_type", sa.String(20), nullable=False, server_default="default"),
        sa.Column("mime_type", sa.Text(), nullable=True),
        sa.Column("size_bytes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("storage_url", sa.Text(), nullable=True),
        sa.Column("extracted_content", sa.Text(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "file_blobs",
        sa.Column("file_id", sa.String(36), primary_key=True),
        sa.Column("data", sa.LargeBinary(), nullable=False),
    )

    op.create_table(
        "document_versions",
        _id(),
        sa.Column("document_id", sa.String(36), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("change_summary", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("idx_versions_document", "document_versions", ["document_id", "version"])

    op.create_table(
        "qa_check_results",
        _id(),
        sa.Column("document_id", sa.String(36), nullable=False),
        sa.Column("check_type", sa.String(40), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("issues", sa.JSON(), nullable=False),
        _created_at(),
    )
    op.create_index("idx_qa_document", "qa_check_results", ["document_id"])

    op.create_table(
        "document_chunks",
        _id(),
        sa.Column("uploaded_file_id", sa.String(36), nullable=False),
        sa.Column("chunk_index", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("heading", sa.Text(), nullable=True),
        sa.Column("embedding", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        _created_at(),
    )
    op.create_index("idx_chunks_file", "document_chunks", ["uploaded_file_id", "chunk_index"])

    op.create_table(
        "topics",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("keywords", sa.JSON(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "document_topics",
        _id(),
        sa.Column("uploaded_file_id", sa.String(36), nullable=False),
        sa.Column("topic_id", sa.String(36), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        _created_at(),
    )
    op.create_index("idx_doc_topics_topic", "document_topics", ["topic_id"])

    op.create_table(
        "entities",
        _id(),
        sa.Column("chunk_id", sa.String(36), nullable=False),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("context", sa.Text(), nullable=False, server_default=""),
        sa.Column("metadata", sa.JSON(), nullable=False),
        _created_at(),
    )
    op.create_index("idx_entities_chunk", "entities", ["chunk_id"])

    op.create_table(
        "topic_packs",
        _id(),
        sa.Column("topic_id", sa.String(36), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("terminology_map", sa.JSON(), nullable=False),
        sa.Column("priority_rules", sa.JSON(), nullable=False),
        sa.Column("sample_sections", sa.JSON(), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("topic_packs")
    op.drop_index("idx_entities_chunk", table_name="entities")
    op.drop_table("entities")
    op.drop_index("idx_doc_topics_topic", table_name="document_topics")
    op.drop_table("document_topics")
    op.drop_table("topics")
    op.drop_index("idx_chunks_file", table_name="document_chunks")
    op.drop_table("document_chunks")
    op.drop_index("idx_qa_document", table_name="qa_check_results")
    op.drop_table("qa_check_results")
    op.drop_index("idx_versions_document", table_name="document_versions")
    op.drop_table("document_versions")
    op.drop_table("file_blobs")
    op.drop_table("uploaded_files")
    op.drop_table("style_profiles")
    op.drop_table("templates")
    op.drop_table("documents")
    op.drop_table("users")
