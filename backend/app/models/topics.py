"""Topic intelligence domain models."""

from datetime import datetime
from typing import Any

from pydantic import Field

from backend.app.models.common import ApiModel, EntityType, new_id, utcnow


class ChunkMetadata(ApiModel):
    """Position of a chunk inside the source text."""

    start_char: int
    end_char: int
    section: str | None = None


class DocumentChunk(ApiModel):
    """Bounded slice of extracted text with its embedding vector."""

    id: str = Field(default_factory=new_id)
    uploaded_file_id: str
    chunk_index: int
    content: str
    heading: str | None = None
    embedding: list[float] = Field(default_factory=list)
    metadata: ChunkMetadata
    created_at: datetime = Field(default_factory=utcnow)


class Topic(ApiModel):
    """Free-text topic with keywords."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str | None = None
    keywords: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class DocumentTopic(ApiModel):
    """Link between an uploaded file and a topic."""

    id: str = Field(default_factory=new_id)
    uploaded_file_id: str
    topic_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=utcnow)


class PriorityRule(ApiModel):
    """Ranked rule derived from regulation entities."""

    rule: str
    priority: int


class SampleSection(ApiModel):
    """Representative content for a heading."""

    heading: str
    content: str
    source_chunk_ids: list[str] = Field(default_factory=list)


class TopicPack(ApiModel):
    """Derived knowledge summary for a topic."""

    id: str = Field(default_factory=new_id)
    topic_id: str
    name: str
    terminology_map: dict[str, str] = Field(default_factory=dict)
    priority_rules: list[PriorityRule] = Field(default_factory=list)
    sample_sections: list[SampleSection] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Entity(ApiModel):
    """Extracted number, regulation, term, date or percentage."""

    id: str = Field(default_factory=new_id)
    chunk_id: str
    entity_type: EntityType
    value: str
    context: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


class SearchResult(ApiModel):
    """Single semantic search hit."""

    chunk_id: str
    content: str
    similarity: float
    heading: str | None = None
    source_file: str | None = None
