"""Topic endpoints and topic intelligence (processing, search, packs)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field

from backend.app.api.auth import get_current_user
from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.llm.client import LLMClient, get_llm_client
from backend.app.models.common import ApiModel
from backend.app.models.documents import UploadedFile
from backend.app.models.topics import DocumentChunk, Entity, SearchResult, Topic, TopicPack
from backend.app.topics.service import TopicIntelligenceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/topics", tags=["topics"], dependencies=[Depends(get_current_user)])
intelligence_router = APIRouter(
    prefix="/api/topic-intelligence", tags=["topic-intelligence"], dependencies=[Depends(get_current_user)]
)


class TopicRequest(ApiModel):
    """Request body for creating a topic."""

    name: str = Field(..., min_length=1)
    description: str | None = None
    keywords: list[str] = Field(default_factory=list)


class TopicUpdateRequest(ApiModel):
    """Partial update for a topic."""

    name: str | None = Field(None, min_length=1)
    description: str | None = None
    keywords: list[str] | None = None


class TopicDocument(ApiModel):
    """An uploaded file linked to a topic."""

    file: UploadedFile
    confidence: float


class BuildPackResponse(ApiModel):
    """Result of building a topic pack; pack is null when no files are linked."""

    pack: TopicPack | None
    message: str


class ProcessResponse(ApiModel):
    """Summary of processing an uploaded file."""

    chunks: int
    topics: list[str]
    entities: int


class SearchRequest(ApiModel):
    """Request body for POST /api/topic-intelligence/search."""

    query: str = Field(..., min_length=1)
    top_k: int = Field(10, ge=1, le=100)
    threshold: float = 0.0
    topic_id: str | None = None


def get_topic_service(
    storage: Annotated[Storage, Depends(get_storage)],
    client: Annotated[LLMClient, Depends(get_llm_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TopicIntelligenceService:
    """FastAPI dependency building the topic intelligence service."""
    return TopicIntelligenceService(storage, client, settings)


def get_topic_or_404(
    topic_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Topic:
    """Load a topic by path id.

    Raises:
        HTTPException: 404 if it does not exist
    """
    topic = storage.get_topic(topic_id)
    if topic is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Topic not found")
    return topic


def _linked_file_ids(storage: Storage, topic_id: str) -> list[str]:
    return [link.uploaded_file_id for link in storage.list_document_topics(topic_id=topic_id)]


@router.get("", response_model=list[Topic])
async def list_topics(storage: Annotated[Storage, Depends(get_storage)]) -> list[Topic]:
    """All topics, newest first."""
    return storage.list_topics()


@router.post("", response_model=Topic, status_code=status.HTTP_201_CREATED)
async def create_topic(
    request: TopicRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Topic:
    """Create a topic."""
    return storage.create_topic(Topic(**request.model_dump()))


@router.get("/{topic_id}", response_model=Topic)
async def get_topic(topic: Annotated[Topic, Depends(get_topic_or_404)]) -> Topic:
    """Single topic."""
    return topic


@router.put("/{topic_id}", response_model=Topic)
async def update_topic(
    topic_id: str,
    request: TopicUpdateRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Topic:
    """Update the given topic fields."""
    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key == "description"
    }
    topic = storage.update_topic(topic_id, changes)
    if topic is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Topic not found")
    return topic


@router.delete("/{topic_id}")
async def delete_topic(
    topic_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> dict[str, bool]:
    """Delete a topic with its file links and pack."""
    if not storage.delete_topic(topic_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Topic not found")
    return {"success": True}


@router.get("/{topic_id}/documents", response_model=list[TopicDocument])
async def topic_documents(
    topic: Annotated[Topic, Depends(get_topic_or_404)],
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[TopicDocument]:
    """Files linked to a topic with their classification confidence."""
    documents = []
    for link in storage.list_document_topics(topic_id=topic.id):
        file = storage.get_uploaded_file(link.uploaded_file_id)
        if file is not None:
            documents.append(TopicDocument(file=file, confidence=link.confidence))
    return documents


@router.get("/{topic_id}/chunks", response_model=list[DocumentChunk])
async def topic_chunks(
    topic: Annotated[Topic, Depends(get_topic_or_404)],
    storage: Annotated[Storage, Depends(get_storage)],
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
) -> list[DocumentChunk]:
    """Chunks of the files linked to a topic."""
    return storage.list_chunks(file_ids=_linked_file_ids(storage, topic.id), limit=limit)


@router.get("/{topic_id}/entities", response_model=list[Entity])
async def topic_entities(
    topic: Annotated[Topic, Depends(get_topic_or_404)],
    storage: Annotated[Storage, Depends(get_storage)],
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
) -> list[Entity]:
    """Entities extracted from the files linked to a topic."""
    chunks = storage.list_chunks(file_ids=_linked_file_ids(storage, topic.id))
    return storage.list_entities([c.id for c in chunks])[:limit]


@router.get("/{topic_id}/pack", response_model=TopicPack)
async def get_pack(
    topic: Annotated[Topic, Depends(get_topic_or_404)],
    storage: Annotated[Storage, Depends(get_storage)],
) -> TopicPack:
    """The topic's knowledge pack."""
    pack = storage.get_topic_pack(topic.id)
    if pack is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Topic pack not found")
    return pack


@router.post("/{topic_id}/pack", response_model=BuildPackResponse)
async def build_pack(
    topic_id: str,
    service: Annotated[TopicIntelligenceService, Depends(get_topic_service)],
) -> BuildPackResponse:
    """Build or refresh the topic's knowledge pack."""
    pack = service.build_topic_pack(topic_id)
    if pack is None:
        return BuildPackResponse(pack=None, message="No files linked to this topic")
    return BuildPackResponse(pack=pack, message="Topic pack built")


@intelligence_router.post("/process/{file_id}", response_model=ProcessResponse)
async def process_file(
    file_id: str,
    service: Annotated[TopicIntelligenceService, Depends(get_topic_service)],
) -> ProcessResponse:
    """Chunk, embed, classify and extract entities for an uploaded file."""
    result = await service.process_uploaded_file(file_id)
    return ProcessResponse(chunks=result.chunks, topics=result.topics, entities=result.entities)


@intelligence_router.post("/search", response_model=list[SearchResult])
async def search(
    request: SearchRequest,
    service: Annotated[TopicIntelligenceService, Depends(get_topic_service)],
) -> list[SearchResult]:
    """Rank stored chunks against a query."""
    return await service.semantic_search(
        request.query,
        top_k=request.top_k,
        threshold=request.threshold,
        topic_id=request.topic_id,
    )
