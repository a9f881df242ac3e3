"""Topic intelligence orchestration: process uploads, search chunks, build topic packs."""

import logging
from dataclasses import dataclass

from backend.app.config import Settings
from backend.app.db.repositories import Storage
from backend.app.errors import NotFoundError
from backend.app.llm.client import LLMClient
from backend.app.llm.retry import call_ai
from backend.app.models.common import EntityType
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
from backend.app.topics.chunker import chunk_document
from backend.app.topics.classification import (
    MAX_ENTITIES,
    ExtractedEntity,
    classify_by_keywords,
    classify_topics,
    extract_entities,
    extract_entities_regex,
)
from backend.app.topics.embeddings import embed_in_batches, keyword_score, rank_results, safe_cosine

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 100_000
MAX_CHUNKS = 100
PIPELINE_CHUNK_SIZE = 800
PIPELINE_OVERLAP = 50
KEYWORD_CONFIDENCE = 0.8
HYBRID_COSINE_WEIGHT = 0.7
HYBRID_KEYWORD_WEIGHT = 0.3
MAX_PRIORITY_RULES = 10
MAX_SAMPLE_SECTIONS = 10
CHUNKS_PER_SECTION = 3


@dataclass(frozen=True)
class ProcessingResult:
    """Summary of processing one uploaded file."""

    chunks: int
    topics: list[str]
    entities: int


class TopicIntelligenceService:
    """Chunks, embeds, classifies and searches uploaded documents."""

    def __init__(self, storage: Storage, client: LLMClient, settings: Settings) -> None:
        """Initialize service.

        Args:
            storage: Storage for chunks, topics, entities and packs
            client: LLM client for classification, extraction and embeddings
            settings: Topic intelligence toggles and limits
        """
        self._storage = storage
        self._client = client
        self._settings = settings

    async def process_uploaded_file(self, file_id: str) -> ProcessingResult:
        """Chunk, embed, classify and extract entities for an uploaded file.

        Re-processing a file replaces its previous chunks and entities.

        Raises:
            NotFoundError: If the file is missing or has no extracted text
        """
        file = self._storage.get_uploaded_file(file_id)
        if file is None or not file.extracted_content:
            raise NotFoundError("File not found or has no extracted content")

        content = file.extracted_content
        if len(content) > MAX_CONTENT_CHARS:
            logger.warning(
                f"File content too large: {len(content)} chars, truncating to {MAX_CONTENT_CHARS}"
            )
            content = content[:MAX_CONTENT_CHARS]

        pieces = chunk_document(content, max_chunk_size=PIPELINE_CHUNK_SIZE, overlap=PIPELINE_OVERLAP)
        if len(pieces) > MAX_CHUNKS:
            logger.warning(f"Too many chunks ({len(pieces)}), limiting to {MAX_CHUNKS}")
            pieces = pieces[:MAX_CHUNKS]

        embeddings = await self._embed_chunks(
            [f"{p.heading}\n{p.content}" if p.heading else p.content for p in pieces]
        )

        self._storage.delete_chunks_for_file(file_id)
        stored = self._storage.create_chunks(
            [
                DocumentChunk(
                    uploaded_file_id=file_id,
                    chunk_index=piece.index,
                    content=piece.content,
                    heading=piece.heading,
                    embedding=embeddings[i] if i < len(embeddings) else [],
                    metadata=ChunkMetadata(
                        start_char=piece.start_char,
                        end_char=piece.end_char,
                        section=piece.heading,
                    ),
                )
                for i, piece in enumerate(pieces)
            ]
        )
        logger.info(f"Stored {len(stored)} chunks for file {file.filename}")

        topic_ids = await self._classify(file_id, content)
        entity_count = await self._store_entities(content, stored)

        return ProcessingResult(chunks=len(stored), topics=topic_ids, entities=entity_count)

    async def _embed_chunks(self, texts: list[str]) -> list[list[float]]:
        if not texts or not self._settings.embeddings_enabled:
            return []
        try:
            return await embed_in_batches(self._client, texts, self._settings.topic_intelligence_batch)
        except Exception as e:
            logger.warning(f"Embedding generation failed, storing chunks without embeddings: {e}")
            return []

    async def _classify(self, file_id: str, content: str) -> list[str]:
        existing = self._storage.list_topics()
        by_name = {topic.name.lower(): topic for topic in existing}

        links: list[tuple[Topic, float]] = []
        for suggestion in await classify_topics(self._client, content, existing):
            topic = by_name.get(suggestion.name.lower())
            if topic is None:
                topic = self._storage.create_topic(
                    Topic(
                        name=suggestion.name,
                        description=suggestion.description or None,
                        keywords=suggestion.keywords,
                    )
                )
                by_name[topic.name.lower()] = topic
            links.append((topic, suggestion.confidence / 100))

        if not links:
            links = [(topic, KEYWORD_CONFIDENCE) for topic in classify_by_keywords(content, existing)]
            logger.info(f"Classified file {file_id} into {len(links)} topics using keywords")

        topic_ids: list[str] = []
        for topic, confidence in links:
            if topic.id in topic_ids:
                continue
            self._storage.link_document_topic(
                DocumentTopic(uploaded_file_id=file_id, topic_id=topic.id, confidence=confidence)
            )
            topic_ids.append(topic.id)
        return topic_ids

    async def _store_entities(self, content: str, chunks: list[DocumentChunk]) -> int:
        if not chunks:
            return 0

        found: list[ExtractedEntity] = await extract_entities(self._client, content)
        if not found:
            found = extract_entities_regex(content)
        if len(found) > MAX_ENTITIES:
            logger.warning(f"Too many entities ({len(found)}), limiting to {MAX_ENTITIES}")
            found = found[:MAX_ENTITIES]

        entities = [
            Entity(
                chunk_id=_owning_chunk(item.value, chunks).id,
                entity_type=item.entity_type,
                value=item.value,
                context=item.context,
                metadata=item.metadata,
            )
            for item in found
        ]
        self._storage.create_entities(entities)
        return len(entities)

    async def semantic_search(
        self,
        query: str,
        top_k: int = 10,
        threshold: float = 0.0,
        topic_id: str | None = None,
    ) -> list[SearchResult]:
        """Rank stored chunks against a query.

        Uses cosine similarity over embeddings when available (optionally
        blended with the keyword score), otherwise the keyword score alone.

        Args:
            query: Search text
            top_k: Maximum number of results
            threshold: Minimum similarity to keep a result
            topic_id: Restrict to chunks of files linked to this topic

        Returns:
            Results with similarity >= threshold, highest first, at most top_k
        """
        file_ids = None
        if topic_id:
            file_ids = [link.uploaded_file_id for link in self._storage.list_document_topics(topic_id=topic_id)]
        chunks = self._storage.list_chunks(
            file_ids=file_ids, limit=self._settings.topic_intelligence_chunk_limit
        )

        embedded = [c for c in chunks if c.embedding]
        if self._settings.embeddings_enabled and embedded:
            logger.info(
                "Semantic search using embeddings",
                extra={"structured": {"hybrid": self._settings.hybrid_search}},
            )
            vectors = await call_ai("embed_query", lambda: self._client.embed([query]))
            query_vector = vectors[0] if vectors else []
            scored = []
            for chunk in embedded:
                score = safe_cosine(query_vector, chunk.embedding)
                if self._settings.hybrid_search:
                    score = max(
                        0.0,
                        HYBRID_COSINE_WEIGHT * score
                        + HYBRID_KEYWORD_WEIGHT * keyword_score(query, chunk.content),
                    )
                scored.append((chunk, score))
        else:
            logger.info("Semantic search using keyword fallback")
            scored = [(chunk, keyword_score(query, chunk.content)) for chunk in chunks]

        filenames: dict[str, str | None] = {}
        results = []
        for chunk, score in scored:
            if chunk.uploaded_file_id not in filenames:
                file = self._storage.get_uploaded_file(chunk.uploaded_file_id)
                filenames[chunk.uploaded_file_id] = file.filename if file else None
            results.append(
                SearchResult(
                    chunk_id=chunk.id,
                    content=chunk.content,
                    similarity=score,
                    heading=chunk.heading,
                    source_file=filenames[chunk.uploaded_file_id],
                )
            )
        return rank_results(results, top_k=top_k, threshold=threshold)

    def build_topic_pack(self, topic_id: str) -> TopicPack | None:
        """Build or refresh the knowledge pack for a topic.

        Returns:
            The saved pack, or None when no files are linked to the topic

        Raises:
            NotFoundError: If the topic does not exist
        """
        topic = self._storage.get_topic(topic_id)
        if topic is None:
            raise NotFoundError("Topic not found")

        file_ids = [link.uploaded_file_id for link in self._storage.list_document_topics(topic_id=topic_id)]
        if not file_ids:
            logger.info(f"No files found for topic {topic.name}")
            return None

        chunks = self._storage.list_chunks(file_ids=file_ids)
        entities = self._storage.list_entities([c.id for c in chunks])

        terminology_map = {
            e.value: str(e.metadata["definition"])
            for e in entities
            if e.entity_type == EntityType.term and e.metadata.get("definition")
        }

        regulations = [e for e in entities if e.entity_type == EntityType.regulation]
        priority_rules = [
            PriorityRule(rule=f"{e.value}: {e.context}", priority=100 - i * 10)
            for i, e in enumerate(regulations[:MAX_PRIORITY_RULES])
        ]

        grouped: dict[str, list[DocumentChunk]] = {}
        for chunk in chunks:
            grouped.setdefault(chunk.heading or "General", []).append(chunk)
        sample_sections = [
            SampleSection(
                heading=heading,
                content="\n\n".join(c.content for c in members[:CHUNKS_PER_SECTION]),
                source_chunk_ids=[c.id for c in members[:CHUNKS_PER_SECTION]],
            )
            for heading, members in list(grouped.items())[:MAX_SAMPLE_SECTIONS]
        ]

        pack = self._storage.save_topic_pack(
            TopicPack(
                topic_id=topic_id,
                name=f"{topic.name} Knowledge Pack",
                terminology_map=terminology_map,
                priority_rules=priority_rules,
                sample_sections=sample_sections,
            )
        )
        logger.info(f"Topic pack built for {topic.name}")
        return pack


def _owning_chunk(value: str, chunks: list[DocumentChunk]) -> DocumentChunk:
    """First chunk containing the value, else the first chunk."""
    for chunk in chunks:
        if value in chunk.content:
            return chunk
    return chunks[0]
