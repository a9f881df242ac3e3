"""Vector helpers for semantic search: cosine similarity, ranking and batched embedding."""

import logging
import re
from collections.abc import Sequence

import numpy as np

from backend.app.llm.client import LLMClient
from backend.app.models.topics import DocumentChunk, SearchResult

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns:
        Similarity in [-1, 1]; 0.0 when either vector has zero norm

    Raises:
        ValueError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise ValueError("Vectors must have the same length")

    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    denominator = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denominator == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denominator)


def safe_cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity that scores vectors of different dimension as 0."""
    if not a or not b or len(a) != len(b):
        return 0.0
    return cosine_similarity(a, b)


def find_similar_chunks(
    query_embedding: Sequence[float],
    chunks: Sequence[DocumentChunk],
    top_k: int = 10,
    threshold: float = 0.7,
) -> list[SearchResult]:
    """Rank chunks by cosine similarity to a query embedding.

    Args:
        query_embedding: Query vector
        chunks: Candidate chunks (all must match the query dimension)
        top_k: Maximum number of results
        threshold: Minimum similarity to keep a result

    Returns:
        Results with similarity >= threshold, highest first, at most top_k
    """
    scored = [
        SearchResult(
            chunk_id=chunk.id,
            content=chunk.content,
            heading=chunk.heading,
            similarity=cosine_similarity(query_embedding, chunk.embedding),
        )
        for chunk in chunks
    ]
    return rank_results(scored, top_k=top_k, threshold=threshold)


def rank_results(results: list[SearchResult], *, top_k: int, threshold: float) -> list[SearchResult]:
    """Filter by threshold, sort by similarity descending and cap at top_k."""
    kept = [r for r in results if r.similarity >= threshold]
    kept.sort(key=lambda r: r.similarity, reverse=True)
    return kept[: max(top_k, 0)]


def query_words(query: str) -> list[str]:
    """Lower-cased query words longer than two characters."""
    return [word for word in re.split(r"\s+", query.lower()) if len(word) > 2]


def keyword_score(query: str, text: str) -> float:
    """Fraction of query words present in text (0.0 when the query has no usable words)."""
    words = query_words(query)
    if not words:
        return 0.0
    lowered = text.lower()
    return sum(1 for word in words if word in lowered) / len(words)


async def embed_in_batches(client: LLMClient, texts: list[str], batch_size: int) -> list[list[float]]:
    """Embed texts in consecutive batches, preserving order.

    Raises:
        Whatever the client raises; callers decide how to degrade.
    """
    size = max(batch_size, 1)
    vectors: list[list[float]] = []
    for start in range(0, len(texts), size):
        batch = texts[start : start + size]
        vectors.extend(await client.embed(batch))
    logger.info(f"Generated embeddings for {len(texts)} texts")
    return vectors
