"""Unit tests for cosine similarity, ranking and batched embedding."""

import math
from unittest.mock import AsyncMock

import pytest

from backend.app.models.topics import ChunkMetadata, DocumentChunk, SearchResult
from backend.app.topics.embeddings import (
    cosine_similarity,
    embed_in_batches,
    find_similar_chunks,
    keyword_score,
    query_words,
    rank_results,
    safe_cosine,
)


def _chunk(content: str, embedding: list[float]) -> DocumentChunk:
    return DocumentChunk(
        uploaded_file_id="file-1",
        chunk_index=0,
        content=content,
        embedding=embedding,
        metadata=ChunkMetadata(start_char=0, end_char=len(content)),
    )


def _result(similarity: float) -> SearchResult:
    return SearchResult(chunk_id=f"c{similarity}", content="", similarity=similarity)


class TestCosineSimilarity:
    """Test vector similarity."""

    def test_identical_orthogonal_and_opposite(self) -> None:
        """Known vectors give 1, 0 and -1."""
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self) -> None:
        """Magnitude does not change similarity."""
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [1.0, 1.0]) == pytest.approx(1 / math.sqrt(2))

    def test_zero_vector_scores_zero(self) -> None:
        """A zero-norm vector has similarity 0 instead of dividing by zero."""
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0

    def test_length_mismatch_raises(self) -> None:
        """Vectors of different dimension are an error."""
        with pytest.raises(ValueError):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_safe_cosine_scores_mismatch_as_zero(self) -> None:
        """The search variant tolerates missing or mismatched vectors."""
        assert safe_cosine([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0
        assert safe_cosine([], [1.0]) == 0.0
        assert safe_cosine([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)


class TestRanking:
    """Test threshold filtering, ordering and capping."""

    def test_rank_results_filters_sorts_and_caps(self) -> None:
        """Results meet the threshold, are sorted descending and capped at top_k."""
        results = [_result(s) for s in (0.2, 0.9, 0.5, 0.75, 0.5, 0.1)]

        ranked = rank_results(results, top_k=3, threshold=0.5)

        assert [r.similarity for r in ranked] == [0.9, 0.75, 0.5]
        assert all(r.similarity >= 0.5 for r in ranked)

    def test_rank_results_threshold_is_inclusive(self) -> None:
        """A result exactly at the threshold is kept."""
        assert len(rank_results([_result(0.7)], top_k=10, threshold=0.7)) == 1

    def test_rank_results_nonpositive_top_k(self) -> None:
        """top_k of zero returns nothing."""
        assert rank_results([_result(0.9)], top_k=0, threshold=0.0) == []

    def test_find_similar_chunks(self) -> None:
        """Chunks are scored against the query embedding."""
        chunks = [
            _chunk("exact", [1.0, 0.0]),
            _chunk("close", [0.9, 0.1]),
            _chunk("orthogonal", [0.0, 1.0]),
        ]

        results = find_similar_chunks([1.0, 0.0], chunks, top_k=5, threshold=0.7)

        assert [r.content for r in results] == ["exact", "close"]
        assert results[0].similarity == pytest.approx(1.0)


class TestKeywordScore:
    """Test the keyword fallback score."""

    def test_query_words_drop_short_words(self) -> None:
        """Words of two characters or fewer are ignored."""
        assert query_words("An ISO of 9001 cert") == ["iso", "9001", "cert"]

    def test_keyword_score_fraction(self) -> None:
        """Score is the fraction of query words found."""
        assert keyword_score("storage temperature limits", "Storage at low TEMPERATURE") == pytest.approx(2 / 3)
        assert keyword_score("to be", "to be or not") == 0.0


class TestEmbedInBatches:
    """Test batched embedding."""

    @pytest.mark.asyncio
    async def test_batches_preserve_order(self) -> None:
        """Texts are sent in batch_size groups and vectors come back in order."""
        client = AsyncMock()
        client.embed.side_effect = lambda batch: [[float(len(t))] for t in batch]

        vectors = await embed_in_batches(client, ["a", "bb", "ccc", "dddd", "eeeee"], batch_size=2)

        assert vectors == [[1.0], [2.0], [3.0], [4.0], [5.0]]
        assert client.embed.await_count == 3
