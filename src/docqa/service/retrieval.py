"""Semantic retrieval over stored chunk embeddings.

Every query scores the full chunk set with cosine similarity: there is no
vector index, so a search costs O(N) in the number of stored chunks.
"""

import logging
from dataclasses import dataclass

from docqa.constants import get_similarity_threshold, get_top_k
from docqa.service.database import Chunk, Storage, cosine_similarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredChunk:
    chunk: Chunk
    score: float


def rank_chunks(
    query_vector: list[float],
    chunks: list[Chunk],
    threshold: float,
    top_k: int,
) -> list[ScoredChunk]:
    """Score, filter and rank chunks against a query vector.

    Chunks without an embedding are skipped. A chunk is kept when its
    similarity is at least the threshold. Ties keep their input order.

    Args:
        query_vector: Embedding of the query
        chunks: Candidate chunks
        threshold: Minimum cosine similarity
        top_k: Maximum number of results

    Returns:
        list[ScoredChunk]: At most top_k chunks in descending score order
    """
    if top_k <= 0:
        return []

    scored = []
    for chunk in chunks:
        if not chunk.has_embedding:
            continue
        score = cosine_similarity(query_vector, chunk.embedding)
        if score >= threshold:
            scored.append(ScoredChunk(chunk, score))

    # sorted() is stable, so equal scores stay in input order
    scored = sorted(scored, key=lambda s: s.score, reverse=True)
    return scored[:top_k]


class RetrievalEngine:
    """Finds the chunks most relevant to a query embedding."""

    def __init__(
        self,
        storage: Storage,
        threshold: float | None = None,
        top_k: int | None = None,
    ) -> None:
        self.storage = storage
        self.threshold = get_similarity_threshold() if threshold is None else threshold
        self.top_k = get_top_k() if top_k is None else top_k

    def search_scored(
        self,
        query_vector: list[float],
        chunks: list[Chunk] | None = None,
        top_k: int | None = None,
    ) -> list[ScoredChunk]:
        """Rank chunks against a query vector, keeping the scores.

        Args:
            query_vector: Embedding of the query
            chunks: Candidate chunks (default: every chunk in storage)
            top_k: Override for the configured result limit

        Returns:
            list[ScoredChunk]: Relevant chunks, best first
        """
        if chunks is None:
            chunks = self.storage.list_chunks()

        limit = self.top_k if top_k is None else top_k
        results = rank_chunks(query_vector, chunks, self.threshold, limit)
        logger.info(
            f"🔍 Retrieved {len(results)} of {len(chunks)} chunks "
            f"(threshold={self.threshold}, top_k={limit})"
        )
        return results

    def search(
        self,
        query_vector: list[float],
        chunks: list[Chunk] | None = None,
        top_k: int | None = None,
    ) -> list[Chunk]:
        """Like search_scored, returning only the chunks."""
        return [s.chunk for s in self.search_scored(query_vector, chunks, top_k)]
