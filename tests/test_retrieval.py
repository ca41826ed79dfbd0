"""Tests for similarity retrieval."""

import math

import pytest

from docqa.service.retrieval import RetrievalEngine, rank_chunks


def unit_vector(similarity: float) -> list[float]:
    """2-d unit vector whose cosine with [1, 0] is the given similarity."""
    return [similarity, math.sqrt(1.0 - similarity * similarity)]


class TestRankChunks:
    """Tests for rank_chunks."""

    def test_threshold_is_inclusive(self, create_test_chunk):
        # cos([1, 0], [3, 4]) == 3 / 5
        chunk = create_test_chunk(embedding=[3.0, 4.0])
        assert rank_chunks([1.0, 0.0], [chunk], threshold=0.6, top_k=5)[0].chunk is chunk

    def test_below_threshold_is_dropped(self, create_test_chunk):
        chunk = create_test_chunk(embedding=[0.0, 1.0])
        assert rank_chunks([1.0, 0.0], [chunk], threshold=0.6, top_k=5) == []

    def test_chunks_without_embeddings_are_skipped(self, create_test_chunk):
        chunks = [create_test_chunk(embedding=None), create_test_chunk(embedding=[])]
        assert rank_chunks([1.0, 0.0], chunks, threshold=-1.0, top_k=5) == []

    def test_descending_order_and_top_k(self, create_test_chunk):
        chunks = [
            create_test_chunk(text="weak", embedding=[1.0, 1.0]),
            create_test_chunk(text="exact", embedding=[1.0, 0.0]),
            create_test_chunk(text="close", embedding=[1.0, 0.2]),
        ]

        results = rank_chunks([1.0, 0.0], chunks, threshold=0.0, top_k=2)

        assert [r.chunk.chunk_text for r in results] == ["exact", "close"]
        assert results[0].score == pytest.approx(1.0)

    def test_ties_keep_input_order(self, create_test_chunk):
        chunks = [create_test_chunk(text=name, embedding=[2.0, 0.0]) for name in ("a", "b", "c")]

        results = rank_chunks([1.0, 0.0], chunks, threshold=0.5, top_k=3)

        assert [r.chunk.chunk_text for r in results] == ["a", "b", "c"]

    def test_zero_top_k(self, create_test_chunk):
        chunks = [create_test_chunk(embedding=[1.0, 0.0])]
        assert rank_chunks([1.0, 0.0], chunks, threshold=0.0, top_k=0) == []

    @pytest.mark.parametrize(
        "similarities, expected",
        [
            ([0.9, 0.7, 0.5, 0.3], ["0.9", "0.7"]),
            ([0.3, 0.5, 0.7, 0.9], ["0.9", "0.7"]),
            ([0.5, 0.3, 0.1], []),
        ],
    )
    def test_default_threshold_keeps_matches_descending(
        self, storage, create_test_chunk, monkeypatch, similarities, expected
    ):
        monkeypatch.delenv("SIMILARITY_THRESHOLD", raising=False)
        monkeypatch.delenv("TOP_K", raising=False)
        for similarity in similarities:
            storage.insert_chunk(create_test_chunk(text=str(similarity), embedding=unit_vector(similarity)))

        results = RetrievalEngine(storage).search_scored([1.0, 0.0])

        assert [r.chunk.chunk_text for r in results] == expected
        assert all(r.score >= 0.6 for r in results)

    @pytest.mark.parametrize(
        "similarities",
        [
            [0.7, 0.95, 0.65, 0.8, 0.99, 0.75, 0.9, 0.62, 0.85, 0.68],
            [0.61 + 0.03 * step for step in range(10)],
        ],
    )
    def test_default_top_k_caps_results(self, storage, create_test_chunk, monkeypatch, similarities):
        monkeypatch.delenv("SIMILARITY_THRESHOLD", raising=False)
        monkeypatch.delenv("TOP_K", raising=False)
        for similarity in similarities:
            storage.insert_chunk(create_test_chunk(text=str(similarity), embedding=unit_vector(similarity)))

        results = RetrievalEngine(storage).search_scored([1.0, 0.0])

        best = sorted(similarities, reverse=True)[:5]
        assert [r.chunk.chunk_text for r in results] == [str(s) for s in best]
        assert [r.score for r in results] == pytest.approx(best)


class TestRetrievalEngine:
    """Tests for RetrievalEngine."""

    def test_defaults_from_environment(self, storage, monkeypatch):
        monkeypatch.setenv("SIMILARITY_THRESHOLD", "0.75")
        monkeypatch.setenv("TOP_K", "3")

        engine = RetrievalEngine(storage)

        assert engine.threshold == 0.75
        assert engine.top_k == 3

    def test_builtin_defaults(self, storage, monkeypatch):
        monkeypatch.delenv("SIMILARITY_THRESHOLD", raising=False)
        monkeypatch.delenv("TOP_K", raising=False)

        engine = RetrievalEngine(storage)

        assert engine.threshold == 0.6
        assert engine.top_k == 5

    def test_search_loads_chunks_from_storage(self, storage, create_test_chunk):
        storage.insert_chunk(create_test_chunk(text="match", embedding=[1.0, 0.0]))
        storage.insert_chunk(create_test_chunk(text="other", embedding=[0.0, 1.0]))

        results = RetrievalEngine(storage, threshold=0.6, top_k=5).search([1.0, 0.0])

        assert [c.chunk_text for c in results] == ["match"]

    def test_search_with_explicit_chunks(self, storage, create_test_chunk):
        storage.insert_chunk(create_test_chunk(text="stored", embedding=[1.0, 0.0]))
        candidate = create_test_chunk(text="given", embedding=[1.0, 0.0])

        results = RetrievalEngine(storage, threshold=0.6).search([1.0, 0.0], chunks=[candidate])

        assert results == [candidate]

    def test_top_k_override(self, storage, create_test_chunk):
        for index in range(4):
            storage.insert_chunk(create_test_chunk(chunk_index=str(index), embedding=[1.0, 0.0]))

        engine = RetrievalEngine(storage, threshold=0.6, top_k=5)

        assert len(engine.search_scored([1.0, 0.0], top_k=2)) == 2
        assert len(engine.search_scored([1.0, 0.0])) == 4

    def test_empty_storage(self, storage):
        assert RetrievalEngine(storage, threshold=0.6, top_k=5).search([1.0]) == []
