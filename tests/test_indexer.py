"""Unit tests for cache-aware corpus indexing."""

from __future__ import annotations

import pytest

from conftest import CountingEmbedder, make_record
from log_corpus.log_parser import load_corpus
from rag_pipeline.embedder import EmbeddingError
from rag_pipeline.indexer import VectorIndexer, record_to_text


def test_record_to_text_fixed_field_order() -> None:
    record = make_record("payment", "Timeout", "slow", metadata={"gateway": "stripe"})

    assert record_to_text(record) == (
        "Service: payment\n"
        "Error Type: Timeout\n"
        "Message: slow\n"
        "Timestamp: 2024-01-15T10:00:00Z\n"
        'Metadata: {"gateway": "stripe"}'
    )


def test_index_preserves_order_and_reports_progress(scenario_records, write_corpus, cache) -> None:
    corpus = load_corpus(write_corpus(scenario_records))
    embedder = CountingEmbedder()
    progress = []

    index = VectorIndexer(embedder, cache).index(corpus, on_progress=lambda done, total: progress.append((done, total)))

    assert [e.record for e in index] == scenario_records
    assert [e.text for e in index] == [record_to_text(r) for r in scenario_records]
    assert embedder.calls == [record_to_text(r) for r in scenario_records]
    assert progress == [(1, 3), (2, 3), (3, 3)]


def test_second_run_uses_cache_without_embedding_calls(scenario_records, write_corpus, cache) -> None:
    path = write_corpus(scenario_records)
    first = VectorIndexer(CountingEmbedder(), cache).index(load_corpus(path))

    embedder = CountingEmbedder()
    second = VectorIndexer(embedder, cache).index(load_corpus(path))

    assert embedder.calls == []
    assert second == first


def test_single_byte_change_forces_full_recompute(scenario_records, write_corpus, cache) -> None:
    path = write_corpus(scenario_records)
    VectorIndexer(CountingEmbedder(), cache).index(load_corpus(path))

    path.write_bytes(path.read_bytes() + b"\n")
    embedder = CountingEmbedder()
    VectorIndexer(embedder, cache).index(load_corpus(path))

    assert len(embedder.calls) == len(scenario_records)


def test_embedding_failure_aborts_without_writing_cache(scenario_records, write_corpus, cache) -> None:
    corpus = load_corpus(write_corpus(scenario_records))
    embedder = CountingEmbedder(fail_on_call=2)

    with pytest.raises(EmbeddingError):
        VectorIndexer(embedder, cache).index(corpus)

    assert len(embedder.calls) == 2
    assert cache.load(corpus.path) is None


def test_unwritable_cache_still_returns_index(scenario_records, write_corpus, tmp_path) -> None:
    from rag_pipeline.embedding_cache import EmbeddingCache

    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    corpus = load_corpus(write_corpus(scenario_records))

    index = VectorIndexer(CountingEmbedder(), EmbeddingCache(blocker / "cache")).index(corpus)

    assert len(index) == len(scenario_records)
