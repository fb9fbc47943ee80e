"""Unit tests for the fingerprinted embedding cache."""

from __future__ import annotations

import json

from conftest import make_record
from rag_pipeline.embedding_cache import CacheEntry, EmbeddedRecord, EmbeddingCache


def _embedded() -> list:
    return [
        EmbeddedRecord(make_record("payment", "Timeout", metadata={"ms": 30000}), (0.1, 0.2), "text-1"),
        EmbeddedRecord(make_record("auth", "AuthFailed", user_id="u9"), (0.3, -0.4), "text-2"),
    ]


def test_fingerprint_is_deterministic_and_byte_sensitive() -> None:
    raw = b'[{"service": "payment"}]'

    assert EmbeddingCache.fingerprint(raw) == EmbeddingCache.fingerprint(bytes(raw))
    assert EmbeddingCache.fingerprint(raw) != EmbeddingCache.fingerprint(raw.replace(b"p", b"P", 1))


def test_cache_path_uses_corpus_stem(tmp_path) -> None:
    cache = EmbeddingCache(tmp_path)
    assert cache.cache_path("/data/error-logs.json") == tmp_path / "error-logs.embeddings.json"


def test_load_absent_cache_is_a_miss(cache) -> None:
    assert cache.load("error-logs.json") is None


def test_store_then_load_round_trip(cache) -> None:
    records = _embedded()

    assert cache.store("error-logs.json", "abc123", records) is True
    entry = cache.load("error-logs.json")

    assert isinstance(entry, CacheEntry)
    assert entry.fingerprint == "abc123"
    assert entry.records == records
    assert entry.created_at.endswith("Z")
    assert entry.is_valid_for("abc123")
    assert not entry.is_valid_for("other")


def test_store_writes_structured_json(cache) -> None:
    cache.store("error-logs.json", "fp", _embedded())

    payload = json.loads(cache.cache_path("error-logs.json").read_text(encoding="utf-8"))

    assert set(payload) == {"fingerprint", "created_at", "records"}
    assert payload["records"][0]["text"] == "text-1"
    assert payload["records"][0]["record"]["service"] == "payment"


def test_corrupt_cache_file_is_a_miss(cache) -> None:
    path = cache.cache_path("error-logs.json")
    path.parent.mkdir(parents=True)
    path.write_text("{ truncated", encoding="utf-8")

    assert cache.load("error-logs.json") is None


def test_structurally_wrong_cache_is_a_miss(cache) -> None:
    path = cache.cache_path("error-logs.json")
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"fingerprint": "fp", "records": [{"vector": [1]}]}), encoding="utf-8")

    assert cache.load("error-logs.json") is None


def test_write_failure_is_reported_not_raised(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way", encoding="utf-8")
    cache = EmbeddingCache(blocker / "cache")

    assert cache.store("error-logs.json", "fp", _embedded()) is False
