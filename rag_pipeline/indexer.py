"""
indexer.py
==========
Build one embedding vector per log record, reusing the on-disk cache when the
corpus file is byte-identical to the one the cache was built from.

Embedding requests are issued one at a time in corpus order.  A failure on
any record aborts the whole run; no partial index is returned or persisted.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, List, Optional

from log_corpus.log_parser import Corpus, LogRecord
from rag_pipeline.embedding_cache import EmbeddedRecord, EmbeddingCache

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

_PROGRESS_LOG_EVERY = 25


def record_to_text(record: LogRecord) -> str:
    """Canonical text projection of a record used as embedding input."""
    return (
        f"Service: {record.service}\n"
        f"Error Type: {record.error_type}\n"
        f"Message: {record.message}\n"
        f"Timestamp: {record.timestamp}\n"
        f"Metadata: {json.dumps(dict(record.metadata), ensure_ascii=False)}"
    )


class VectorIndexer:
    """
    Parameters
    ----------
    embedder : any object exposing embed(text) -> List[float]
    cache    : EmbeddingCache used to skip recomputation
    """

    def __init__(self, embedder: Any, cache: EmbeddingCache):
        self.embedder = embedder
        self.cache = cache

    def index(
        self,
        corpus: Corpus,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[EmbeddedRecord]:
        fingerprint = self.cache.fingerprint(corpus.raw)

        entry = self.cache.load(corpus.path)
        if entry is not None:
            if entry.is_valid_for(fingerprint):
                logger.info("Valid embedding cache found: %d records loaded.", len(entry.records))
                return list(entry.records)
            logger.info("Embedding cache is stale (corpus changed) — re-indexing.")

        records = corpus.records
        total = len(records)
        logger.info("Creating embeddings for %d records…", total)

        embedded: List[EmbeddedRecord] = []
        for i, record in enumerate(records, start=1):
            text = record_to_text(record)
            vector = self.embedder.embed(text)
            embedded.append(EmbeddedRecord(record=record, vector=tuple(vector), text=text))

            if on_progress is not None:
                on_progress(i, total)
            if i % _PROGRESS_LOG_EVERY == 0 or i == total:
                logger.info("Embedded %d / %d records.", i, total)

        self.cache.store(corpus.path, fingerprint, embedded)
        return embedded
