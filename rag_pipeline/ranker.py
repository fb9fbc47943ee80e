"""
ranker.py
=========
Rank indexed log records against a query vector by cosine similarity.

Linear scan over every indexed vector; corpora are small enough that an ANN
index would not pay for itself.  Ordering is fully deterministic:

  1. defined scores, highest first
  2. equal scores keep corpus (insertion) order
  3. undefined scores (empty, zero-magnitude, non-finite or mismatched
     vectors) come last, again in corpus order
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from log_corpus.log_parser import LogRecord
from rag_pipeline.embedding_cache import EmbeddedRecord

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> Optional[float]:
    """Return cos(a, b) in [-1, 1], or None when the score is undefined."""
    if len(a) == 0 or len(b) == 0 or len(a) != len(b):
        return None

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    na = float(np.linalg.norm(va))
    nb = float(np.linalg.norm(vb))
    if na == 0.0 or nb == 0.0 or not (np.isfinite(na) and np.isfinite(nb)):
        return None

    similarity = float(np.dot(va / na, vb / nb))
    if not np.isfinite(similarity):
        return None
    return max(min(similarity, 1.0), -1.0)


def rank_with_scores(
    query_vector: Sequence[float],
    indexed: Sequence[EmbeddedRecord],
    top_k: int,
) -> List[Tuple[LogRecord, Optional[float]]]:
    if top_k <= 0 or not indexed:
        return []

    scored = [
        (idx, item.record, cosine_similarity(query_vector, item.vector))
        for idx, item in enumerate(indexed)
    ]

    undefined = sum(1 for _, _, score in scored if score is None)
    if undefined:
        logger.debug("%d of %d records have an undefined similarity score.", undefined, len(scored))

    scored.sort(key=lambda row: (row[2] is None, -(row[2] or 0.0), row[0]))
    return [(record, score) for _, record, score in scored[:top_k]]


def rank(
    query_vector: Sequence[float],
    indexed: Sequence[EmbeddedRecord],
    top_k: int,
) -> List[LogRecord]:
    """Return the top_k most similar records (vectors dropped), best first."""
    return [record for record, _ in rank_with_scores(query_vector, indexed, top_k)]
