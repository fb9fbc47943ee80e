"""
embedding_cache.py
==================
Content-fingerprinted JSON persistence of precomputed log embeddings.

One cache file per corpus: <cache_dir>/<corpus stem>.embeddings.json

  {
    "fingerprint": "<md5 hex of the raw corpus bytes>",
    "created_at":  "2024-01-15T10:23:45Z",
    "records": [
      {"record": {...LogRecord...}, "vector": [0.1, ...], "text": "Service: ..."},
      ...
    ]
  }

An entry is only usable when its fingerprint matches the corpus file as it is
right now.  Missing or unreadable files are a cache miss, never an error, and
a failed write only costs the next session its speed-up.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from log_corpus.log_parser import CorpusFormatError, LogRecord

logger = logging.getLogger(__name__)

_CACHE_SUFFIX = ".embeddings.json"


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EmbeddedRecord:
    record: LogRecord
    vector: Tuple[float, ...]
    text: str                       # exact text that was sent to the embedder

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record": self.record.to_dict(),
            "vector": list(self.vector),
            "text":   self.text,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmbeddedRecord":
        return cls(
            record = LogRecord.from_dict(data["record"]),
            vector = tuple(float(v) for v in data["vector"]),
            text   = str(data["text"]),
        )


@dataclass
class CacheEntry:
    fingerprint: str
    records: List[EmbeddedRecord] = field(default_factory=list)
    created_at: str = ""

    def is_valid_for(self, fingerprint: str) -> bool:
        return self.fingerprint == fingerprint


def _utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class EmbeddingCache:
    """File-backed store for one CacheEntry per corpus file."""

    def __init__(self, cache_dir: Union[str, Path] = "./data/.cache"):
        self.cache_dir = Path(cache_dir)

    @staticmethod
    def fingerprint(raw: bytes) -> str:
        """Digest of the raw corpus bytes; only used to detect content changes."""
        return hashlib.md5(raw).hexdigest()

    def cache_path(self, corpus_path: Union[str, Path]) -> Path:
        return self.cache_dir / f"{Path(corpus_path).stem}{_CACHE_SUFFIX}"

    def load(self, corpus_path: Union[str, Path]) -> Optional[CacheEntry]:
        """Return the persisted entry for this corpus, or None on any miss."""
        path = self.cache_path(corpus_path)
        if not path.exists():
            logger.debug("No embedding cache at %s", path)
            return None

        try:
            with open(path, "r", encoding="utf-8") as fh:
                payload = json.load(fh)
            entry = CacheEntry(
                fingerprint = str(payload["fingerprint"]),
                records     = [EmbeddedRecord.from_dict(row) for row in payload["records"]],
                created_at  = str(payload.get("created_at", "")),
            )
        except (OSError, ValueError, KeyError, TypeError, CorpusFormatError) as exc:
            logger.warning("Ignoring unreadable embedding cache %s (%s)", path, exc)
            return None

        logger.debug("Loaded embedding cache %s (%d records)", path, len(entry.records))
        return entry

    def store(
        self,
        corpus_path: Union[str, Path],
        fingerprint: str,
        records: Sequence[EmbeddedRecord],
    ) -> bool:
        """
        Persist records under the corpus fingerprint.

        Returns False (after logging a warning) when the write fails; the
        caller keeps using its in-memory index either way.
        """
        path = self.cache_path(corpus_path)
        payload = {
            "fingerprint": fingerprint,
            "created_at":  _utc_now(),
            "records":     [r.to_dict() for r in records],
        }

        tmp_name = ""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                json.dump(payload, tmp, ensure_ascii=False)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Could not write embedding cache %s: %s", path, exc)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False

        logger.info("Embeddings saved to cache %s (%d records)", path, len(records))
        return True
