"""
embedder.py
===========
Convert text strings into dense embedding vectors.

Backends (selected with EMBED_BACKEND, no silent fallback between them):
  openai                — OpenAI-compatible /embeddings endpoint (default: local
                          Ollama at http://localhost:11434/v1, nomic-embed-text)
  sentence_transformers — local sentence-transformers model (offline)
  hash                  — deterministic hash embeddings (no model, for dev/tests)

Every backend failure surfaces as EmbeddingError.
"""

from __future__ import annotations

import hashlib
import logging
import os
from threading import Lock
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434/v1"
_DEFAULT_EMBED_MODEL = "nomic-embed-text"
_HASH_DIM = 256

BACKENDS = ("openai", "sentence_transformers", "hash")

_st_model = None               # sentence-transformers model (if loaded)
_model_lock = Lock()


class EmbeddingError(RuntimeError):
    """Raised when the embedding provider cannot produce a vector."""


def _clean_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    return value.strip().strip('"').strip("'")


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

def _embed_st(text: str) -> List[float]:
    global _st_model
    if _st_model is None:
        with _model_lock:
            if _st_model is None:
                from sentence_transformers import SentenceTransformer  # type: ignore
                model_name = _clean_env("LOCAL_EMBED_MODEL", "all-MiniLM-L6-v2")
                _st_model = SentenceTransformer(model_name)
                logger.info("Embedder backend: sentence_transformers (%s)", model_name)

    vec = _st_model.encode(
        [text],
        show_progress_bar=False,
        convert_to_numpy=True,
        normalize_embeddings=True,
    )[0]
    return vec.tolist()


def _embed_hash(text: str, dim: int = _HASH_DIM) -> List[float]:
    """Deterministic token-hash vector; same text always gives the same vector."""
    values = [0.0] * dim
    for token in text.lower().split():
        digest = hashlib.sha256(token.encode("utf-8", errors="ignore")).digest()
        idx = int.from_bytes(digest[:2], "big") % dim
        sign = 1.0 if digest[2] % 2 == 0 else -1.0
        values[idx] += sign

    norm = sum(v * v for v in values) ** 0.5
    if norm > 0:
        values = [v / norm for v in values]
    return values


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class Embedder:
    """
    Embedding provider used for both corpus indexing and query vectors.

    Parameters
    ----------
    backend  : one of BACKENDS (default from EMBED_BACKEND, else "openai")
    model    : embedding model name for the openai backend
    client   : optional pre-built openai.OpenAI client
    """

    def __init__(
        self,
        backend: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self.backend = (backend or _clean_env("EMBED_BACKEND", "openai")).lower()
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown embedding backend '{self.backend}'. Expected one of {BACKENDS}.")
        self.model = model or _clean_env("EMBED_MODEL", _DEFAULT_EMBED_MODEL)
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            from openai import OpenAI  # type: ignore

            self._client = OpenAI(
                base_url = _clean_env("LLM_BASE_URL", _DEFAULT_BASE_URL),
                api_key  = _clean_env("LLM_API_KEY", "ollama"),
                timeout  = float(_clean_env("LLM_TIMEOUT", "120")),
            )
            logger.info("Embedder backend: openai-compatible (%s)", self.model)
        return self._client

    def _embed_openai(self, text: str) -> List[float]:
        response = self._get_client().embeddings.create(model=self.model, input=text)
        if not response.data:
            raise EmbeddingError(f"Embedding model '{self.model}' returned no vectors.")
        return list(response.data[0].embedding)

    def embed(self, text: str) -> List[float]:
        """Return the embedding vector for a single text."""
        try:
            if self.backend == "hash":
                return _embed_hash(text)
            if self.backend == "sentence_transformers":
                return _embed_st(text)
            return self._embed_openai(text)
        except EmbeddingError:
            raise
        except Exception as exc:
            logger.error("Error creating embedding (%s backend): %s", self.backend, exc)
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc
