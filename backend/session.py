"""
session.py
==========
Build the single analyst session shared by the HTTP API and the CLI.

Configuration comes from the environment (a project-root .env is loaded by
the entry points):

  LOG_FILE_PATH    corpus file              (default ./data/error-logs.json)
  EMBED_CACHE_DIR  embedding cache dir      (default ./data/.cache)
  PROFILE_PATH     user profile JSON        (default ./config/profile.json)
  RAG_TOP_K        records per question     (default 8)
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from personalization.profile import (
    PersonalizationManager,
    ProfileUnavailable,
    ProfileValidationError,
)
from rag_pipeline.embedder import Embedder
from rag_pipeline.embedding_cache import EmbeddingCache
from rag_pipeline.llm_engine import ChatClient
from rag_pipeline.orchestrator import DEFAULT_TOP_K, RAGOrchestrator

logger = logging.getLogger(__name__)

_orchestrator: Optional[RAGOrchestrator] = None


def _clean_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    return value.strip().strip('"').strip("'")


def log_file_path() -> str:
    return _clean_env("LOG_FILE_PATH", "./data/error-logs.json")


def load_personalization(path: Optional[str] = None) -> Optional[PersonalizationManager]:
    """Load the user profile; any failure degrades to depersonalized mode (None)."""
    manager = PersonalizationManager()
    try:
        manager.load_profile(path or _clean_env("PROFILE_PATH", "./config/profile.json"))
    except ProfileValidationError as exc:
        logger.warning("Invalid profile (field: %s): %s — running depersonalized.", exc.field, exc)
        return None
    except ProfileUnavailable as exc:
        logger.info("%s — running depersonalized.", exc)
        return None
    return manager


def build_orchestrator(
    embedder: Optional[Embedder] = None,
    chat_client: Optional[ChatClient] = None,
    personalization: Optional[PersonalizationManager] = None,
) -> RAGOrchestrator:
    return RAGOrchestrator(
        embedder        = embedder or Embedder(),
        chat_client     = chat_client or ChatClient(),
        cache           = EmbeddingCache(_clean_env("EMBED_CACHE_DIR", "./data/.cache")),
        personalization = personalization,
        top_k           = int(_clean_env("RAG_TOP_K", str(DEFAULT_TOP_K))),
    )


def set_orchestrator(orchestrator: Optional[RAGOrchestrator]) -> None:
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator() -> Optional[RAGOrchestrator]:
    return _orchestrator


def is_ready() -> bool:
    return _orchestrator is not None and _orchestrator.corpus is not None
