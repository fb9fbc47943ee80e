"""Pytest configuration and shared fakes for the log analyst test suite."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from log_corpus.log_parser import LogRecord  # noqa: E402
from personalization.profile import PersonalizationManager, UserProfile  # noqa: E402
from rag_pipeline.embedder import EmbeddingError, _embed_hash  # noqa: E402
from rag_pipeline.embedding_cache import EmbeddingCache  # noqa: E402


class CountingEmbedder:
    """Deterministic embedder that records every text it was asked to embed."""

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None, fail_on_call: Optional[int] = None):
        self.vectors = vectors or {}
        self.fail_on_call = fail_on_call
        self.calls: List[str] = []

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise EmbeddingError("embedding backend unavailable")
        if text in self.vectors:
            return list(self.vectors[text])
        return _embed_hash(text, dim=32)


class ScriptedChat:
    """Chat collaborator that streams a fixed list of chunks."""

    def __init__(self, chunks: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.chunks = chunks if chunks is not None else ["Ответ", " готов."]
        self.error = error
        self.calls: List[Dict[str, str]] = []

    def chat(self, system_prompt: str, user_message: str, on_token: Optional[Callable[[str], None]] = None) -> str:
        self.calls.append({"system": system_prompt, "user": user_message})
        if self.error is not None:
            raise self.error
        for chunk in self.chunks:
            if on_token is not None:
                on_token(chunk)
        return "".join(self.chunks)


def make_record(service: str, error_type: str, message: str = "boom", **extra) -> LogRecord:
    return LogRecord(
        timestamp  = extra.pop("timestamp", "2024-01-15T10:00:00Z"),
        level      = extra.pop("level", "ERROR"),
        service    = service,
        error_type = error_type,
        message    = message,
        **extra,
    )


PROFILE_DATA = {
    "name": "Алексей",
    "role": "DevOps Engineer",
    "experience": "5 лет опыта",
    "timezone": "Europe/Moscow",
    "preferences": {
        "answerStyle": "краткий",
        "includeRecommendations": True,
        "technicalLevel": "продвинутый",
        "useEmoji": False,
    },
    "responsibilities": {
        "services": ["api-gateway", "payment"],
        "criticalErrors": ["OutOfMemoryError"],
    },
    "workingHours": {"start": "09:00", "end": "18:00"},
}


@pytest.fixture
def profile_data() -> dict:
    return json.loads(json.dumps(PROFILE_DATA))


@pytest.fixture
def profile(profile_data) -> UserProfile:
    return UserProfile.model_validate(profile_data)


@pytest.fixture
def personalization(profile) -> PersonalizationManager:
    return PersonalizationManager(profile)


@pytest.fixture
def scenario_records() -> List[LogRecord]:
    """Two payment Timeouts and one auth AuthFailed."""
    return [
        make_record("payment", "Timeout", "Gateway timed out after 30s", user_id="u1"),
        make_record("auth", "AuthFailed", "Invalid password for account", user_id="u2"),
        make_record("payment", "Timeout", "Upstream timed out after 31s"),
    ]


@pytest.fixture
def write_corpus(tmp_path) -> Callable[..., Path]:
    def _write(records: List[LogRecord], name: str = "error-logs.json") -> Path:
        path = tmp_path / name
        path.write_text(
            json.dumps([r.to_dict() for r in records], ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture
def cache(tmp_path) -> EmbeddingCache:
    return EmbeddingCache(tmp_path / "cache")
