"""
schemas/response.py
===================
Pydantic v2 request/response models for the log analyst HTTP API.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _utc_timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class AskRequest(BaseModel):
    question: str = Field(..., description="Natural-language question about the logs")

    @field_validator("question")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question must not be empty")
        return v


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class AskResponse(BaseModel):
    question: str
    intent: str               # "name_lookup" | "personal_profile" | "statistical" | "analytical"
    answer: str
    rag_records_used: int = 0
    timestamp: str = Field(default_factory=_utc_timestamp)


class FrequencyItem(BaseModel):
    name: str
    count: int


class StatsResponse(BaseModel):
    total_records: int
    by_error_type: List[FrequencyItem] = Field(default_factory=list)
    by_service: List[FrequencyItem] = Field(default_factory=list)
    personalized_summary: Optional[str] = None

