# backend/schemas/__init__.py
from backend.schemas.response import (
    AskRequest,
    AskResponse,
    FrequencyItem,
    StatsResponse,
)

__all__ = ["AskRequest", "AskResponse", "FrequencyItem", "StatsResponse"]
