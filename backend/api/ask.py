"""
api/ask.py
==========
POST /api/ask
-------------
Accepts a JSON body {"question": "..."} and runs the full RAG pipeline:

  1. Classify the question intent
  2. Retrieve top-K records (statistical / analytical questions only)
  3. Assemble the personalized prompt
  4. Generate the answer (or return the profile-only direct answer)

GET /api/stats
--------------
Aggregate counts by error type and service, plus the personalized summary
when a profile is loaded.

The pipeline is synchronous, so it runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, status

from backend import session
from backend.schemas.response import AskRequest, AskResponse, FrequencyItem, StatsResponse
from log_corpus.stats import compute_stats
from rag_pipeline.embedder import EmbeddingError
from rag_pipeline.llm_engine import ChatError
from rag_pipeline.orchestrator import RAGOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def _ready_orchestrator() -> RAGOrchestrator:
    orchestrator = session.get_orchestrator()
    if orchestrator is None or not session.is_ready():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Log corpus is not loaded yet.",
        )
    return orchestrator


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/api/ask", response_model=AskResponse)
async def ask(request: AskRequest):
    """Answer one natural-language question about the loaded logs."""
    orchestrator = _ready_orchestrator()

    try:
        result = await asyncio.to_thread(orchestrator.answer_with_details, request.question)
    except EmbeddingError as exc:
        logger.error("Query embedding failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Embedding backend error: {exc}",
        )
    except ChatError as exc:
        logger.error("LLM generation failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Chat backend error: {exc}",
        )

    return AskResponse(
        question         = result.question,
        intent           = result.intent.value,
        answer           = result.text,
        rag_records_used = len(result.retrieved),
    )


@router.get("/api/stats", response_model=StatsResponse)
async def stats():
    """Return aggregate statistics for the loaded corpus."""
    orchestrator = _ready_orchestrator()
    computed = compute_stats(orchestrator.records)

    return StatsResponse(
        total_records        = computed.total,
        by_error_type        = [FrequencyItem(name=n, count=c) for n, c in computed.by_error_type],
        by_service           = [FrequencyItem(name=n, count=c) for n, c in computed.by_service],
        personalized_summary = orchestrator.get_personalized_summary() or None,
    )
