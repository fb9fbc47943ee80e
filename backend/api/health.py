"""
api/health.py
=============
GET /api/health — liveness and readiness probe for the log analyst backend.
"""

from fastapi import APIRouter

from backend import session

router = APIRouter()


@router.get("/api/health")
async def health_check():
    """Return service status and component readiness flags."""
    orchestrator = session.get_orchestrator()

    return {
        "status":           "ok",
        "corpus_loaded":    session.is_ready(),
        "corpus_records":   len(orchestrator.records) if orchestrator else 0,
        "indexed_records":  len(orchestrator.index) if orchestrator else 0,
        "profile_loaded":   bool(orchestrator and orchestrator.profile is not None),
        "api_version":      "1.0.0",
    }
