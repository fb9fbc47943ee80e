"""
main.py
=======
FastAPI application entry point for the log analyst.

Run locally:
  uvicorn backend.main:app --reload --port 8000

The lifespan handler builds the analyst session (profile, corpus index) once
at startup so embeddings are never recomputed per request.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv  # type: ignore
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend import session
from backend.api.ask import router as ask_router
from backend.api.health import router as health_router
from log_corpus.log_parser import CorpusFormatError
from rag_pipeline.embedder import EmbeddingError

# Load .env from project root (one level above this file's package)
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the analyst session before first request."""
    logger.info("Log analyst backend starting up…")

    if session.get_orchestrator() is None:
        orchestrator = session.build_orchestrator(personalization=session.load_personalization())
        session.set_orchestrator(orchestrator)

        try:
            orchestrator.load_corpus(session.log_file_path())
        except (OSError, CorpusFormatError, EmbeddingError) as exc:
            logger.warning("Corpus indexing skipped: %s", exc)

    logger.info("Startup complete (ready=%s).", session.is_ready())
    yield

    logger.info("Log analyst backend shutting down.")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app() -> FastAPI:
    app = FastAPI(
        title       = "Logwise API",
        description = (
            "Personal error-log analyst — cached embeddings, cosine retrieval, "
            "intent-aware prompts and LLM answers over a local log corpus."
        ),
        version     = "1.0.0",
        docs_url    = "/docs",
        redoc_url   = "/redoc",
        lifespan    = lifespan,
    )

    # ── CORS ──────────────────────────────────────────────────────────────
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    frontend_url = os.getenv("FRONTEND_URL")
    if frontend_url:
        origins.append(frontend_url)
    app.add_middleware(
        CORSMiddleware,
        allow_origins     = origins,
        allow_credentials = True,
        allow_methods     = ["*"],
        allow_headers     = ["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────
    app.include_router(health_router)
    app.include_router(ask_router)

    return app


app = create_app()
