"""
backend — FastAPI application package and interactive CLI.

Routers: api/ask.py, api/health.py
Schemas: schemas/response.py
Session: session.py (shared analyst session)
Entry points: main.py → `uvicorn backend.main:app --reload`
              cli.py  → `logwise` console script
"""
