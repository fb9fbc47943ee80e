"""HTTP routers: ask.py (questions, statistics), health.py (readiness)."""
