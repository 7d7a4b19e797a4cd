"""
Health and diagnostics API.

Provides lightweight endpoints for operational monitoring without exposing secrets.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

logger = logging.getLogger("recruiterops")

root_router = APIRouter(tags=["health"])

REQUIRED_TABLES = [
    "profiles",
    "pending_subscriptions",
    "jobs",
    "candidates",
    "webhook_logs",
    "usage_logs",
]


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz(request: Request):
    """Readiness check: DB connectivity + required tables."""
    db = request.app.state.services.db
    if not db.check_connection():
        return JSONResponse(status_code=503, content={"ready": False, "reason": "database_unavailable"})

    try:
        present = set(inspect(db.engine).get_table_names())
    except Exception as exc:
        logger.warning(f"readyz table inspection failed: {exc}")
        return JSONResponse(status_code=503, content={"ready": False, "reason": "inspection_failed"})

    missing = [t for t in REQUIRED_TABLES if t not in present]
    if missing:
        return JSONResponse(status_code=503, content={"ready": False, "missing_tables": missing})
    return {"ready": True}
