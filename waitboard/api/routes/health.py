"""Health check endpoint."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from .. import db
from ..helpers import iso
from ..store import PersistenceFailure

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/health")
async def health(request: Request):
    """Health check — reports mode, record count, version, DB latency. Always open."""
    store = request.app.state.store
    mode = store.mode
    db_ok = False
    db_latency_ms: float | None = None
    count: int | None = None

    try:
        t0 = time.monotonic()
        count = store.record_count()
        if mode == "database":
            db_latency_ms = round((time.monotonic() - t0) * 1000, 1)
            db_ok = True
    except PersistenceFailure:
        logger.warning("Health check: database query failed")

    server_started_at = request.app.state.server_started_at
    uptime_seconds = round((datetime.now(timezone.utc) - server_started_at).total_seconds())

    overall_status = "healthy" if db_ok else "degraded"
    http_status = 200 if db_ok else 503

    return JSONResponse(
        status_code=http_status,
        content={
            "status": overall_status,
            "mode": mode,
            "record_count": count,
            "version": request.app.version,
            "database_connected": db_ok and db.is_available(),
            "started_at": iso(server_started_at),
            "uptime_seconds": uptime_seconds,
            "checks": {
                "database": {
                    "status": "up" if db_ok else "down",
                    "latency_ms": db_latency_ms,
                },
            },
        },
    )
