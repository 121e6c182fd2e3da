#!/usr/bin/env python3
"""
Hospital Wait Board — API

Dual-mode FastAPI server:
  • Database mode — PostgreSQL through the psycopg2 pool
  • Memory fallback — in-process store seeded from a JSON file when the
    database is unavailable (counts are lost on restart)

Usage:
    uvicorn waitboard.api.app:app --reload --port 8000
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from . import db
from .auth import auth_middleware
from .helpers import SEED_FILE
from .rate_limiter import rate_limit_middleware
from .routes import accounts, health, hospitals, waiting_list
from .store import MemoryStore, PostgresStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Hospital Wait Board",
    version=__version__,
    description="Hospital directory with live waiting counts and QR self-check-in",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Auth + rate limiting middleware (order matters: auth first, then rate limit)
# Starlette middleware executes in reverse registration order,
# so we register rate_limit first (runs second) then auth (runs first).
app.middleware("http")(rate_limit_middleware)
app.middleware("http")(auth_middleware)

app.include_router(health.router)
app.include_router(accounts.router)
app.include_router(hospitals.router)
app.include_router(waiting_list.router)

app.state.server_started_at = datetime.now(timezone.utc)


@app.on_event("startup")
async def startup():
    app.state.server_started_at = datetime.now(timezone.utc)
    if db.init_pool():
        logger.info("Running in DATABASE mode")
        app.state.store = PostgresStore()
    else:
        logger.info("Running in MEMORY FALLBACK mode")
        app.state.store = MemoryStore.from_json(SEED_FILE)


@app.on_event("shutdown")
async def shutdown():
    db.close_pool()
