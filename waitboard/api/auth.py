"""
Hospital Wait Board — Account Authentication

Provides:
    - Sign-up with bcrypt-hashed passwords
    - Sign-in issuing opaque bearer session tokens (7 day lifetime)
    - Session lookup from the ``Authorization: Bearer <token>`` header
    - An ``require_owner`` FastAPI dependency for hospital-owner endpoints
    - In-memory session cache (5 min TTL) to avoid a store round-trip per request

Anonymous callers may read hospitals and use the public self-check-in;
everything that edits a hospital or its count needs a signed-in owner.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import bcrypt
from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint

from .store import Account, HospitalStore, PersistenceFailure, SessionRecord

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(days=7)
MIN_PASSWORD_LENGTH = 6


class AuthError(Exception):
    pass


class InvalidCredentials(AuthError):
    pass


class WeakPassword(AuthError):
    pass


# ---------------------------------------------------------------------------
# Auth context: attached to request.state.auth
# ---------------------------------------------------------------------------


@dataclass
class AuthContext:
    """Resolved authentication context for a request."""

    tier: str = "anonymous"
    account_id: str | None = None
    email: str | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.account_id is not None


ANONYMOUS = AuthContext()


def _context_for(session: SessionRecord) -> AuthContext:
    return AuthContext(
        tier="owner",
        account_id=session.account_id,
        email=session.email,
        token=session.token,
    )


# ---------------------------------------------------------------------------
# Session cache: avoids a store lookup on every request
# ---------------------------------------------------------------------------

_SESSION_CACHE: dict[str, tuple[SessionRecord, float]] = {}
_CACHE_TTL = 300  # 5 minutes


def _cache_get(token: str) -> SessionRecord | None:
    """Return cached session if still valid, else None."""
    entry = _SESSION_CACHE.get(token)
    if entry is None:
        return None
    session, cached_at = entry
    if time.time() - cached_at > _CACHE_TTL or _expired(session):
        del _SESSION_CACHE[token]
        return None
    return session


def _cache_set(token: str, session: SessionRecord) -> None:
    _SESSION_CACHE[token] = (session, time.time())


def clear_cache() -> None:
    """Clear the entire session cache."""
    _SESSION_CACHE.clear()


def _expired(session: SessionRecord) -> bool:
    return session.expires_at <= datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Sign-up / sign-in / session lookup
# ---------------------------------------------------------------------------


def normalize_email(email: str) -> str:
    return email.strip().lower()


def sign_up(store: HospitalStore, email: str, password: str) -> Account:
    """Create an account. Raises WeakPassword or store.DuplicateAccount."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPassword(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
    account = store.create_account(normalize_email(email), password_hash)
    logger.info("Auth: account %s created", account.id)
    return account


def sign_in(store: HospitalStore, email: str, password: str) -> SessionRecord:
    """Check the password and open a new session. Raises InvalidCredentials."""
    account = store.fetch_account_by_email(normalize_email(email))
    if account is None:
        logger.info("Auth: sign-in for unknown email")
        raise InvalidCredentials("Invalid email or password")
    if not bcrypt.checkpw(password.encode("utf-8"), account.password_hash.encode("utf-8")):
        logger.info("Auth: wrong password for account %s", account.id)
        raise InvalidCredentials("Invalid email or password")

    token = secrets.token_urlsafe(32)
    expires_at = datetime.now(timezone.utc) + SESSION_TTL
    session = store.create_session(token, account.id, expires_at)
    _cache_set(token, session)
    return session


def get_session(store: HospitalStore, token: str) -> SessionRecord | None:
    """Resolve a bearer token. Expired sessions are deleted and reported as None."""
    cached = _cache_get(token)
    if cached is not None:
        return cached

    session = store.fetch_session(token)
    if session is None:
        return None
    if _expired(session):
        store.delete_session(token)
        return None
    _cache_set(token, session)
    return session


def sign_out(store: HospitalStore, token: str) -> None:
    _SESSION_CACHE.pop(token, None)
    store.delete_session(token)


# ---------------------------------------------------------------------------
# FastAPI middleware
# ---------------------------------------------------------------------------


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "").strip()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


async def auth_middleware(request: Request, call_next: RequestResponseEndpoint) -> Response:
    """
    Resolve the caller's identity from the Authorization header.

    - No header / not a bearer token -> anonymous
    - Known, unexpired token -> owner context
    - Unknown or expired token -> 401
    """
    token = _bearer_token(request)
    if not token:
        request.state.auth = ANONYMOUS
        return await call_next(request)

    try:
        session = get_session(request.app.state.store, token)
    except PersistenceFailure:
        return JSONResponse(
            status_code=503,
            content={"detail": "Session lookup unavailable, try again shortly"},
        )
    if session is None:
        return JSONResponse(
            status_code=401,
            content={"detail": "Invalid or expired session"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.auth = _context_for(session)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def current_auth(request: Request) -> AuthContext:
    return getattr(request.state, "auth", ANONYMOUS)


def require_owner() -> Callable:
    """
    FastAPI dependency that rejects anonymous callers and returns the AuthContext.

    Usage:
        @router.post("/api/hospitals")
        async def create(auth: AuthContext = Depends(require_owner())): ...
    """

    async def _check(request: Request) -> AuthContext:
        auth = current_auth(request)
        if not auth.is_authenticated:
            raise HTTPException(
                status_code=401,
                detail="Authentication required. Sign in and send the session token as a Bearer token.",
            )
        return auth

    return _check
