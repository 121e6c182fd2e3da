"""
Hospital Wait Board — In-Memory Sliding Window Rate Limiter

Per-tier rate limits (requests per minute):
    anonymous:  60
    owner:     300

Public self-check-ins also count against a bucket per client IP and
hospital (CHECKIN_LIMIT). Patients at one reception often share a
public IP, so the limit is sized for a busy waiting room rather than one
phone; it caps scripted inflation of a waiting list, not a single visitor.

Keys: account ID for signed-in owners, client IP for anonymous callers.

Response headers on every response:
    X-RateLimit-Limit     — max requests per window
    X-RateLimit-Remaining — requests left
    X-RateLimit-Reset     — seconds until window resets

Returns 429 Too Many Requests with Retry-After header when exceeded.
"""

from __future__ import annotations

import logging
import threading
import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tier-based limits (requests per 60-second window)
# ---------------------------------------------------------------------------

TIER_LIMITS: dict[str, int] = {
    "anonymous": 60,
    "owner": 300,
}

DEFAULT_LIMIT = 60
CHECKIN_LIMIT = 20
WINDOW_SECONDS = 60

# ---------------------------------------------------------------------------
# Sliding window store
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_store: dict[str, list[float]] = {}  # key -> list of request timestamps
_last_cleanup = time.time()
_CLEANUP_INTERVAL = 60  # seconds between cleanups


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    client = request.client
    return client.host if client else "unknown"


def _get_client_key(request: Request) -> str:
    """Derive rate-limit key from request (account ID or IP)."""
    auth = getattr(request.state, "auth", None)
    if auth and auth.account_id:
        return f"account:{auth.account_id}"
    return f"ip:{_client_ip(request)}"


def _get_limit(request: Request) -> int:
    """Get the rate limit for this request based on tier."""
    auth = getattr(request.state, "auth", None)
    if not auth:
        return DEFAULT_LIMIT
    return TIER_LIMITS.get(auth.tier, DEFAULT_LIMIT)


def _checkin_key(request: Request) -> str | None:
    """Separate bucket for POST /api/hospitals/{id}/checkin."""
    path = request.url.path
    if request.method == "POST" and path.startswith("/api/hospitals/") and path.endswith("/checkin"):
        return f"checkin:{_client_ip(request)}:{path}"
    return None


def _cleanup_expired() -> None:
    """Remove expired entries from the store (called periodically)."""
    global _last_cleanup
    now = time.time()
    if now - _last_cleanup < _CLEANUP_INTERVAL:
        return
    _last_cleanup = now

    cutoff = now - WINDOW_SECONDS
    expired_keys = []
    for key, timestamps in _store.items():
        _store[key] = [t for t in timestamps if t > cutoff]
        if not _store[key]:
            expired_keys.append(key)

    for key in expired_keys:
        del _store[key]

    if expired_keys:
        logger.debug("Rate limiter: cleaned up %d expired keys", len(expired_keys))


def check_rate_limit(client_key: str, limit: int) -> tuple[bool, int, int, int]:
    """
    Check if a request is allowed.

    Returns:
        (allowed, limit, remaining, reset_seconds)
    """
    now = time.time()
    cutoff = now - WINDOW_SECONDS

    with _lock:
        _cleanup_expired()

        timestamps = [t for t in _store.get(client_key, []) if t > cutoff]

        # Time until oldest request in window expires
        reset_seconds = int(WINDOW_SECONDS - (now - timestamps[0])) if timestamps else WINDOW_SECONDS

        if len(timestamps) >= limit:
            _store[client_key] = timestamps
            return False, limit, 0, reset_seconds

        timestamps.append(now)
        _store[client_key] = timestamps
        remaining = max(0, limit - len(timestamps))

        return True, limit, remaining, reset_seconds


def _too_many(limit: int, reset_seconds: int) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please slow down.",
            "retry_after": reset_seconds,
        },
        headers={
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(reset_seconds),
            "Retry-After": str(reset_seconds),
        },
    )


# ---------------------------------------------------------------------------
# FastAPI middleware
# ---------------------------------------------------------------------------


async def rate_limit_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """
    Sliding window rate limiter middleware.

    Runs after auth middleware (needs request.state.auth).
    Health checks are never limited.
    """
    if request.url.path == "/api/health":
        return await call_next(request)

    client_key = _get_client_key(request)
    limit = _get_limit(request)

    allowed, max_limit, remaining, reset_seconds = check_rate_limit(client_key, limit)

    if not allowed:
        return _too_many(max_limit, reset_seconds)

    # Only requests the tier allows are charged to the check-in bucket
    checkin_key = _checkin_key(request)
    if checkin_key is not None:
        checkin_ok, checkin_limit, _, checkin_reset = check_rate_limit(checkin_key, CHECKIN_LIMIT)
        if not checkin_ok:
            logger.info("Rate limiter: check-in refused for %s", checkin_key)
            return _too_many(checkin_limit, checkin_reset)

    response = await call_next(request)

    response.headers["X-RateLimit-Limit"] = str(max_limit)
    response.headers["X-RateLimit-Remaining"] = str(remaining)
    response.headers["X-RateLimit-Reset"] = str(reset_seconds)

    return response


def reset_rate_limits() -> None:
    """Clear all rate limit state."""
    with _lock:
        _store.clear()
    logger.info("Rate limiter: all limits reset")
