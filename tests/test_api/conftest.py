"""Shared fixtures for the API test suite.

All tests run against a MemoryStore (no database required): the pool
functions are patched away and the store is put on app.state directly,
the way the startup hook would in memory-fallback mode.

Owner clients sign up and sign in through the real endpoints and then
carry the bearer token on every request.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from starlette.testclient import TestClient

# ---------------------------------------------------------------------------
# Sample hospital records (same shape as sample-data/hospitals.json)
# ---------------------------------------------------------------------------

SAMPLE_HOSPITALS: list[dict] = [
    {
        "id": "bbbbbbbb-0001-4000-8000-000000000001",
        "name": "Alpha General Hospital",
        "address": "1 Station Road",
        "postal_code": "100",
        "latitude": 0.0,
        "longitude": 0.0,
        "contact_phone": "+91 80 1111 1111",
        "contact_email": "desk@alpha.example",
        "waiting_count": 2,
    },
    {
        "id": "bbbbbbbb-0001-4000-8000-000000000002",
        "name": "Beta Clinic",
        "address": "22 Market Street",
        "postal_code": "200",
        "latitude": 0.0,
        "longitude": 5.0,
        "contact_phone": None,
        "contact_email": None,
        "waiting_count": 0,
    },
    {
        "id": "bbbbbbbb-0001-4000-8000-000000000003",
        "name": "Gamma Health Centre",
        "address": "9 Harbour View",
        "postal_code": "100",
        "latitude": 0.2,
        "longitude": 0.1,
        "contact_phone": None,
        "contact_email": None,
        "waiting_count": 11,
    },
    {
        "id": "bbbbbbbb-0001-4000-8000-000000000004",
        "name": "Delta Maternity",
        "address": "3 Hill Road",
        "postal_code": None,
        "latitude": None,
        "longitude": None,
        "contact_phone": None,
        "contact_email": None,
        "waiting_count": 6,
    },
]

ALPHA_ID = SAMPLE_HOSPITALS[0]["id"]
DELTA_ID = SAMPLE_HOSPITALS[3]["id"]

NEW_HOSPITAL = {
    "name": "Lakeside Hospital",
    "address": "4 Lake Road",
    "postal_code": "300",
    "latitude": 0.05,
    "longitude": 0.05,
    "contact_phone": "+91 80 2222 2222",
}

# ---------------------------------------------------------------------------
# App fixture: MemoryStore with the DB pool and rate limiting patched away
# ---------------------------------------------------------------------------


def _noop_rate_limit(client_key, limit):
    """Always allow — disables rate limiting in tests."""
    return True, limit, limit - 1, 60


@pytest.fixture()
def store():
    from waitboard.api.store import MemoryStore

    return MemoryStore([dict(h) for h in SAMPLE_HOSPITALS])


@pytest.fixture()
def app(store):
    """FastAPI app running in memory mode (no DB)."""
    with (
        patch("waitboard.api.db.is_available", return_value=False),
        patch("waitboard.api.db.init_pool", return_value=False),
        patch("waitboard.api.db.close_pool"),
        patch("waitboard.api.rate_limiter.check_rate_limit", side_effect=_noop_rate_limit),
    ):
        from waitboard.api import auth
        from waitboard.api.app import app as _app

        auth.clear_cache()
        _app.state.store = store
        # Normally set in the startup event
        _app.state.server_started_at = datetime(2026, 3, 1, 0, 0, 0, tzinfo=timezone.utc)

        yield _app

        auth.clear_cache()


# ---------------------------------------------------------------------------
# Client fixtures: anonymous and signed-in owners
# ---------------------------------------------------------------------------


def _signed_in_client(app, email: str, password: str = "s3cret-pass") -> TestClient:
    anon = TestClient(app, raise_server_exceptions=False)
    resp = anon.post("/api/auth/signup", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    resp = anon.post("/api/auth/signin", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    token = resp.json()["data"]["token"]
    return TestClient(
        app,
        raise_server_exceptions=False,
        headers={"Authorization": f"Bearer {token}"},
    )


@pytest.fixture()
def client(app):
    """Anonymous TestClient — no Authorization header."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def owner_client(app):
    """Signed-in owner without a hospital yet."""
    return _signed_in_client(app, "owner@example.com")


@pytest.fixture()
def other_client(app):
    """A second signed-in owner."""
    return _signed_in_client(app, "other@example.com")


@pytest.fixture()
def owned_hospital(owner_client):
    """Hospital registered by owner_client."""
    resp = owner_client.post("/api/hospitals", json=NEW_HOSPITAL)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]
