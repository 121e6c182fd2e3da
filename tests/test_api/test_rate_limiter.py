"""Tests for the sliding-window rate limiter and the check-in bucket."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from starlette.testclient import TestClient

from waitboard.api import rate_limiter

from .conftest import ALPHA_ID, SAMPLE_HOSPITALS


@pytest.fixture(autouse=True)
def _clean_limits():
    rate_limiter.reset_rate_limits()
    yield
    rate_limiter.reset_rate_limits()


@pytest.fixture()
def limited_client():
    """App with the real limiter (the shared app fixture disables it)."""
    from waitboard.api import auth
    from waitboard.api.app import app
    from waitboard.api.store import MemoryStore

    with patch("waitboard.api.db.is_available", return_value=False):
        auth.clear_cache()
        app.state.store = MemoryStore([dict(h) for h in SAMPLE_HOSPITALS])
        app.state.server_started_at = datetime(2026, 3, 1, tzinfo=timezone.utc)
        yield TestClient(app, raise_server_exceptions=False)


class TestCheckRateLimit:
    def test_allows_up_to_limit(self):
        for i in range(3):
            allowed, limit, remaining, _ = rate_limiter.check_rate_limit("ip:test", 3)
            assert allowed
            assert limit == 3
            assert remaining == 2 - i

    def test_refuses_over_limit(self):
        for _ in range(3):
            rate_limiter.check_rate_limit("ip:test", 3)
        allowed, _, remaining, reset = rate_limiter.check_rate_limit("ip:test", 3)
        assert not allowed
        assert remaining == 0
        assert 0 <= reset <= rate_limiter.WINDOW_SECONDS

    def test_keys_are_independent(self):
        for _ in range(3):
            rate_limiter.check_rate_limit("ip:a", 3)
        assert rate_limiter.check_rate_limit("ip:b", 3)[0]

    def test_reset_clears_state(self):
        for _ in range(3):
            rate_limiter.check_rate_limit("ip:test", 3)
        rate_limiter.reset_rate_limits()
        assert rate_limiter.check_rate_limit("ip:test", 3)[0]


class TestMiddleware:
    def test_headers_on_response(self, limited_client):
        resp = limited_client.get("/api/hospitals")
        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Limit"] == str(rate_limiter.TIER_LIMITS["anonymous"])
        assert "X-RateLimit-Remaining" in resp.headers

    def test_health_not_limited(self, limited_client):
        resp = limited_client.get("/api/health")
        assert "X-RateLimit-Limit" not in resp.headers

    def test_checkin_bucket(self, limited_client):
        url = f"/api/hospitals/{ALPHA_ID}/checkin"
        for _ in range(rate_limiter.CHECKIN_LIMIT):
            assert limited_client.post(url).status_code == 200

        resp = limited_client.post(url)
        assert resp.status_code == 429
        assert "Retry-After" in resp.headers

        count = limited_client.get(f"/api/hospitals/{ALPHA_ID}/waiting-count").json()["data"]["waiting_count"]
        assert count == 2 + rate_limiter.CHECKIN_LIMIT

    def test_waiting_room_on_one_ip(self, limited_client):
        """Several patients behind one reception IP can all check in."""
        url = f"/api/hospitals/{ALPHA_ID}/checkin"
        for _ in range(10):
            assert limited_client.post(url).status_code == 200

    def test_tier_refusal_does_not_charge_checkin_bucket(self, limited_client):
        url = f"/api/hospitals/{ALPHA_ID}/checkin"
        with patch.dict(rate_limiter.TIER_LIMITS, {"anonymous": 1}):
            assert limited_client.post(url).status_code == 200
            assert limited_client.post(url).status_code == 429

        checkin_hits = [
            len(stamps) for key, stamps in rate_limiter._store.items() if key.startswith("checkin:")
        ]
        assert checkin_hits == [1]

    def test_checkin_bucket_is_per_hospital(self, limited_client):
        for _ in range(rate_limiter.CHECKIN_LIMIT + 1):
            limited_client.post(f"/api/hospitals/{ALPHA_ID}/checkin")
        other = SAMPLE_HOSPITALS[1]["id"]
        assert limited_client.post(f"/api/hospitals/{other}/checkin").status_code == 200
