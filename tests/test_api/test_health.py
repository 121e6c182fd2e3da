"""Tests for the health endpoint."""

from __future__ import annotations

from .conftest import SAMPLE_HOSPITALS


class TestHealthEndpoint:
    """GET /api/health — always public, no auth required."""

    def test_degraded_in_memory_mode(self, client):
        resp = client.get("/api/health")
        # Memory fallback is reported as degraded / 503
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["mode"] == "memory"
        assert data["record_count"] == len(SAMPLE_HOSPITALS)
        assert data["version"] == "0.1.0"
        assert data["database_connected"] is False

    def test_contains_uptime(self, client):
        data = client.get("/api/health").json()
        assert isinstance(data["uptime_seconds"], int)
        assert data["uptime_seconds"] >= 0
        assert data["started_at"] == "2026-03-01T00:00:00+00:00"

    def test_contains_checks_block(self, client):
        data = client.get("/api/health").json()
        assert data["checks"]["database"]["status"] == "down"
        assert data["checks"]["database"]["latency_ms"] is None

