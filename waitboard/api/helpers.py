"""Shared helpers and constants for the Hospital Wait Board API."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.parse import quote

from ..algorithms import wait_level

# ---------------------------------------------------------------------------
# Path / URL constants
# ---------------------------------------------------------------------------

ROOT = Path(__file__).resolve().parent.parent.parent

PUBLIC_BASE_URL = os.environ.get("WAITBOARD_PUBLIC_BASE_URL", "http://localhost:8080").rstrip("/")

SEED_FILE = os.environ.get("WAITBOARD_SEED_FILE", str(ROOT / "sample-data" / "hospitals.json"))

MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="

HOSPITAL_FIELDS = (
    "name",
    "address",
    "postal_code",
    "latitude",
    "longitude",
    "contact_phone",
    "contact_email",
)

# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def iso(dt) -> str | None:
    """Convert a datetime to ISO string."""
    if dt is None:
        return None
    if isinstance(dt, datetime):
        return dt.isoformat()
    return str(dt)


def checkin_url(hospital_id: str) -> str:
    """Public self-check-in link encoded in the reception QR code."""
    return f"{PUBLIC_BASE_URL}/scan/{hospital_id}"


def maps_url(hospital: dict[str, Any]) -> str | None:
    """Google Maps search link — coordinates when known, otherwise the address."""
    lat = hospital.get("latitude")
    lon = hospital.get("longitude")
    if lat is not None and lon is not None:
        return f"{MAPS_SEARCH_URL}{lat},{lon}"
    if hospital.get("address"):
        return MAPS_SEARCH_URL + quote(hospital["address"], safe="")
    return None


def with_wait_level(view: dict[str, Any]) -> dict[str, Any]:
    """Copy of a hospital view with its wait badge level attached."""
    return {**view, "wait_level": wait_level(view.get("waiting_count") or 0)}


# ---------------------------------------------------------------------------
# Database row converters
# ---------------------------------------------------------------------------


def db_row_to_hospital(row: dict) -> dict:
    """Convert a hospitals ⟕ waiting_lists row (RealDictRow) to the API's hospital view."""
    lat = row.get("latitude")
    lon = row.get("longitude")
    return {
        "id": str(row["id"]),
        "name": row["name"],
        "address": row["address"],
        "postal_code": row.get("postal_code"),
        "latitude": float(lat) if lat is not None else None,
        "longitude": float(lon) if lon is not None else None,
        "contact_phone": row.get("contact_phone"),
        "contact_email": row.get("contact_email"),
        "owner_id": str(row["owner_id"]) if row.get("owner_id") else None,
        "waiting_count": row.get("waiting_count") or 0,
        "last_updated": iso(row.get("last_updated")),
        "created_at": iso(row.get("created_at")),
        "updated_at": iso(row.get("updated_at")),
    }
