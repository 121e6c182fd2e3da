#!/usr/bin/env python3
"""
Hospital Wait Board — Hospital Search, Location Filter and Ordering

Turns the snapshot of hospitals fetched from the store into the list a
visitor sees:

    1. text search over name and address (case-insensitive substring)
    2. location mode — all, exact postal code, or within a radius
    3. ordering — nearest first in nearby mode, otherwise by name

Hospital views are plain dicts with the keys produced by the store
(``name``, ``address``, ``postal_code``, ``latitude``, ``longitude``, ...).
Nothing here mutates its inputs.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Any, Union

from .distance import Coordinates, compute_distance_km, coordinates_from
from .rules import get_rules

HospitalView = dict[str, Any]


# ---------------------------------------------------------------------------
# Location modes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AllMode:
    """No location filtering."""


@dataclass(frozen=True)
class PostalCodeMode:
    """Keep hospitals whose postal code equals ``code`` exactly."""
    code: str


@dataclass(frozen=True)
class NearbyMode:
    """Keep hospitals within ``radius_km`` of ``origin``, nearest first."""
    origin: Coordinates
    radius_km: float = 50.0


LocationMode = Union[AllMode, PostalCodeMode, NearbyMode]


class InvalidLocation(ValueError):
    """Raised by mode_from_params when the visitor's own coordinates are unusable."""


def mode_from_params(
    lat: float | None = None,
    lon: float | None = None,
    postal_code: str | None = None,
    radius_km: float | None = None,
) -> LocationMode:
    """
    Build a location mode from request parameters.

    lat + lon wins over postal_code.  Supplying only one of lat/lon, or
    coordinates out of range, raises InvalidLocation.
    """
    if lat is not None or lon is not None:
        origin = coordinates_from(lat, lon)
        if origin is None:
            raise InvalidLocation("Both lat and lon are required and must be valid WGS84 degrees")
        radius = radius_km if radius_km is not None else get_rules().nearby_radius_km
        return NearbyMode(origin=origin, radius_km=radius)
    if postal_code:
        return PostalCodeMode(code=postal_code)
    return AllMode()


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


def matches_query(hospital: HospitalView, query: str) -> bool:
    """True when the lower-cased query occurs in the name or the address."""
    if not query:
        return True
    needle = query.lower()
    return (
        needle in (hospital.get("name") or "").lower()
        or needle in (hospital.get("address") or "").lower()
    )


def name_sort_key(name: str | None) -> tuple[str, str]:
    """
    Collation key approximating a locale-aware comparison.

    Accents are stripped and case is folded so "Ábaco" sorts next to
    "abaco"; the raw name breaks the remaining ties deterministically.
    """
    raw = name or ""
    decomposed = unicodedata.normalize("NFKD", raw)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), raw)


def hospital_distance_km(hospital: HospitalView, origin: Coordinates) -> float | None:
    """Distance from origin, or None when the hospital has no usable coordinates."""
    coords = coordinates_from(hospital.get("latitude"), hospital.get("longitude"))
    if coords is None:
        return None
    return compute_distance_km(origin, coords)


def filter_and_sort(
    hospitals: list[HospitalView],
    mode: LocationMode | None = None,
    query: str = "",
) -> list[HospitalView]:
    """
    Apply search, location mode and ordering to a hospital snapshot.

    Under NearbyMode each returned view is a copy carrying ``distance_km``.
    Sorts are stable, so equal keys keep their input order.
    """
    mode = mode or AllMode()
    candidates = [h for h in hospitals if matches_query(h, query or "")]

    if isinstance(mode, NearbyMode):
        if not mode.origin.is_valid():
            return []
        nearby: list[tuple[float, HospitalView]] = []
        for h in candidates:
            dist = hospital_distance_km(h, mode.origin)
            if dist is None or not dist <= mode.radius_km:
                continue
            nearby.append((dist, h))
        nearby.sort(key=lambda pair: pair[0])
        return [{**h, "distance_km": round(dist, 3)} for dist, h in nearby]

    if isinstance(mode, PostalCodeMode):
        candidates = [
            h for h in candidates
            if h.get("postal_code") is not None and h.get("postal_code") == mode.code
        ]

    return sorted(candidates, key=lambda h: name_sort_key(h.get("name")))
