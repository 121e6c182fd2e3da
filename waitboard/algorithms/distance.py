#!/usr/bin/env python3
"""
Hospital Wait Board — Great-Circle Distance

Distance between a visitor and a hospital using the spherical law of
cosines on a 6371 km sphere.  Raw coordinates coming out of the store are
normalised through ``coordinates_from`` so that missing or malformed
values simply mean "no location" for the filter pipeline.

No external geo-libraries required — pure math with stdlib.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinates:
    """A WGS84 coordinate pair in degrees."""
    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        """Finite and within the WGS84 latitude/longitude ranges."""
        return (
            math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
            and -90.0 <= self.latitude <= 90.0
            and -180.0 <= self.longitude <= 180.0
        )


def coordinates_from(lat: Any, lon: Any) -> Coordinates | None:
    """
    Build Coordinates from raw row values.

    Returns None when either side is missing, not numeric, non-finite or
    out of range.  Callers treat None as "hospital has no location".
    """
    if lat is None or lon is None:
        return None
    try:
        coords = Coordinates(latitude=float(lat), longitude=float(lon))
    except (TypeError, ValueError):
        return None
    return coords if coords.is_valid() else None


# ---------------------------------------------------------------------------
# Core distance calculation
# ---------------------------------------------------------------------------


def compute_distance_km(a: Coordinates, b: Coordinates) -> float:
    """
    Great-circle distance in kilometres between two points.

    d = R * acos(sin(lat1)·sin(lat2) + cos(lat1)·cos(lat2)·cos(lon2 - lon1))

    The acos argument is clamped to [-1, 1]: for identical points rounding
    can push it just above 1.0, which would otherwise produce NaN.

    A point that is not finite or is out of range has no location: the
    result is ``math.inf``, which lies outside every radius.
    """
    if not a.is_valid() or not b.is_valid():
        return math.inf
    if a == b:
        return 0.0

    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlon = math.radians(b.longitude) - math.radians(a.longitude)

    cos_angle = (
        math.sin(lat1) * math.sin(lat2)
        + math.cos(lat1) * math.cos(lat2) * math.cos(dlon)
    )
    cos_angle = max(-1.0, min(1.0, cos_angle))

    return max(0.0, EARTH_RADIUS_KM * math.acos(cos_angle))
