"""Geospatial utilities (no external dependencies)."""

from __future__ import annotations

import math

from track_clean.models import RawFix, TrackPoint

EARTH_RADIUS_M = 6_371_000.0  # mean Earth radius in meters


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute Haversine distance in meters between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Great-circle distance in meters.
    """

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def distance_between_m(a: RawFix | TrackPoint, b: RawFix | TrackPoint) -> float:
    """Great-circle distance in meters between two fixes or points."""

    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def speed_kmh(distance_m: float, dt_s: float) -> float | None:
    """Implied speed in km/h, None when dt_s is not positive."""

    if dt_s <= 0:
        return None
    return distance_m / dt_s * 3.6
