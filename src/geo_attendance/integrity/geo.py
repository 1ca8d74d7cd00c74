"""Great-circle helpers used by the integrity checks."""

from __future__ import annotations

import math

from ..core.constants import EARTH_RADIUS_METERS


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two latitude/longitude points (degrees)."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def is_within_radius(lat: float, lon: float, center_lat: float, center_lon: float, radius_m: float) -> bool:
    return haversine_distance(lat, lon, center_lat, center_lon) <= radius_m
