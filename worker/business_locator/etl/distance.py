"""
Distance Calculations

Haversine formula for great-circle distance between two lat/lng points,
plus the short strings shown next to a business in search results.
"""

import math

from business_locator.models import Coordinates

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate great-circle distance between two points in kilometers.
    Uses the Haversine formula.
    """
    lat1_r = math.radians(lat1)
    lat2_r = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinates, b: Coordinates) -> float:
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_distance(km: float) -> str:
    """
    850 m under one kilometer, 3.2 km under ten, whole kilometers above.
    """
    if km < 1:
        return f"{_round_half_up(km * 1000)} m"
    if km < 10:
        return f"{math.floor(km * 10 + 0.5) / 10:.1f} km"
    return f"{_round_half_up(km)} km"
