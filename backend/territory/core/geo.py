import math

from territory.core.constants import EARTH_RADIUS_M


def haversine_m(lat1, lon1, lat2, lon2):
    """Return great-circle distance in meters between two WGS84 points.

    Uses the standard haversine formula; sufficient for per-point distances
    over a typical GPS activity track.
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def point_distance_m(p1, p2) -> float:
    """Haversine distance between two objects exposing `lat` / `lng`."""
    return haversine_m(p1.lat, p1.lng, p2.lat, p2.lng)


def sort_by_time(points):
    """Return a new list ordered by timestamp (stable for duplicate times)."""
    return sorted(points, key=lambda p: p.time)
