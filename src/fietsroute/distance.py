"""Distance calculations and nearest-waypoint lookup.

Haversine is ~10x faster than geopy.geodesic and accurate enough for mapping a
pointer to a waypoint, so the per-event lookup uses it. Route lengths for
summaries use geopy's geodesic.
"""

from __future__ import annotations
import math
from typing import TYPE_CHECKING, Sequence

from geopy.distance import geodesic

if TYPE_CHECKING:
    from fietsroute.models import Waypoint

# Earth's mean radius in meters
EARTH_RADIUS_M = 6_371_000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points using Haversine formula.

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    # Rounding can push a a hair past 1 for antipodal points
    c = 2 * math.asin(min(1.0, math.sqrt(a)))

    return EARTH_RADIUS_M * c


def nearest_waypoint(point: tuple[float, float], waypoints: Sequence[Waypoint]) -> int:
    """Return the index of the waypoint closest to ``point``.

    Args:
        point: (lat, lng) in degrees
        waypoints: Non-empty waypoint list in traversal order

    Returns:
        Index of the nearest waypoint. Ties go to the lowest index.

    Raises:
        ValueError: If waypoints is empty.
    """
    if not waypoints:
        raise ValueError("Cannot locate a point on an empty route")
    if len(waypoints) == 1:
        return 0

    lat, lng = point
    best_index = 0
    best_dist = math.inf
    for i, wp in enumerate(waypoints):
        d = haversine_distance(lat, lng, wp.lat, wp.lng)
        if d < best_dist:
            best_dist = d
            best_index = i
    return best_index


def route_length(waypoints: Sequence[Waypoint]) -> float:
    """Total length of the route in meters."""
    total = 0.0
    for i in range(1, len(waypoints)):
        a, b = waypoints[i - 1], waypoints[i]
        total += geodesic((a.lat, a.lng), (b.lat, b.lng)).meters
    return total
