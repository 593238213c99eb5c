"""
Distance and drive-time estimates between stores.

Travel time is a planning policy, not a routing lookup: straight-line distance at an
assumed average urban speed plus a fixed buffer for parking and walking in.
"""

import math

from ...config import ROUTE_AVERAGE_SPEED_MPM

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371

# Moves this short are treated as the same site (no drive time)
SAME_SITE_MILES = 0.05
SHORT_HOP_MILES = 1.0
SHORT_HOP_BUFFER_MINUTES = 4
STANDARD_BUFFER_MINUTES = 10


def distance_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in miles (haversine on a mean Earth radius)"""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c * KM_TO_MILES


def estimate_travel_minutes(miles: float, miles_per_minute: float = ROUTE_AVERAGE_SPEED_MPM) -> int:
    """
    Estimate drive time in whole minutes.

    Returns 0 for same-site moves, otherwise distance at the average speed plus a
    4 minute buffer (under a mile) or 10 minute buffer, rounded, never below 1.
    """
    if miles <= SAME_SITE_MILES:
        return 0

    base_minutes = miles / miles_per_minute
    buffer_minutes = SHORT_HOP_BUFFER_MINUTES if miles < SHORT_HOP_MILES else STANDARD_BUFFER_MINUTES
    # Round half up; round() would use banker's rounding on .5
    return max(1, int(math.floor(base_minutes + buffer_minutes + 0.5)))
