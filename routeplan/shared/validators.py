"""Shared validation utilities"""

import math
import re
from datetime import time
from typing import Optional, Union

_HHMM_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def parse_clock_time(value: Union[str, time]) -> time:
    """
    Parse a wall-clock time.

    Args:
        value: "HH:MM" or "HH:MM:SS" string, or a time instance

    Returns:
        time with seconds and microseconds preserved only when given

    Raises:
        ValueError: If the value is not a valid 24-hour clock time
    """
    if isinstance(value, time):
        return value

    if not isinstance(value, str):
        raise ValueError("Time must be in HH:MM format")

    match = _HHMM_PATTERN.match(value.strip())
    if not match:
        raise ValueError("Time must be in HH:MM format")

    hours, minutes, seconds = match.groups()
    return time(int(hours), int(minutes), int(seconds or 0))


def format_clock_time(value: time) -> str:
    """Format a time as HH:MM"""
    return value.strftime("%H:%M")


def is_valid_coordinate(latitude: Optional[float], longitude: Optional[float]) -> bool:
    """
    Check a latitude/longitude pair is present, finite and in range.

    Zero is a valid coordinate; only missing or non-finite values are rejected.
    """
    if latitude is None or longitude is None:
        return False

    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        return False

    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False

    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0
