"""
Route day exports: calendar file (.ics) and turn-by-turn navigation link.
Both read a finished timeline and never change it.
"""

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Collection, Optional, Sequence
from urllib.parse import quote, urlencode

from ...config import CALENDAR_PRODID, CALENDAR_UID_DOMAIN, MAPS_DIRECTIONS_URL
from .errors import EmptyRouteError
from .types import (
    ArriveHomeItem,
    HomeBase,
    LeaveHomeItem,
    OperationalTimelineItem,
    TravelItem,
    VisitItem,
    Waypoint,
)

logger = logging.getLogger(__name__)

ARRIVE_HOME_EVENT_MINUTES = 5

_UID_NAMESPACE = uuid.UUID("6f1b8a52-4c1e-4d8e-9a57-3b0f3c1d2e71")


def format_ics_date(value: datetime) -> str:
    """Local (floating) time as YYYYMMDDTHHMMSS"""
    return value.strftime("%Y%m%dT%H%M%S")


def escape_ics_text(value: str) -> str:
    """Escape a TEXT value: backslash, semicolon, comma and newlines"""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def _event_end(item) -> datetime:
    if item.end is not None:
        return item.end
    if isinstance(item, TravelItem):
        return item.start + timedelta(minutes=item.duration_minutes)
    if isinstance(item, ArriveHomeItem):
        return item.start + timedelta(minutes=ARRIVE_HOME_EVENT_MINUTES)
    return item.start


def _summary(item) -> str:
    if isinstance(item, VisitItem):
        return f"{item.waypoint.name} Visit"
    if isinstance(item, TravelItem):
        return f"Travel to {item.destination_label}"
    if isinstance(item, LeaveHomeItem):
        return "Leave Home"
    if isinstance(item, ArriveHomeItem):
        return "Arrive Home"
    return item.label


def _location(item) -> str:
    if isinstance(item, VisitItem):
        waypoint = item.waypoint
        parts = [part for part in (waypoint.address, waypoint.postcode) if part]
        return ", ".join(parts) if parts else waypoint.name
    if isinstance(item, TravelItem):
        return item.destination_label
    if isinstance(item, OperationalTimelineItem):
        return item.item.location or ""
    return item.address


def _description(item, summary: str, location: str) -> str:
    lines = [summary]
    if isinstance(item, TravelItem):
        lines.append(f"Distance: {item.distance_miles:.1f} miles")
        lines.append(f"Duration: {item.duration_minutes} minutes")
    if isinstance(item, VisitItem) and item.end is not None:
        lines.append(f"Visit duration: {item.duration_minutes} minutes")
    if location and not isinstance(item, TravelItem):
        lines.append(f"Location: {location}")
    return "\n".join(lines)


def _uid(owner_name: str, planned_date: date, index: int, item) -> str:
    seed = f"{owner_name}|{planned_date.isoformat()}|{index}|{item.kind.value}|{item.start.isoformat()}"
    return f"route-{planned_date.strftime('%Y%m%d')}-{index}-{uuid.uuid5(_UID_NAMESPACE, seed).hex}@{CALENDAR_UID_DOMAIN}"


def to_calendar_file(items: Sequence, owner_name: str, planned_date: date) -> str:
    """
    Serialize a timeline as an iCalendar document, one VEVENT per item.

    Lines are CRLF separated. Items without an end are zero-length events, except
    travel (start + duration) and arrive home (a short 5 minute event).
    """
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{CALENDAR_PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{escape_ics_text(f'Route - {owner_name} - {planned_date.isoformat()}')}",
    ]

    for index, item in enumerate(items):
        summary = _summary(item)
        location = _location(item)
        lines.extend(
            [
                "BEGIN:VEVENT",
                f"UID:{_uid(owner_name, planned_date, index, item)}",
                f"DTSTAMP:{stamp}",
                f"DTSTART:{format_ics_date(item.start)}",
                f"DTEND:{format_ics_date(_event_end(item))}",
                f"SUMMARY:{escape_ics_text(summary)}",
                f"DESCRIPTION:{escape_ics_text(_description(item, summary, location))}",
                f"LOCATION:{escape_ics_text(location)}",
                "STATUS:CONFIRMED",
                "SEQUENCE:0",
                "END:VEVENT",
            ]
        )

    lines.append("END:VCALENDAR")
    logger.info(f"📅 Calendar export for {owner_name} on {planned_date}: {len(items)} event(s)")
    return "\r\n".join(lines) + "\r\n"


def _coords(latitude: float, longitude: float) -> str:
    return f"{latitude},{longitude}"


def to_navigation_link(
    waypoints: Sequence[Waypoint],
    home: Optional[HomeBase] = None,
    completed_ids: Collection[str] = (),
) -> str:
    """
    Directions deep link through the stores still to visit, in visit order.

    The last remaining store is the destination, the rest are waypoints, and the
    home base (when known) is the origin.

    Raises:
        EmptyRouteError: no incomplete store has coordinates
    """
    completed = set(completed_ids)
    remaining = [w for w in waypoints if w.has_coordinates and w.id not in completed]
    if not remaining:
        raise EmptyRouteError("No remaining route stops with coordinates")

    destination = remaining[-1]
    params = {"api": "1"}
    if home is not None:
        params["origin"] = _coords(home.latitude, home.longitude)
    params["destination"] = _coords(destination.latitude, destination.longitude)
    if len(remaining) > 1:
        params["waypoints"] = "|".join(_coords(w.latitude, w.longitude) for w in remaining[:-1])
    params["travelmode"] = "driving"

    return f"{MAPS_DIRECTIONS_URL}?{urlencode(params, safe=',|', quote_via=quote)}"
