"""
Timeline builder - turns an ordered store list into one consistent route day.

build_timeline() is the single source of truth for what a day looks like. It is a
pure fold over the ordered stores: the only state carried between stops is the end
of the previous visit. Edits never patch a previous result; they change the stored
overrides / operational items and call build_timeline() again.

Placement rules:
- the first visit always starts at the day start (09:00), whatever is stored for it
- later visits use their stored override, or a default slot starting on arrival
- a travel leg leaves when the previous visit ends, unless an operational item
  intersects the gap before the next visit; then it leaves once the last such item ends
- operational items are shown at their stored times and never moved
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Collection, Iterable, Optional, Sequence

from ...config import ROUTE_DAY_START, ROUTE_DEFAULT_VISIT_MINUTES
from ...shared.validators import parse_clock_time
from .geo import distance_miles, estimate_travel_minutes
from .types import (
    ArriveHomeItem,
    HomeBase,
    LeaveHomeItem,
    OperationalItem,
    OperationalTimelineItem,
    RouteSummary,
    TimelineBuild,
    TravelItem,
    VisitItem,
    VisitOverride,
    Waypoint,
)

logger = logging.getLogger(__name__)

HOME_LABEL = "Home"


def _at(planned_date: date, clock: time) -> datetime:
    return datetime.combine(planned_date, clock.replace(tzinfo=None))


def _operational_window(planned_date: date, item: OperationalItem) -> tuple[datetime, datetime]:
    start = _at(planned_date, item.start_time)
    return start, start + timedelta(minutes=item.duration_minutes)


def departure_time(
    ready: datetime,
    travel_minutes: int,
    blocks: Sequence[tuple[datetime, datetime]],
    fixed_arrival: Optional[datetime] = None,
) -> datetime:
    """
    Earliest time a leg can leave once the previous stop is done at `ready`.

    Any operational block intersecting the gap between `ready` and the next stop
    holds the departure until it ends. With a fixed arrival (the next visit has an
    override) the gap is [ready, fixed_arrival). Otherwise the next visit starts on
    arrival, so the gap grows as departure moves and blocks are re-checked until
    departure settles; a block starting exactly on arrival also counts.
    """
    departure = ready
    while True:
        if fixed_arrival is not None:
            horizon = fixed_arrival
            hits = [end for start, end in blocks if end > ready and start < horizon]
        else:
            horizon = departure + timedelta(minutes=travel_minutes)
            hits = [end for start, end in blocks if end > ready and start <= horizon]

        latest = max([departure, *hits])
        if latest == departure:
            return departure
        departure = latest


def _leg(
    origin: Optional[Waypoint],
    destination: Optional[Waypoint],
    home: Optional[HomeBase],
) -> tuple[float, int]:
    origin_lat, origin_lon = (
        (origin.latitude, origin.longitude) if origin else (home.latitude, home.longitude)
    )
    dest_lat, dest_lon = (
        (destination.latitude, destination.longitude)
        if destination
        else (home.latitude, home.longitude)
    )
    miles = distance_miles(origin_lat, origin_lon, dest_lat, dest_lon)
    return miles, estimate_travel_minutes(miles)


def _travel_item(
    origin: Optional[Waypoint],
    destination: Optional[Waypoint],
    start: datetime,
    miles: float,
    minutes: int,
) -> TravelItem:
    origin_label = origin.label if origin else HOME_LABEL
    destination_label = destination.label if destination else HOME_LABEL
    return TravelItem(
        start=start,
        end=start + timedelta(minutes=minutes),
        label=f"{origin_label} → {destination_label}",
        origin_id=origin.id if origin else None,
        destination_id=destination.id if destination else None,
        origin_label=origin_label,
        destination_label=destination_label,
        distance_miles=miles,
        duration_minutes=minutes,
    )


def _visit_item(
    waypoint: Waypoint, start: datetime, end: datetime, override: Optional[VisitOverride]
) -> VisitItem:
    return VisitItem(
        start=start,
        end=end,
        label=waypoint.name,
        waypoint=waypoint,
        override_id=override.id if override else None,
    )


def order_timeline(items: Iterable) -> list:
    """Sort by start time (stable), then put Leave home first"""
    ordered = sorted(items, key=lambda item: item.start)
    leave_home = [item for item in ordered if isinstance(item, LeaveHomeItem)]
    return leave_home + [item for item in ordered if not isinstance(item, LeaveHomeItem)]


def build_timeline(
    planned_date: date,
    waypoints: Sequence[Waypoint],
    home: Optional[HomeBase] = None,
    overrides: Iterable[VisitOverride] = (),
    operational_items: Iterable[OperationalItem] = (),
    day_start: Optional[time] = None,
    default_visit_minutes: int = ROUTE_DEFAULT_VISIT_MINUTES,
) -> TimelineBuild:
    """
    Build the full ordered timeline for one route day.

    Deterministic: the same inputs always give the same items in the same order.
    Stores without coordinates are left out and reported in excluded_waypoint_ids.
    """
    located = [w for w in waypoints if w.has_coordinates]
    excluded = [w.id for w in waypoints if not w.has_coordinates]
    if excluded:
        logger.warning(
            f"⚠️ {len(excluded)} store(s) missing coordinates on {planned_date}, excluded from route"
        )

    if not located:
        return TimelineBuild(items=[], excluded_waypoint_ids=excluded)

    overrides_by_store = {o.store_id: o for o in overrides}
    operational_items = list(operational_items)
    blocks = sorted(_operational_window(planned_date, op) for op in operational_items)
    default_visit = timedelta(minutes=default_visit_minutes)
    anchor = _at(planned_date, day_start or parse_clock_time(ROUTE_DAY_START))

    items = []
    first = located[0]

    if home is not None:
        miles, minutes = _leg(None, first, home)
        leave_at = anchor - timedelta(minutes=minutes)
        items.append(LeaveHomeItem(start=leave_at, label="Leave home", address=home.address))
        items.append(_travel_item(None, first, leave_at, miles, minutes))

    # First visit always takes the default slot at the day start; a stored
    # override is only referenced, never applied
    visit_end = anchor + default_visit
    items.append(_visit_item(first, anchor, visit_end, overrides_by_store.get(first.id)))

    for previous, waypoint in zip(located, located[1:]):
        miles, minutes = _leg(previous, waypoint, home)
        override = overrides_by_store.get(waypoint.id)

        if override is not None:
            visit_start = _at(planned_date, override.start_time)
            next_end = _at(planned_date, override.end_time)
            depart = departure_time(visit_end, minutes, blocks, fixed_arrival=visit_start)
        else:
            depart = departure_time(visit_end, minutes, blocks)
            visit_start = depart + timedelta(minutes=minutes)
            next_end = visit_start + default_visit

        items.append(_travel_item(previous, waypoint, depart, miles, minutes))
        items.append(_visit_item(waypoint, visit_start, next_end, override))
        visit_end = next_end

    if home is not None:
        last = located[-1]
        miles, minutes = _leg(last, None, home)
        depart = departure_time(visit_end, minutes, blocks)
        items.append(_travel_item(last, None, depart, miles, minutes))
        items.append(
            ArriveHomeItem(
                start=depart + timedelta(minutes=minutes),
                label="Arrive home",
                address=home.address,
            )
        )

    for op in sorted(operational_items, key=lambda op: (op.start_time, op.id)):
        start, end = _operational_window(planned_date, op)
        items.append(OperationalTimelineItem(start=start, end=end, label=op.title, item=op))

    return TimelineBuild(items=order_timeline(items), excluded_waypoint_ids=excluded)


def apply_completion(build: TimelineBuild, completed_store_ids: Collection[str]) -> TimelineBuild:
    """Set the completed flag on visits; times are untouched"""
    completed = set(completed_store_ids)
    items = [
        item.model_copy(update={"completed": item.waypoint.id in completed})
        if isinstance(item, VisitItem)
        else item
        for item in build.items
    ]
    return TimelineBuild(items=items, excluded_waypoint_ids=build.excluded_waypoint_ids)


def summarize_route(build: TimelineBuild, completed_store_ids: Collection[str] = ()) -> RouteSummary:
    legs = build.travel_legs()
    visits = build.visits()
    completed = set(completed_store_ids)

    route_window = "Not set"
    if build.items:
        first = build.items[0]
        last = build.items[-1]
        route_end = last.end or last.start
        route_window = f"{first.start:%H:%M} - {route_end:%H:%M}"

    next_pending = next((v.waypoint.id for v in visits if v.waypoint.id not in completed), None)

    return RouteSummary(
        total_distance_miles=round(sum(leg.distance_miles for leg in legs), 1),
        total_travel_minutes=sum(leg.duration_minutes for leg in legs),
        visit_count=len(visits),
        operational_count=sum(isinstance(item, OperationalTimelineItem) for item in build.items),
        route_window=route_window,
        missing_coordinates_count=build.excluded_count,
        next_pending_store_id=next_pending,
    )
