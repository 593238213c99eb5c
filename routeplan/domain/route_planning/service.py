"""Route planning service - Business logic for route days

Every edit writes to the database first and then rebuilds the whole day with
build_timeline(). A previously returned timeline is never patched, and a failed
write is reported without rebuilding.
"""

import logging
from datetime import date, time
from typing import Callable, Optional, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import ManagerProfile, Store
from ...models_route import RouteOperationalItem, RouteVisitTime
from ...shared.validators import format_clock_time, is_valid_coordinate, parse_clock_time
from .errors import InvalidScheduleInput, PersistenceError, RecordNotFound
from .export import to_calendar_file, to_navigation_link
from .repository import RoutePlanningRepository
from .timeline import apply_completion, build_timeline, summarize_route
from .types import HomeBase, OperationalItem, RouteDay, VisitOverride, Waypoint

logger = logging.getLogger(__name__)

T = TypeVar("T")

ClockValue = Union[str, time]


def store_to_waypoint(store: Store) -> Waypoint:
    address_parts = [part for part in (store.address_line_1, store.city) if part]
    return Waypoint(
        id=store.id,
        name=store.store_name,
        postcode=store.postcode,
        address=", ".join(address_parts) or None,
        latitude=store.latitude,
        longitude=store.longitude,
    )


def manager_home(manager: Optional[ManagerProfile]) -> Optional[HomeBase]:
    """Home base only exists when both coordinates are set"""
    if manager is None or not is_valid_coordinate(manager.home_latitude, manager.home_longitude):
        return None
    return HomeBase(
        latitude=manager.home_latitude,
        longitude=manager.home_longitude,
        address=manager.home_address or "Home",
    )


def _override(row: RouteVisitTime) -> VisitOverride:
    return VisitOverride(
        id=row.id, store_id=row.store_id, start_time=row.start_time, end_time=row.end_time
    )


def _operational(row: RouteOperationalItem) -> OperationalItem:
    return OperationalItem(
        id=row.id,
        title=row.title,
        location=row.location,
        start_time=row.start_time,
        duration_minutes=row.duration_minutes,
    )


def _clock(value: ClockValue, field: str) -> time:
    try:
        return parse_clock_time(value)
    except ValueError as e:
        raise InvalidScheduleInput(f"{field}: {e}") from e


def _title(value: Optional[str]) -> str:
    title = (value or "").strip()
    if not title:
        raise InvalidScheduleInput("Title is required")
    return title


def _duration(value: int) -> int:
    if value is None or int(value) < 1:
        raise InvalidScheduleInput("Duration must be at least 1 minute")
    return int(value)


class RoutePlanningService:
    """Service layer for route day business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RoutePlanningRepository()

    def _write(self, action: str, operation: Callable[..., T], *args, **kwargs) -> T:
        """Run a repository write; roll back and raise PersistenceError on failure"""
        try:
            return operation(self.db, *args, **kwargs)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to {action}: {e}")
            raise PersistenceError(f"Failed to {action}: {e}") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_day(self, manager_user_id: str, planned_date: date, region: Optional[str] = None) -> RouteDay:
        """Load the day's stores and stored edits, then build the timeline"""
        manager = self.repo.get_manager(self.db, manager_user_id)
        stores = self.repo.get_route_stores(self.db, manager_user_id, planned_date, region)
        overrides = self.repo.get_visit_overrides(self.db, manager_user_id, planned_date, region)
        items = self.repo.get_operational_items(self.db, manager_user_id, planned_date, region)
        completed = self.repo.get_completed_store_ids(self.db, manager_user_id, planned_date, region)

        waypoints = [store_to_waypoint(store) for store in stores]
        home = manager_home(manager)

        build = build_timeline(
            planned_date,
            waypoints,
            home=home,
            overrides=[_override(row) for row in overrides],
            operational_items=[_operational(row) for row in items],
        )
        build = apply_completion(build, completed)

        return RouteDay(
            manager_user_id=manager_user_id,
            manager_name=(manager.full_name or "") if manager else "",
            planned_date=planned_date,
            region=region,
            home=home,
            waypoints=waypoints,
            timeline=build,
            completed_store_ids=frozenset(completed),
            summary=summarize_route(build, completed),
        )

    def _get_route_store(
        self, manager_user_id: str, planned_date: date, region: Optional[str], store_id: str
    ) -> Store:
        stores = self.repo.get_route_stores(self.db, manager_user_id, planned_date, region)
        store = next((s for s in stores if s.id == store_id), None)
        if store is None:
            raise RecordNotFound("Store is not on this route")
        return store

    def _get_operational_item(
        self, item_id: str, manager_user_id: str, planned_date: date, region: Optional[str]
    ) -> RouteOperationalItem:
        item = self.repo.get_operational_item(self.db, item_id, manager_user_id, planned_date, region)
        if item is None:
            raise RecordNotFound("Operational item not found")
        return item

    # ------------------------------------------------------------------
    # Visit times
    # ------------------------------------------------------------------

    def set_visit_time(
        self,
        manager_user_id: str,
        planned_date: date,
        region: Optional[str],
        store_id: str,
        start_time: ClockValue,
        end_time: ClockValue,
    ) -> RouteDay:
        """Store a manual visit slot, then rebuild"""
        start = _clock(start_time, "start_time")
        end = _clock(end_time, "end_time")
        if end <= start:
            raise InvalidScheduleInput("End time must be after start time")

        self._get_route_store(manager_user_id, planned_date, region, store_id)

        logger.info(
            f"📥 Setting visit time for store {store_id} on {planned_date}: "
            f"{format_clock_time(start)}-{format_clock_time(end)}"
        )
        self._write(
            "save visit time",
            self.repo.save_visit_override,
            manager_user_id,
            planned_date,
            region,
            store_id,
            start,
            end,
        )
        return self.get_day(manager_user_id, planned_date, region)

    def clear_visit_time(
        self, manager_user_id: str, planned_date: date, region: Optional[str], store_id: str
    ) -> RouteDay:
        """Drop a manual visit slot so the visit goes back to its default placement"""
        override = self.repo.get_visit_override(
            self.db, manager_user_id, planned_date, region, store_id
        )
        if override is None:
            raise RecordNotFound("No visit time set for this store")

        self._write("clear visit time", self.repo.delete_visit_override, override)
        logger.info(f"✅ Cleared visit time for store {store_id} on {planned_date}")
        return self.get_day(manager_user_id, planned_date, region)

    # ------------------------------------------------------------------
    # Operational items
    # ------------------------------------------------------------------

    def create_operational_item(
        self,
        manager_user_id: str,
        planned_date: date,
        region: Optional[str],
        title: str,
        start_time: ClockValue,
        duration_minutes: int,
        location: Optional[str] = None,
    ) -> RouteDay:
        item_data = {
            "title": _title(title),
            "location": (location or "").strip() or None,
            "start_time": _clock(start_time, "start_time"),
            "duration_minutes": _duration(duration_minutes),
        }

        logger.info(f"📥 Adding operational item '{item_data['title']}' on {planned_date}")
        self._write(
            "save operational item",
            self.repo.create_operational_item,
            manager_user_id,
            planned_date,
            region,
            **item_data,
        )
        return self.get_day(manager_user_id, planned_date, region)

    def update_operational_item(
        self,
        manager_user_id: str,
        planned_date: date,
        region: Optional[str],
        item_id: str,
        title: Optional[str] = None,
        start_time: Optional[ClockValue] = None,
        duration_minutes: Optional[int] = None,
        location: Optional[str] = None,
    ) -> RouteDay:
        """Update only the provided fields, then rebuild"""
        updates = {}
        if title is not None:
            updates["title"] = _title(title)
        if start_time is not None:
            updates["start_time"] = _clock(start_time, "start_time")
        if duration_minutes is not None:
            updates["duration_minutes"] = _duration(duration_minutes)
        if location is not None:
            updates["location"] = location.strip() or None

        item = self._get_operational_item(item_id, manager_user_id, planned_date, region)
        self._write("update operational item", self.repo.update_operational_item, item, **updates)
        logger.info(f"✅ Updated operational item {item_id}")
        return self.get_day(manager_user_id, planned_date, region)

    def delete_operational_item(
        self, manager_user_id: str, planned_date: date, region: Optional[str], item_id: str
    ) -> RouteDay:
        item = self._get_operational_item(item_id, manager_user_id, planned_date, region)
        self._write("delete operational item", self.repo.delete_operational_item, item)
        logger.info(f"✅ Deleted operational item {item_id}")
        return self.get_day(manager_user_id, planned_date, region)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def mark_visit_complete(
        self, manager_user_id: str, planned_date: date, region: Optional[str], store_id: str
    ) -> RouteDay:
        """Set the completion marker; visit times are unaffected"""
        self._get_route_store(manager_user_id, planned_date, region, store_id)
        self._write(
            "mark visit complete",
            self.repo.mark_visit_complete,
            manager_user_id,
            planned_date,
            region,
            store_id,
        )
        logger.info(f"✅ Visit to store {store_id} marked complete on {planned_date}")
        return self.get_day(manager_user_id, planned_date, region)

    # ------------------------------------------------------------------
    # Whole day
    # ------------------------------------------------------------------

    def reset_day(self, manager_user_id: str, planned_date: date, region: Optional[str] = None) -> RouteDay:
        """Remove all visit times and operational items; completion markers stay"""
        overrides_deleted, items_deleted = self._write(
            "reset route day",
            self.repo.delete_day_plan,
            manager_user_id,
            planned_date,
            region,
        )
        logger.info(
            f"✅ Reset route day {planned_date} for {manager_user_id}: "
            f"{overrides_deleted} visit time(s), {items_deleted} operational item(s) removed"
        )
        return self.get_day(manager_user_id, planned_date, region)

    def update_route_sequence(self, store_ids: list[str]) -> int:
        """Persist the visit order chosen by the user"""
        if not store_ids:
            raise InvalidScheduleInput("No store IDs provided")
        if len(set(store_ids)) != len(store_ids):
            raise InvalidScheduleInput("Store IDs must not repeat")

        found = {store.id for store in self.repo.get_stores(self.db, store_ids)}
        missing = [store_id for store_id in store_ids if store_id not in found]
        if missing:
            raise RecordNotFound(f"Store(s) not found: {', '.join(missing)}")

        return self._write("update route sequence", self.repo.update_route_sequence, store_ids)

    def update_store_location(
        self, store_id: str, latitude: Optional[float], longitude: Optional[float]
    ) -> Store:
        """Set or clear a store's coordinates; a half-set pair clears both"""
        store = self.repo.get_store(self.db, store_id)
        if store is None:
            raise RecordNotFound("Store not found")

        if not is_valid_coordinate(latitude, longitude):
            if latitude is not None or longitude is not None:
                logger.warning(f"⚠️ Invalid coordinates for store {store_id}, clearing location")
            latitude = longitude = None

        return self._write(
            "update store location", self.repo.update_store_location, store, latitude, longitude
        )

    def update_manager_home(
        self,
        manager_user_id: str,
        home_address: Optional[str],
        latitude: Optional[float],
        longitude: Optional[float],
    ) -> ManagerProfile:
        manager = self.repo.get_manager(self.db, manager_user_id)
        if manager is None:
            raise RecordNotFound("Manager not found")

        if not is_valid_coordinate(latitude, longitude):
            latitude = longitude = None

        return self._write(
            "update home location",
            self.repo.update_manager_home,
            manager,
            (home_address or "").strip() or None,
            latitude,
            longitude,
        )

    def set_planned_date(
        self,
        store_id: str,
        planned_date: Optional[date],
        manager_user_id: Optional[str] = None,
    ) -> Store:
        """Plan one store for a day (optionally assigning its manager), or unplan it"""
        store = self.repo.get_store(self.db, store_id)
        if store is None:
            raise RecordNotFound("Store not found")

        store = self._write(
            "update planned date",
            self.repo.set_planned_date,
            store,
            planned_date,
            manager_user_id,
        )
        if planned_date is None:
            logger.info(f"✅ Store {store_id} taken off its route")
        else:
            logger.info(f"✅ Store {store_id} planned for {planned_date}")
        return store

    def reschedule_route(self, store_ids: list[str], new_date: date) -> int:
        if not store_ids:
            raise InvalidScheduleInput("No store IDs provided")
        updated = self._write("reschedule route", self.repo.reschedule_stores, store_ids, new_date)
        logger.info(f"✅ Rescheduled {updated} store(s) to {new_date}")
        return updated

    def complete_route(self, store_ids: list[str]) -> int:
        """Take finished stores off the route plan"""
        if not store_ids:
            raise InvalidScheduleInput("No store IDs provided")
        updated = self._write("complete route", self.repo.clear_route_plan, store_ids)
        logger.info(f"✅ Completed route for {updated} store(s)")
        return updated

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def export_calendar(
        self, manager_user_id: str, planned_date: date, region: Optional[str] = None
    ) -> tuple[str, str]:
        """Returns (filename, iCalendar text)"""
        day = self.get_day(manager_user_id, planned_date, region)
        owner = day.manager_name or "Route"
        content = to_calendar_file(day.timeline.items, owner, planned_date)
        return f"route-{planned_date.isoformat()}.ics", content

    def navigation_link(
        self, manager_user_id: str, planned_date: date, region: Optional[str] = None
    ) -> str:
        day = self.get_day(manager_user_id, planned_date, region)
        return to_navigation_link(day.waypoints, day.home, day.completed_store_ids)
