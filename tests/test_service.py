"""
Tests for route day edits: every edit is written first, then the day is rebuilt.
"""

from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from routeplan.domain.route_planning.errors import (
    EmptyRouteError,
    InvalidScheduleInput,
    PersistenceError,
    RecordNotFound,
)
from routeplan.domain.route_planning.types import (
    LeaveHomeItem,
    OperationalTimelineItem,
    VisitItem,
)
from routeplan.models import Store
from routeplan.models_route import RouteOperationalItem, RouteVisitTime

from .conftest import MANAGER_ID, PLANNED_DATE, REGION


def at(hours, minutes=0):
    return datetime.combine(PLANNED_DATE, time(hours, minutes))


def visit(day, store_id) -> VisitItem:
    return next(v for v in day.timeline.visits() if v.waypoint.id == store_id)


def leg_to(day, store_id):
    return next(leg for leg in day.timeline.travel_legs() if leg.destination_id == store_id)


def ops(day):
    return [item for item in day.timeline.items if isinstance(item, OperationalTimelineItem)]


class TestGetDay:
    def test_builds_day_from_stores(self, service, route_day):
        day = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)

        assert day.manager_name == "Sam Taylor"
        assert day.home is not None
        assert isinstance(day.timeline.items[0], LeaveHomeItem)
        assert [v.waypoint.id for v in day.timeline.visits()] == ["store-a", "store-b"]
        assert day.timeline.excluded_waypoint_ids == ["store-c"]
        assert day.summary.missing_coordinates_count == 1
        assert visit(day, "store-a").start == at(9)

    def test_visit_carries_store_address(self, service, route_day):
        day = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)
        assert visit(day, "store-a").waypoint.address == "10 Market Street, London"

    def test_other_region_is_a_different_day(self, service, route_day):
        day = service.get_day(MANAGER_ID, PLANNED_DATE, "South")
        assert day.timeline.is_empty

    def test_null_region_is_its_own_day(self, db, service):
        db.add(
            Store(
                id="solo",
                store_name="Solo",
                latitude=52.0,
                longitude=-1.0,
                manager_user_id=MANAGER_ID,
                planned_date=PLANNED_DATE,
            )
        )
        db.commit()

        day = service.get_day(MANAGER_ID, PLANNED_DATE, None)
        assert [v.waypoint.id for v in day.timeline.visits()] == ["solo"]
        # No manager profile, so no home legs
        assert day.home is None
        assert len(day.timeline.items) == 1

    def test_unknown_manager_gives_empty_day(self, service):
        day = service.get_day("nobody", PLANNED_DATE, REGION)
        assert day.timeline.is_empty
        assert day.summary.route_window == "Not set"


class TestVisitTimes:
    def test_set_visit_time_round_trip(self, service, route_day):
        before = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)
        day = service.set_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-b", "14:00", "15:00")

        visit_b = visit(day, "store-b")
        assert (visit_b.start, visit_b.end) == (at(14), at(15))
        assert visit_b.override_id is not None
        assert leg_to(day, "store-b").start == at(11)

        visit_a = visit(day, "store-a")
        assert (visit_a.start, visit_a.end) == (
            visit(before, "store-a").start,
            visit(before, "store-a").end,
        )

    def test_set_visit_time_upserts(self, db, service, route_day):
        service.set_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-b", "14:00", "15:00")
        service.set_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-b", "13:00", "13:30")

        rows = db.query(RouteVisitTime).all()
        assert len(rows) == 1
        assert (rows[0].start_time, rows[0].end_time) == (time(13, 0), time(13, 30))

    def test_first_store_stays_anchored(self, service, route_day):
        day = service.set_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-a", "12:00", "13:00")
        visit_a = visit(day, "store-a")
        assert (visit_a.start, visit_a.end) == (at(9), at(11))

    @pytest.mark.parametrize("start,end", [("15:00", "14:00"), ("14:00", "14:00")])
    def test_end_must_follow_start(self, db, service, route_day, start, end):
        with pytest.raises(InvalidScheduleInput):
            service.set_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-b", start, end)
        assert db.query(RouteVisitTime).count() == 0

    def test_bad_time_format(self, service, route_day):
        with pytest.raises(InvalidScheduleInput):
            service.set_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-b", "2pm", "15:00")

    def test_store_must_be_on_route(self, service, route_day):
        with pytest.raises(RecordNotFound):
            service.set_visit_time(MANAGER_ID, PLANNED_DATE, "South", "store-b", "14:00", "15:00")

    def test_clear_visit_time(self, service, route_day):
        default = visit(service.get_day(MANAGER_ID, PLANNED_DATE, REGION), "store-b")
        service.set_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-b", "14:00", "15:00")

        day = service.clear_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-b")
        visit_b = visit(day, "store-b")
        assert (visit_b.start, visit_b.end) == (default.start, default.end)
        assert visit_b.override_id is None

    def test_clear_missing_visit_time(self, service, route_day):
        with pytest.raises(RecordNotFound):
            service.clear_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-b")


class TestOperationalItems:
    def test_create_item_pushes_following_travel(self, service, route_day):
        day = service.create_operational_item(
            MANAGER_ID, PLANNED_DATE, REGION, title="Team call", start_time="11:00", duration_minutes=20
        )

        (item,) = ops(day)
        assert (item.start, item.end) == (at(11), at(11, 20))
        assert leg_to(day, "store-b").start == at(11, 20)

    def test_item_inside_visit_leaves_travel(self, service, route_day):
        day = service.create_operational_item(
            MANAGER_ID, PLANNED_DATE, REGION, title="Team call", start_time="10:00", duration_minutes=30
        )
        assert leg_to(day, "store-b").start == at(11)

    @pytest.mark.parametrize(
        "title,duration",
        [("", 20), ("   ", 20), ("Team call", 0), ("Team call", -5)],
    )
    def test_rejects_bad_input(self, db, service, route_day, title, duration):
        with pytest.raises(InvalidScheduleInput):
            service.create_operational_item(
                MANAGER_ID, PLANNED_DATE, REGION, title=title, start_time="11:00", duration_minutes=duration
            )
        assert db.query(RouteOperationalItem).count() == 0

    def test_update_item_rebuilds(self, service, route_day):
        day = service.create_operational_item(
            MANAGER_ID, PLANNED_DATE, REGION, title="Team call", start_time="11:00", duration_minutes=20
        )
        item_id = ops(day)[0].item.id

        day = service.update_operational_item(
            MANAGER_ID, PLANNED_DATE, REGION, item_id, start_time="10:00", title="Moved call"
        )
        (item,) = ops(day)
        assert item.label == "Moved call"
        assert item.start == at(10)
        assert item.item.duration_minutes == 20
        assert leg_to(day, "store-b").start == at(11)

    def test_update_rejects_zero_duration(self, service, route_day):
        day = service.create_operational_item(
            MANAGER_ID, PLANNED_DATE, REGION, title="Team call", start_time="11:00", duration_minutes=20
        )
        with pytest.raises(InvalidScheduleInput):
            service.update_operational_item(
                MANAGER_ID, PLANNED_DATE, REGION, ops(day)[0].item.id, duration_minutes=0
            )

    def test_delete_item_rebuilds(self, service, route_day):
        day = service.create_operational_item(
            MANAGER_ID, PLANNED_DATE, REGION, title="Team call", start_time="11:00", duration_minutes=20
        )
        day = service.delete_operational_item(MANAGER_ID, PLANNED_DATE, REGION, ops(day)[0].item.id)

        assert ops(day) == []
        assert leg_to(day, "store-b").start == at(11)

    def test_unknown_item(self, service, route_day):
        with pytest.raises(RecordNotFound):
            service.delete_operational_item(MANAGER_ID, PLANNED_DATE, REGION, "missing")


class TestCompletion:
    def test_mark_complete_keeps_times(self, service, route_day):
        before = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)
        day = service.mark_visit_complete(MANAGER_ID, PLANNED_DATE, REGION, "store-a")

        assert visit(day, "store-a").completed is True
        assert visit(day, "store-b").completed is False
        assert [i.start for i in day.timeline.items] == [i.start for i in before.timeline.items]
        assert day.summary.next_pending_store_id == "store-b"

    def test_mark_complete_is_idempotent(self, service, route_day):
        service.mark_visit_complete(MANAGER_ID, PLANNED_DATE, REGION, "store-a")
        day = service.mark_visit_complete(MANAGER_ID, PLANNED_DATE, REGION, "store-a")
        assert day.completed_store_ids == frozenset({"store-a"})


class TestResetDay:
    def test_reset_removes_edits_but_keeps_completion(self, db, service, route_day):
        service.set_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-b", "14:00", "15:00")
        service.create_operational_item(
            MANAGER_ID, PLANNED_DATE, REGION, title="Team call", start_time="11:00", duration_minutes=20
        )
        service.mark_visit_complete(MANAGER_ID, PLANNED_DATE, REGION, "store-a")

        day = service.reset_day(MANAGER_ID, PLANNED_DATE, REGION)

        assert db.query(RouteVisitTime).count() == 0
        assert db.query(RouteOperationalItem).count() == 0
        assert ops(day) == []
        assert visit(day, "store-b").override_id is None
        assert visit(day, "store-a").completed is True


class TestPersistenceFailure:
    def test_failed_write_is_reported_and_not_applied(self, db, service, route_day, monkeypatch):
        def failing_save(*args, **kwargs):
            raise SQLAlchemyError("database is locked")

        monkeypatch.setattr(service.repo, "save_visit_override", failing_save)

        with pytest.raises(PersistenceError, match="database is locked"):
            service.set_visit_time(MANAGER_ID, PLANNED_DATE, REGION, "store-b", "14:00", "15:00")

        monkeypatch.undo()
        day = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)
        assert visit(day, "store-b").override_id is None

    def test_failed_delete(self, service, route_day, monkeypatch):
        day = service.create_operational_item(
            MANAGER_ID, PLANNED_DATE, REGION, title="Team call", start_time="11:00", duration_minutes=20
        )

        def failing_delete(*args, **kwargs):
            raise SQLAlchemyError("connection lost")

        monkeypatch.setattr(service.repo, "delete_operational_item", failing_delete)
        with pytest.raises(PersistenceError):
            service.delete_operational_item(MANAGER_ID, PLANNED_DATE, REGION, ops(day)[0].item.id)

        monkeypatch.undo()
        assert len(ops(service.get_day(MANAGER_ID, PLANNED_DATE, REGION))) == 1


class TestRoutePlanMaintenance:
    def test_route_sequence_changes_visit_order(self, service, route_day):
        service.update_route_sequence(["store-b", "store-a", "store-c"])
        day = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)

        assert [v.waypoint.id for v in day.timeline.visits()] == ["store-b", "store-a"]
        assert visit(day, "store-b").start == at(9)

    def test_route_sequence_rejects_unknown_store(self, service, route_day):
        with pytest.raises(RecordNotFound):
            service.update_route_sequence(["store-a", "missing"])

    def test_route_sequence_rejects_duplicates(self, service, route_day):
        with pytest.raises(InvalidScheduleInput):
            service.update_route_sequence(["store-a", "store-a"])

    def test_store_location_brings_store_into_route(self, service, route_day):
        service.update_store_location("store-c", 51.53, -0.1)
        day = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)

        assert [v.waypoint.id for v in day.timeline.visits()] == ["store-a", "store-b", "store-c"]
        assert day.timeline.excluded_waypoint_ids == []

    def test_half_set_location_clears_coordinates(self, service, route_day):
        store = service.update_store_location("store-a", 51.5, None)
        assert (store.latitude, store.longitude) == (None, None)

    def test_clearing_home_removes_home_legs(self, service, route_day):
        service.update_manager_home(MANAGER_ID, "Moved away", None, None)
        day = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)

        assert day.home is None
        assert isinstance(day.timeline.items[0], VisitItem)

    def test_reschedule_moves_stores(self, service, route_day):
        new_date = PLANNED_DATE + timedelta(days=1)
        assert service.reschedule_route(["store-a", "store-b"], new_date) == 2

        moved = service.get_day(MANAGER_ID, new_date, REGION)
        assert [v.waypoint.id for v in moved.timeline.visits()] == ["store-a", "store-b"]

    def test_complete_route_clears_plan(self, service, route_day):
        assert service.complete_route(["store-a", "store-b", "store-c"]) == 3
        assert service.get_day(MANAGER_ID, PLANNED_DATE, REGION).timeline.is_empty

    def test_set_planned_date_adds_store_to_day(self, db, service, route_day):
        db.add(
            Store(id="store-d", store_name="Store D", region=REGION, latitude=51.53, longitude=-0.1)
        )
        db.commit()

        store = service.set_planned_date("store-d", PLANNED_DATE, MANAGER_ID)
        assert (store.planned_date, store.manager_user_id) == (PLANNED_DATE, MANAGER_ID)

        day = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)
        assert "store-d" in [v.waypoint.id for v in day.timeline.visits()]

    def test_set_planned_date_keeps_manager_when_not_given(self, service, route_day):
        new_date = PLANNED_DATE + timedelta(days=2)
        store = service.set_planned_date("store-b", new_date)

        assert store.manager_user_id == MANAGER_ID
        assert store.route_sequence == 2
        day = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)
        assert [v.waypoint.id for v in day.timeline.visits()] == ["store-a"]

    def test_clearing_planned_date_clears_sequence(self, service, route_day):
        store = service.set_planned_date("store-b", None)

        assert (store.planned_date, store.route_sequence) == (None, None)
        day = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)
        assert [v.waypoint.id for v in day.timeline.visits()] == ["store-a"]

    def test_set_planned_date_unknown_store(self, service, route_day):
        with pytest.raises(RecordNotFound):
            service.set_planned_date("missing", PLANNED_DATE)


class TestExports:
    def test_calendar_export(self, service, route_day):
        filename, content = service.export_calendar(MANAGER_ID, PLANNED_DATE, REGION)
        day = service.get_day(MANAGER_ID, PLANNED_DATE, REGION)

        assert filename == "route-2026-03-02.ics"
        assert content.count("BEGIN:VEVENT") == len(day.timeline.items)

    def test_navigation_skips_completed(self, service, route_day):
        service.mark_visit_complete(MANAGER_ID, PLANNED_DATE, REGION, "store-a")
        url = service.navigation_link(MANAGER_ID, PLANNED_DATE, REGION)

        assert "origin=51.52,-0.08" in url
        assert "destination=51.51,-0.12" in url
        assert "waypoints=" not in url

    def test_navigation_nothing_left(self, service, route_day):
        service.mark_visit_complete(MANAGER_ID, PLANNED_DATE, REGION, "store-a")
        service.mark_visit_complete(MANAGER_ID, PLANNED_DATE, REGION, "store-b")
        with pytest.raises(EmptyRouteError):
            service.navigation_link(MANAGER_ID, PLANNED_DATE, REGION)
