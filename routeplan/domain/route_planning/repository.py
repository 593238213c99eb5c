"""Route planning repository - Database operations for route days"""

from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Query, Session

from ...models import ManagerProfile, Store
from ...models_route import RouteOperationalItem, RouteVisitCompletion, RouteVisitTime


def _in_day(query: Query, model, manager_user_id: str, planned_date: date, region: Optional[str]) -> Query:
    """Scope a query to one (manager, date, region) route day; NULL region is its own day"""
    query = query.filter(
        model.manager_user_id == manager_user_id, model.planned_date == planned_date
    )
    if region is None:
        return query.filter(model.region.is_(None))
    return query.filter(model.region == region)


class RoutePlanningRepository:
    """Repository for route day database operations"""

    # ------------------------------------------------------------------
    # Stores and managers (waypoint and home base sources)
    # ------------------------------------------------------------------

    @staticmethod
    def get_route_stores(
        db: Session, manager_user_id: str, planned_date: date, region: Optional[str]
    ) -> list[Store]:
        """Stores planned for the day, in visit order (sequence, then name)"""
        return (
            _in_day(db.query(Store), Store, manager_user_id, planned_date, region)
            .order_by(Store.route_sequence.is_(None), Store.route_sequence, Store.store_name)
            .all()
        )

    @staticmethod
    def get_store(db: Session, store_id: str) -> Optional[Store]:
        return db.query(Store).filter(Store.id == store_id).first()

    @staticmethod
    def get_stores(db: Session, store_ids: list[str]) -> list[Store]:
        return db.query(Store).filter(Store.id.in_(store_ids)).all()

    @staticmethod
    def get_manager(db: Session, manager_user_id: str) -> Optional[ManagerProfile]:
        return db.query(ManagerProfile).filter(ManagerProfile.id == manager_user_id).first()

    @staticmethod
    def update_store_location(
        db: Session, store: Store, latitude: Optional[float], longitude: Optional[float]
    ) -> Store:
        store.latitude = latitude
        store.longitude = longitude
        db.commit()
        db.refresh(store)
        return store

    @staticmethod
    def update_manager_home(
        db: Session,
        manager: ManagerProfile,
        home_address: Optional[str],
        latitude: Optional[float],
        longitude: Optional[float],
    ) -> ManagerProfile:
        manager.home_address = home_address
        manager.home_latitude = latitude
        manager.home_longitude = longitude
        db.commit()
        db.refresh(manager)
        return manager

    @staticmethod
    def update_route_sequence(db: Session, store_ids: list[str]) -> int:
        """Number the listed stores 1..n in the given order"""
        stores = {s.id: s for s in RoutePlanningRepository.get_stores(db, store_ids)}
        for sequence, store_id in enumerate(store_ids, start=1):
            stores[store_id].route_sequence = sequence
        db.commit()
        return len(store_ids)

    @staticmethod
    def set_planned_date(
        db: Session,
        store: Store,
        planned_date: Optional[date],
        manager_user_id: Optional[str] = None,
    ) -> Store:
        """Put a store on a route day, or take it off (clears the sequence too)"""
        store.planned_date = planned_date
        if planned_date is None:
            store.route_sequence = None
        if manager_user_id is not None:
            store.manager_user_id = manager_user_id
        db.commit()
        db.refresh(store)
        return store

    @staticmethod
    def reschedule_stores(db: Session, store_ids: list[str], new_date: date) -> int:
        updated = (
            db.query(Store)
            .filter(Store.id.in_(store_ids))
            .update({Store.planned_date: new_date}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def clear_route_plan(db: Session, store_ids: list[str]) -> int:
        """Take stores off their route: clear planned date and sequence"""
        updated = (
            db.query(Store)
            .filter(Store.id.in_(store_ids))
            .update(
                {Store.planned_date: None, Store.route_sequence: None}, synchronize_session=False
            )
        )
        db.commit()
        return updated

    # ------------------------------------------------------------------
    # Visit time overrides
    # ------------------------------------------------------------------

    @staticmethod
    def get_visit_overrides(
        db: Session, manager_user_id: str, planned_date: date, region: Optional[str]
    ) -> list[RouteVisitTime]:
        return _in_day(
            db.query(RouteVisitTime), RouteVisitTime, manager_user_id, planned_date, region
        ).all()

    @staticmethod
    def get_visit_override(
        db: Session, manager_user_id: str, planned_date: date, region: Optional[str], store_id: str
    ) -> Optional[RouteVisitTime]:
        return (
            _in_day(db.query(RouteVisitTime), RouteVisitTime, manager_user_id, planned_date, region)
            .filter(RouteVisitTime.store_id == store_id)
            .first()
        )

    @staticmethod
    def save_visit_override(
        db: Session,
        manager_user_id: str,
        planned_date: date,
        region: Optional[str],
        store_id: str,
        start_time: time,
        end_time: time,
    ) -> RouteVisitTime:
        """Upsert by (manager, date, region, store)"""
        override = RoutePlanningRepository.get_visit_override(
            db, manager_user_id, planned_date, region, store_id
        )
        if override is None:
            override = RouteVisitTime(
                manager_user_id=manager_user_id,
                planned_date=planned_date,
                region=region,
                store_id=store_id,
            )
            db.add(override)

        override.start_time = start_time
        override.end_time = end_time
        db.commit()
        db.refresh(override)
        return override

    @staticmethod
    def delete_visit_override(db: Session, override: RouteVisitTime) -> None:
        db.delete(override)
        db.commit()

    # ------------------------------------------------------------------
    # Operational items
    # ------------------------------------------------------------------

    @staticmethod
    def get_operational_items(
        db: Session, manager_user_id: str, planned_date: date, region: Optional[str]
    ) -> list[RouteOperationalItem]:
        return (
            _in_day(
                db.query(RouteOperationalItem),
                RouteOperationalItem,
                manager_user_id,
                planned_date,
                region,
            )
            .order_by(RouteOperationalItem.start_time, RouteOperationalItem.id)
            .all()
        )

    @staticmethod
    def get_operational_item(
        db: Session, item_id: str, manager_user_id: str, planned_date: date, region: Optional[str]
    ) -> Optional[RouteOperationalItem]:
        return (
            _in_day(
                db.query(RouteOperationalItem),
                RouteOperationalItem,
                manager_user_id,
                planned_date,
                region,
            )
            .filter(RouteOperationalItem.id == item_id)
            .first()
        )

    @staticmethod
    def create_operational_item(
        db: Session, manager_user_id: str, planned_date: date, region: Optional[str], **item_data
    ) -> RouteOperationalItem:
        item = RouteOperationalItem(
            manager_user_id=manager_user_id,
            planned_date=planned_date,
            region=region,
            **item_data,
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def update_operational_item(db: Session, item: RouteOperationalItem, **updates) -> RouteOperationalItem:
        """Update an operational item with provided fields"""
        for key, value in updates.items():
            if hasattr(item, key):
                setattr(item, key, value)

        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def delete_operational_item(db: Session, item: RouteOperationalItem) -> None:
        db.delete(item)
        db.commit()

    # ------------------------------------------------------------------
    # Completion markers
    # ------------------------------------------------------------------

    @staticmethod
    def get_completed_store_ids(
        db: Session, manager_user_id: str, planned_date: date, region: Optional[str]
    ) -> set[str]:
        rows = _in_day(
            db.query(RouteVisitCompletion.store_id),
            RouteVisitCompletion,
            manager_user_id,
            planned_date,
            region,
        ).all()
        return {row.store_id for row in rows}

    @staticmethod
    def mark_visit_complete(
        db: Session, manager_user_id: str, planned_date: date, region: Optional[str], store_id: str
    ) -> RouteVisitCompletion:
        """Idempotent: marking an already completed visit returns the existing marker"""
        marker = (
            _in_day(
                db.query(RouteVisitCompletion),
                RouteVisitCompletion,
                manager_user_id,
                planned_date,
                region,
            )
            .filter(RouteVisitCompletion.store_id == store_id)
            .first()
        )
        if marker is not None:
            return marker

        marker = RouteVisitCompletion(
            manager_user_id=manager_user_id,
            planned_date=planned_date,
            region=region,
            store_id=store_id,
        )
        db.add(marker)
        db.commit()
        db.refresh(marker)
        return marker

    # ------------------------------------------------------------------
    # Whole day
    # ------------------------------------------------------------------

    @staticmethod
    def delete_day_plan(
        db: Session, manager_user_id: str, planned_date: date, region: Optional[str]
    ) -> tuple[int, int]:
        """Delete every override and operational item for the day; markers are kept"""
        overrides_deleted = _in_day(
            db.query(RouteVisitTime), RouteVisitTime, manager_user_id, planned_date, region
        ).delete(synchronize_session=False)
        items_deleted = _in_day(
            db.query(RouteOperationalItem),
            RouteOperationalItem,
            manager_user_id,
            planned_date,
            region,
        ).delete(synchronize_session=False)
        db.commit()
        return overrides_deleted, items_deleted
