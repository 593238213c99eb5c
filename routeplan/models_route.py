"""
Route Day Models
Durable user intent for a (manager, date, region) route day. Everything else in a
day's timeline is derived on every build and never stored.
"""

from sqlalchemy import Column, Date, DateTime, Integer, String, Time, UniqueConstraint
from sqlalchemy.sql import func

from .database import Base
from .models import generate_id


class RouteVisitTime(Base):
    """Manual start/end override for one store's visit on a route day"""

    __tablename__ = "route_visit_times"
    __table_args__ = (
        UniqueConstraint(
            "manager_user_id", "planned_date", "region", "store_id", name="uq_route_visit_time"
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    manager_user_id = Column(String(36), nullable=False, index=True)
    planned_date = Column(Date, nullable=False, index=True)
    region = Column(String(120), nullable=True)
    store_id = Column(String(36), nullable=False, index=True)

    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class RouteOperationalItem(Base):
    """Meeting, admin block or other commitment with no store attached"""

    __tablename__ = "route_operational_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    manager_user_id = Column(String(36), nullable=False, index=True)
    planned_date = Column(Date, nullable=False, index=True)
    region = Column(String(120), nullable=True)

    title = Column(String(255), nullable=False)
    location = Column(String(500), nullable=True)
    start_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class RouteVisitCompletion(Base):
    """Marker set when a manager marks a visit complete; never cleared by rebuilds"""

    __tablename__ = "route_visit_completions"
    __table_args__ = (
        UniqueConstraint(
            "manager_user_id", "planned_date", "region", "store_id", name="uq_route_visit_completion"
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    manager_user_id = Column(String(36), nullable=False, index=True)
    planned_date = Column(Date, nullable=False, index=True)
    region = Column(String(120), nullable=True)
    store_id = Column(String(36), nullable=False)

    completed_at = Column(DateTime, server_default=func.now())
