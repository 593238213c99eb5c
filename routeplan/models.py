import uuid

from sqlalchemy import Column, Date, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class ManagerProfile(Base):
    """Field manager; the home address is where each route day starts and ends"""

    __tablename__ = "manager_profiles"

    id = Column(String(36), primary_key=True, default=generate_id)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=True)

    # Home base (both coordinates are required for leave/arrive home legs)
    home_address = Column(String(500), nullable=True)
    home_latitude = Column(Float, nullable=True)
    home_longitude = Column(Float, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Store(Base):
    """A store that can be planned into a manager's visit route"""

    __tablename__ = "stores"

    id = Column(String(36), primary_key=True, default=generate_id)
    store_name = Column(String(255), nullable=False)
    store_code = Column(String(50), nullable=True)

    # Address
    address_line_1 = Column(String(255), nullable=True)
    city = Column(String(120), nullable=True)
    postcode = Column(String(20), nullable=True)
    region = Column(String(120), nullable=True, index=True)

    # Geodata (geocoded elsewhere; missing values exclude the store from timelines)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Route planning
    manager_user_id = Column(String(36), nullable=True, index=True)
    planned_date = Column(Date, nullable=True, index=True)
    route_sequence = Column(Integer, nullable=True)  # 1-based visit order within the day

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
