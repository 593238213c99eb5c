"""
Pytest fixtures for route planning tests.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from routeplan.database import Base, get_db
from routeplan.domain.route_planning.service import RoutePlanningService
from routeplan.domain.route_planning.types import HomeBase, Waypoint
from routeplan.main import app
from routeplan.models import ManagerProfile, Store

PLANNED_DATE = date(2026, 3, 2)
MANAGER_ID = "manager-1"
REGION = "North"


@pytest.fixture
def engine():
    """In-memory SQLite shared across connections."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def service(db):
    return RoutePlanningService(db)


@pytest.fixture
def route_day(db):
    """Manager with a home base and three stores planned for the day (C has no coordinates)."""
    manager = ManagerProfile(
        id=MANAGER_ID,
        full_name="Sam Taylor",
        home_address="1 High Street, London",
        home_latitude=51.52,
        home_longitude=-0.08,
    )
    stores = [
        Store(
            id="store-a",
            store_name="Store A",
            address_line_1="10 Market Street",
            city="London",
            postcode="EC1A 1AA",
            region=REGION,
            latitude=51.5,
            longitude=-0.1,
            manager_user_id=MANAGER_ID,
            planned_date=PLANNED_DATE,
            route_sequence=1,
        ),
        Store(
            id="store-b",
            store_name="Store B",
            postcode="SW1A 2BB",
            region=REGION,
            latitude=51.51,
            longitude=-0.12,
            manager_user_id=MANAGER_ID,
            planned_date=PLANNED_DATE,
            route_sequence=2,
        ),
        Store(
            id="store-c",
            store_name="Store C",
            region=REGION,
            manager_user_id=MANAGER_ID,
            planned_date=PLANNED_DATE,
            route_sequence=3,
        ),
    ]
    db.add(manager)
    db.add_all(stores)
    db.commit()
    return {"manager": manager, "stores": stores}


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def store_a():
    return Waypoint(id="a", name="Store A", postcode="EC1A 1AA", latitude=51.5, longitude=-0.1)


@pytest.fixture
def store_b():
    return Waypoint(id="b", name="Store B", latitude=51.51, longitude=-0.12)


@pytest.fixture
def home():
    return HomeBase(latitude=51.52, longitude=-0.08, address="1 High Street")
