"""
Pytest configuration and fixtures

Database tests run against an in-memory SQLite database created per test,
so nothing persists between tests.
"""
import pytest
import sys
import os
from uuid import uuid4
from datetime import date, timedelta

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base
from services.program_engine.constants import (
    Confidence,
    ExperienceLevel,
    GoalType,
    ZoneSourceKind,
    ZoneUnit,
)
from services.program_engine.models import ProgramRequest, RaceResult, ThresholdTest, ZoneTable
from services.program_engine.zone_resolver import zones_from_race

TODAY = date(2026, 1, 5)  # a Monday


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def race_result():
    """10K in 40:00, run two weeks ago (VDOT ~52)."""
    return RaceResult(distance_meters=10000, time_seconds=2400, race_date=TODAY - timedelta(days=14))


@pytest.fixture
def pace_zones(race_result):
    """Running zone table derived from the 10K race."""
    _, zones = zones_from_race(race_result)
    return ZoneTable(
        unit=ZoneUnit.PACE,
        zones=zones,
        source=ZoneSourceKind.RACE_RESULT,
        confidence=Confidence.MEDIUM,
    )


@pytest.fixture
def running_test():
    """Running threshold test: LT1 12 km/h, LT2 15 km/h, with heart rates."""
    return ThresholdTest(
        aerobic_threshold=12.0,
        anaerobic_threshold=15.0,
        unit=ZoneUnit.PACE,
        aerobic_threshold_hr=145,
        anaerobic_threshold_hr=172,
        max_hr=190,
        test_date=TODAY - timedelta(days=30),
    )


@pytest.fixture
def power_zones():
    """Cycling zone table in watts."""
    return ZoneTable(
        unit=ZoneUnit.POWER,
        zones={1: 150.0, 2: 200.0, 3: 237.5, 4: 275.0, 5: 316.0},
        source=ZoneSourceKind.THRESHOLD_TEST,
        confidence=Confidence.HIGH,
    )


@pytest.fixture
def marathon_request():
    """16-week, 4-day intermediate marathon request."""
    return ProgramRequest(
        goal_type=GoalType.MARATHON,
        duration_weeks=16,
        training_days_per_week=4,
        experience_level=ExperienceLevel.INTERMEDIATE,
        start_date=TODAY,
    )


# ============ Database ============

@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory database shared across threads."""
    import models  # noqa: F401  (registers tables)

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def athlete(db_session):
    from models import Athlete

    athlete = Athlete(id=uuid4(), display_name="Test Runner", primary_sport="running")
    db_session.add(athlete)
    db_session.commit()
    return athlete


@pytest.fixture
def client(session_factory):
    """TestClient with the database dependencies pointed at the test database."""
    from fastapi.testclient import TestClient
    from core.database import get_db, get_session_factory
    from main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()
