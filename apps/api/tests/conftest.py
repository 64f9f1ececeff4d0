"""
Pytest configuration and fixtures

Every test gets a fresh in-memory SQLite schema and an in-memory Redis
stand-in, so nothing leaks between tests and no external services are
needed.
"""
import os
import sys
from datetime import datetime
from unittest.mock import patch
from uuid import uuid4

import pytest

# Point settings at SQLite before anything imports core.database
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from core.database import Base  # noqa: E402
from models import Athlete, Activity  # noqa: E402


class FakeRedis:
    """Minimal in-memory Redis mock for unit tests."""

    def __init__(self):
        self._store: dict = {}
        self._ttls: dict = {}

    def get(self, key):
        return self._store.get(key)

    def setex(self, key, ttl, value):
        self._store[key] = value
        self._ttls[key] = ttl
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self._store:
                del self._store[key]
                self._ttls.pop(key, None)
                removed += 1
        return removed

    def ping(self):
        return True

    def keys(self):
        return list(self._store)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture(autouse=True)
def _patch_redis(fake_redis):
    """Route every cache call to the in-memory fake."""
    with patch("core.cache.get_redis_client", return_value=fake_redis):
        yield fake_redis


@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Session on a throwaway in-memory database."""
    TestingSession = sessionmaker(bind=db_engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def test_athlete(db_session):
    athlete = Athlete(
        email=f"test_{uuid4()}@example.com",
        display_name="Test Athlete",
    )
    db_session.add(athlete)
    db_session.commit()
    db_session.refresh(athlete)
    return athlete


@pytest.fixture
def add_activity(db_session, test_athlete):
    """Factory: add_activity(start_time, km, pace_min_per_km, **columns)."""
    def _add(start_time: datetime, km: float = 10.0, pace: float = 5.0, **columns):
        activity = Activity(
            athlete_id=columns.pop("athlete_id", test_athlete.id),
            start_time=start_time,
            distance_m=int(round(km * 1000)),
            duration_s=int(round(km * pace * 60)),
            **columns,
        )
        db_session.add(activity)
        db_session.commit()
        return activity
    return _add


@pytest.fixture
def client(db_session):
    """TestClient bound to the test session; background enqueues are mocked."""
    from fastapi.testclient import TestClient
    from core.database import get_db
    from main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with patch("routers.activities.recompute_environmental_profiles") as enqueue:
        with TestClient(app) as test_client:
            test_client.enqueue = enqueue
            yield test_client
    app.dependency_overrides.clear()
