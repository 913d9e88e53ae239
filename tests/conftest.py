"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. Every test
works on its own user id, so tests never see each other's progress.
"""
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from streak_engine.core.clock import FrozenClock, get_clock
from streak_engine.db.base import Base, get_db
from streak_engine.main import app
from streak_engine.services.catalog import seed_catalog

SQLITE_URL = "sqlite:///./test_streak_engine.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Monday 09:00 UTC
START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    # Store catalog and daily challenges (normally done by Alembic migration 0002)
    db = TestingSessionLocal()
    try:
        seed_catalog(db)
    finally:
        db.close()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def session_factory():
    """For tests that need a second, independent session."""
    return TestingSessionLocal


@pytest.fixture()
def clock():
    return FrozenClock(START)


@pytest.fixture()
def user_id():
    return f"user-{uuid.uuid4().hex[:12]}"


@pytest.fixture()
def headers(user_id):
    return {"X-User-Id": user_id}


@pytest.fixture()
def client(clock):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
