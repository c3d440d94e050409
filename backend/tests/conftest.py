# backend/tests/conftest.py
"""
Pytest configuration.

Every test gets its own in-memory SQLite database; Redis is reported as
unreachable so the lesson lock fails open unless a test patches a client in.
"""

import os
import sys

# Set testing mode BEFORE any engine imports
os.environ["is_testing"] = "true"

# Add the backend directory to Python path so imports work
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, backend_dir)

from availability_engine.core.config import settings

settings.is_testing = True

from datetime import datetime

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from availability_engine.api.dependencies import get_clock, get_db
from availability_engine.core import lesson_lock as lesson_lock_module
from availability_engine.database import Base, init_db
from availability_engine.main import app
from tests._utils.clock import FixedClock

# Saturday noon before the week of Sunday 2030-01-06
DEFAULT_NOW = datetime(2030, 1, 5, 12, 0)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(db_engine) -> Session:
    session = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def redis_unavailable(monkeypatch):
    monkeypatch.setattr(lesson_lock_module, "_get_sync_redis", lambda: None)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(DEFAULT_NOW, "UTC")


@pytest.fixture
def ny_clock() -> FixedClock:
    return FixedClock(DEFAULT_NOW, "America/New_York")


@pytest.fixture
def client(db, clock):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
