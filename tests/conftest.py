"""
Shared test fixtures.

Tests run against a throwaway SQLite file. Every test gets fresh
tables, and nothing leaks from one test into the next.
"""

import os

# Must be set before shop_ledger.models.base builds its engine.
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from shop_ledger import cache
from shop_ledger.main import app
from shop_ledger.models.base import Base, get_db

# A file rather than :memory: so that two sessions see each
# other's commits.
TEST_DATABASE_URL = "sqlite:///./test.db"

SHOP_ID = "shop-1"
ACTOR_ID = "user-1"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _session():
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def db_session():
    """Session used by service tests and by the API client."""
    yield from _session()


@pytest.fixture
def other_session():
    """An independent second writer."""
    yield from _session()


@pytest.fixture
def invalidated_paths():
    """Every path a CacheInvalidator sends while the test runs."""
    paths = []
    cache.add_listener(paths.append)
    yield paths
    cache.remove_listener(paths.append)


@pytest.fixture
def auth_headers():
    return {"X-User-Id": ACTOR_ID, "X-Shop-Ids": SHOP_ID}


@pytest.fixture
def client(db_session):
    """TestClient whose requests share db_session."""
    app.dependency_overrides[get_db] = lambda: db_session
    yield TestClient(app)
    app.dependency_overrides.clear()
