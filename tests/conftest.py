"""Shared fixtures: a fake clock, a fake fetcher and a SQLite document store."""

import tempfile
from pathlib import Path

import pytest

from brand_agent.db.engine import create_db_engine, create_session_factory, init_db
from brand_agent.db.repositories import SqlDocumentStore

from tests.pages import FakeClock, FakeFetcher


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock."""
    return FakeClock()


@pytest.fixture
def fetcher() -> FakeFetcher:
    """A fetcher serving the sample page."""
    return FakeFetcher()


@pytest.fixture
def temp_db_path():
    """Create a temporary database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def engine(temp_db_path):
    """Create a test database engine."""
    engine = create_db_engine(temp_db_path)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Create a session factory for testing."""
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory) -> SqlDocumentStore:
    """A document store on the temporary database."""
    return SqlDocumentStore(session_factory)
