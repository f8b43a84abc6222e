"""
Test configuration and fixtures.

Every test that touches the datastore gets its own SQLite file through
aiosqlite; the schema is created from the ORM models.
"""

import os

# Set test environment variables before importing the package
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest

from charity_indexer.core import database
from charity_indexer.core.database import DatabaseManager, close_database, init_database

from helpers import FakeEventSource


@pytest.fixture
async def session_maker(tmp_path):
    """Initialized database with all tables; yields the session factory."""
    await init_database(f"sqlite+aiosqlite:///{tmp_path / 'indexer.db'}")
    await DatabaseManager.create_tables()
    yield database.get_session_maker()
    await close_database()


@pytest.fixture
def event_source() -> FakeEventSource:
    return FakeEventSource()
