"""Shared fixtures."""

from datetime import datetime, timezone

import pytest

from recovery_engine.db.database import Database


@pytest.fixture
def db():
    """Fresh in-memory SQLite database with all tables."""
    database = Database("sqlite:///:memory:")
    database.create_tables()
    yield database
    database.close()


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2024-03-10 12:00 UTC."""
    return lambda: datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
