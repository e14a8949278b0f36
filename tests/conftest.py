"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from sqlkv.core.connection import DatabaseConnection
from sqlkv.core.schema import create_kv_table


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now=None):
        self.now = now or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def temp_db():
    """Create a temporary database file."""
    temp = tempfile.mkdtemp()
    db_path = Path(temp) / "test.db"
    yield db_path
    shutil.rmtree(temp)


@pytest.fixture
def conn(temp_db):
    """A connection with the default key/value table created."""
    conn = DatabaseConnection(temp_db)
    create_kv_table(conn)
    yield conn
    conn.close()


@pytest.fixture
def clock():
    return FakeClock()
