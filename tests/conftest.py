"""Shared pytest fixtures for the test suite."""

import logging
import sqlite3
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from campussense.lib.config import Settings
from campussense.lib.config.testing import set_settings
from campussense.lib.db import clear_settings_cache, close_db
from campussense.lib.db.connection import SCHEMA_TEMPLATES, SQL_DIR


@pytest.fixture(autouse=True)
def configure_caplog(caplog):
    """Ensure caplog captures logs from the campussense namespace."""
    caplog.set_level(logging.INFO, logger="campussense")


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset global settings after each test to avoid cross-test pollution."""
    yield
    set_settings(None)


@pytest.fixture(autouse=True)
def no_redis_settings_version():
    """Keep the settings cache away from Redis; every read hits SQLite."""
    with (
        patch(
            "campussense.lib.db.settings._read_version",
            new_callable=AsyncMock,
            return_value=None,
        ),
        patch(
            "campussense.lib.db.settings._bump_version",
            new_callable=AsyncMock,
            return_value=None,
        ),
    ):
        clear_settings_cache()
        yield
        clear_settings_cache()


@pytest.fixture(autouse=True)
def test_db(tmp_path):
    """Use a temporary SQLite database for tests.

    Creates a fresh database with the full schema for each test, providing
    isolation while allowing real database operations.
    """
    db_file = tmp_path / "test.sqlite3"

    set_settings(Settings(db_path=str(db_file)))

    conn = sqlite3.connect(str(db_file))
    for name in SCHEMA_TEMPLATES:
        conn.executescript((SQL_DIR / name).read_text())
    conn.close()

    yield db_file


@pytest.fixture
def frozen_time():
    """Return a fixed datetime for deterministic tests."""
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest_asyncio.fixture(autouse=True)
async def close_connections():
    """Close pooled connections so the next test opens its own database."""
    yield
    await close_db()
