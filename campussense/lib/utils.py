"""Shared utility functions."""
import math
import sqlite3
from datetime import UTC, datetime
from typing import Any

# SQLite datetime format (space separator, not T)
_SQLITE_DATETIME_FMT = "%Y-%m-%d %H:%M:%S"


def utcnow() -> datetime:
    """Return current UTC time as a naive datetime.

    Uses datetime.now(UTC) internally for correctness, but returns a naive
    datetime for SQLite compatibility (which stores timestamps without timezone).
    """
    return datetime.now(UTC).replace(tzinfo=None)


def as_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime, treating naive values as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_sqlite(dt: datetime) -> str:
    """Format a datetime as a naive UTC SQLite timestamp."""
    return as_utc(dt).strftime(_SQLITE_DATETIME_FMT)


def from_sqlite(value: str) -> datetime:
    """Parse a SQLite timestamp (naive UTC) into an aware datetime."""
    return as_utc(datetime.fromisoformat(value))


def safe_float(value: Any) -> float | None:
    """Coerce a value to a finite float, or None if that is not possible."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _adapt_datetime(dt: datetime) -> str:
    """Adapt datetime to SQLite string format."""
    return to_sqlite(dt)


def register_sqlite_adapters() -> None:
    """Register sqlite3 adapters for datetime handling.

    Python 3.12+ removed the default datetime adapters, so we need to
    register them explicitly. Call this once at application startup.
    """
    sqlite3.register_adapter(datetime, _adapt_datetime)
