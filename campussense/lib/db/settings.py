"""Settings table access with a cross-process cache."""

from __future__ import annotations

import time
from collections.abc import Mapping

import aiosqlite
import redis.asyncio as aioredis

from campussense.lib.config import get_settings
from campussense.lib.db.connection import get_db
from campussense.logging import get_logger

_logger = get_logger("lib.db.settings")

_UPSERT_SQL = """INSERT INTO settings (key, value, updated_at)
    VALUES (?, ?, datetime('now'))
    ON CONFLICT(key) DO UPDATE SET
        value = excluded.value,
        updated_at = excluded.updated_at"""


class _SettingsCache:
    """TTL cache for the settings table, invalidated through Redis.

    Every write bumps a version counter in Redis. A process only serves its
    cached copy while the counter it saw matches the current one, so the
    ingestion service picks up threshold changes made through the API on
    the next reading.
    """

    VERSION_KEY = "campussense:settings:version"

    def __init__(self, ttl_sec: float = 30.0) -> None:
        self._entries: dict[str, str] | None = None
        self._loaded_at = 0.0
        self._version = 0
        self._ttl_sec = ttl_sec

    def lookup(self, version: int | None) -> dict[str, str] | None:
        """Return the cached rows if still fresh for this version.

        A None version (Redis down) never hits, since another process may
        have written in the meantime.
        """
        if version is None or self._entries is None:
            return None
        if version != self._version:
            return None
        if time.monotonic() - self._loaded_at >= self._ttl_sec:
            return None
        return self._entries

    def store(self, entries: dict[str, str], version: int) -> None:
        self._entries = dict(entries)
        self._loaded_at = time.monotonic()
        self._version = version

    def clear(self) -> None:
        self._entries = None
        self._loaded_at = 0.0
        self._version = 0


_cache = _SettingsCache()


def clear_settings_cache() -> None:
    """Drop this process's cached settings."""
    _cache.clear()


async def _read_version() -> int | None:
    """Return the Redis settings version, or None when Redis is unreachable."""
    try:
        async with aioredis.from_url(get_settings().eventbus.redis_url) as client:
            raw = await client.get(_SettingsCache.VERSION_KEY)
    except (aioredis.RedisError, OSError):
        return None
    return int(raw) if raw else 0


async def _bump_version() -> int | None:
    try:
        async with aioredis.from_url(get_settings().eventbus.redis_url) as client:
            return await client.incr(_SettingsCache.VERSION_KEY)
    except (aioredis.RedisError, OSError) as e:
        _logger.warning("Could not bump settings version in Redis: %s", e)
        return None


async def get_all_settings() -> dict[str, str]:
    """Return every settings row as a key -> value dict."""
    version = await _read_version()
    cached = _cache.lookup(version)
    if cached is not None:
        return dict(cached)

    try:
        async with get_db() as db:
            rows = await db.fetchall("SELECT key, value FROM settings")
    except (aiosqlite.Error, OSError) as e:
        _cache.clear()
        _logger.warning("Failed to read settings: %s", e)
        raise

    entries = {row["key"]: row["value"] for row in rows}
    if version is not None:
        _cache.store(entries, version)
    return entries


async def set_settings_batch(settings: Mapping[str, str]) -> dict[str, str]:
    """Upsert several settings in one transaction.

    Returns the full settings dict after the update. The Redis version is
    bumped before writing, so other processes refetch even if this one
    dies between the commit and its own cache update.
    """
    version = await _bump_version()

    async with get_db() as db, db.transaction():
        await db.executemany(
            _UPSERT_SQL,
            [(str(key), str(value)) for key, value in settings.items()],
        )
        rows = await db.fetchall("SELECT key, value FROM settings")

    entries = {row["key"]: row["value"] for row in rows}
    if version is None:
        _cache.clear()
    else:
        _cache.store(entries, version)
    return entries
