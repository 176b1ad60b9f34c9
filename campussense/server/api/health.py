"""Health check endpoint for monitoring service status."""

import asyncio
from datetime import UTC, datetime

import aiosqlite
import redis.asyncio as redis
from starlette.requests import Request
from starlette.responses import JSONResponse

from campussense.lib.config import get_settings
from campussense.lib.db import get_db, get_latest_reading
from campussense.lib.exceptions import DatabaseError
from campussense.lib.utils import from_sqlite
from campussense.logging import get_logger

logger = get_logger("server.api.health")

_DB_ERRORS = (DatabaseError, aiosqlite.Error, OSError)


async def _check_database() -> tuple[bool, str]:
    """Check if database is accessible."""
    try:
        async with get_db() as db:
            await db.fetchone("SELECT 1")
        return True, "ok"
    except _DB_ERRORS as e:
        logger.error("Database health check failed: %s", e)
        return False, str(e)


async def _check_sensors() -> tuple[bool, str | None, float | None]:
    """Check whether any reading has been stored, and how old it is."""
    try:
        latest = await get_latest_reading()
    except _DB_ERRORS as e:
        logger.error("Sensor health check failed: %s", e)
        return False, str(e), None
    if latest is None:
        return False, "no data", None
    recorded = latest["recording_time"]
    age = (datetime.now(UTC) - from_sqlite(recorded)).total_seconds()
    return True, recorded, round(age, 1)


async def _check_redis() -> tuple[bool, str]:
    """Check if Redis is accessible."""
    try:
        client = redis.from_url(get_settings().eventbus.redis_url)
        await client.ping()
        await client.aclose()
        return True, "ok"
    except (redis.RedisError, OSError) as e:
        logger.error("Redis health check failed: %s", e)
        return False, str(e)


async def health_check(request: Request) -> JSONResponse:
    """Return health status of the application and its dependencies."""
    (
        (db_ok, db_status),
        (redis_ok, redis_status),
        (sensors_ok, last_reading, age_sec),
    ) = await asyncio.gather(
        _check_database(),
        _check_redis(),
        _check_sensors(),
    )

    # Core services must be healthy (database and Redis)
    is_healthy = db_ok and redis_ok

    return JSONResponse(
        {
            "status": "healthy" if is_healthy else "unhealthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": {
                "database": {"ok": db_ok, "status": db_status},
                "redis": {"ok": redis_ok, "status": redis_status},
                "sensors": {
                    "ok": sensors_ok,
                    "last_reading": last_reading,
                    "age_sec": age_sec,
                },
            },
        },
        status_code=200 if is_healthy else 503,
    )
