"""Database cleanup script for scheduled execution via cron.

Deletes readings, alert logs and notifications older than the configured
retention period.

Run via cron, e.g.: 0 3 * * * python -m campussense.db_cleanup
"""

import asyncio
import sys
from datetime import timedelta
from pathlib import Path

from campussense.lib.config import get_settings
from campussense.lib.db import Database
from campussense.lib.utils import to_sqlite, utcnow
from campussense.logging import configure, get_logger

logger = get_logger("db_cleanup")

# Table -> timestamp column used for retention
_RETAINED_TABLES = {
    "sensor_data": "recording_time",
    "alert_logs": "created_at",
    "notifications": "created_at",
}


async def cleanup() -> dict[str, int]:
    """Run database cleanup. Returns deleted row counts per table."""
    settings = get_settings()
    retention_days = settings.cleanup.retention_days
    db_path = Path(settings.db_path)

    if not db_path.exists():
        logger.info("Database does not exist, skipping cleanup")
        return {}

    cutoff = to_sqlite(utcnow() - timedelta(days=retention_days))
    logger.info("Starting cleanup (retention: %d days)", retention_days)

    deleted: dict[str, int] = {}
    async with Database() as db:
        async with db.transaction():
            for table, column in _RETAINED_TABLES.items():
                deleted[table] = await db.execute(
                    f"DELETE FROM {table} WHERE {column} < ?", (cutoff,)
                )

        if any(deleted.values()):
            await db.execute("PRAGMA incremental_vacuum(500)")
            logger.info(
                "Cleanup complete: deleted %s (older than %s)",
                ", ".join(f"{n} {t}" for t, n in deleted.items()),
                cutoff,
            )
        else:
            logger.info("Cleanup complete: no records to delete")
    return deleted


def main() -> int:
    """Entry point for the cleanup script."""
    configure()
    try:
        asyncio.run(cleanup())
        return 0
    except Exception as e:
        logger.error("Cleanup failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
