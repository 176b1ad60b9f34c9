"""In-app notification and alert log records."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING, cast

from campussense.lib.db.connection import get_db
from campussense.lib.db.types import NotificationRow
from campussense.lib.utils import to_sqlite, utcnow

if TYPE_CHECKING:
    from campussense.lib.alerts import Alert

MAX_NOTIFICATIONS_LIMIT = 200
DEFAULT_NOTIFICATIONS_LIMIT = 50


def clamp_limit(limit: int | None) -> int:
    """Clamp a requested page size to 1..MAX_NOTIFICATIONS_LIMIT."""
    if limit is None:
        return DEFAULT_NOTIFICATIONS_LIMIT
    return max(1, min(MAX_NOTIFICATIONS_LIMIT, limit))


async def insert_notification(
    title: str,
    message: str,
    *,
    type_: str = "alert",
    scope: str = "global",
    created_at: datetime | None = None,
) -> int:
    """Store an in-app notification and return its id."""
    async with get_db() as db:
        return await db.insert(
            """INSERT INTO notifications (title, message, type, scope, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (title, message, type_, scope, to_sqlite(created_at or utcnow())),
        )


async def get_notifications(
    limit: int | None = None, *, unread_only: bool = False
) -> list[NotificationRow]:
    """Return the most recent notifications, newest first."""
    where = "WHERE is_read = 0" if unread_only else ""
    async with get_db() as db:
        rows = await db.fetchall(
            f"""SELECT id, title, message, type, is_read, scope, created_at
                FROM notifications {where}
                ORDER BY created_at DESC, id DESC
                LIMIT ?""",
            (clamp_limit(limit),),
        )
    for row in rows:
        row["is_read"] = bool(row["is_read"])
    return cast(list[NotificationRow], rows)


async def mark_notification_read(notification_id: int) -> bool:
    """Mark a notification as read. Returns False if it does not exist."""
    async with get_db() as db:
        updated = await db.execute(
            "UPDATE notifications SET is_read = 1 WHERE id = ?",
            (notification_id,),
        )
    return updated > 0


async def insert_alert_logs(
    scope: str,
    alerts: Iterable[Alert],
    *,
    created_at: datetime | None = None,
) -> None:
    """Store one alert log row per metric of a delivered alert."""
    timestamp = to_sqlite(created_at or utcnow())
    rows = [
        (scope, a.metric_id, a.observed_value, a.limit, str(a.direction), timestamp)
        for a in alerts
    ]
    if not rows:
        return
    async with get_db() as db, db.transaction():
        await db.executemany(
            """INSERT INTO alert_logs
                   (scope, metric_id, value, threshold, direction, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            rows,
        )
