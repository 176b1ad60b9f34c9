"""Telegram chat subscribers and web push subscriptions."""

from __future__ import annotations

from typing import cast

from campussense.lib.db.connection import get_db
from campussense.lib.db.types import PushSubscriptionRow


async def add_chat_subscriber(chat_id: int | str) -> None:
    """Subscribe a chat, reactivating it if it had stopped."""
    async with get_db() as db:
        await db.execute(
            """INSERT INTO chat_subscribers (chat_id, active)
               VALUES (?, 1)
               ON CONFLICT(chat_id) DO UPDATE SET active = 1""",
            (str(chat_id),),
        )


async def deactivate_chat_subscriber(chat_id: int | str) -> bool:
    """Stop alerts for a chat. Returns False if it was not subscribed."""
    async with get_db() as db:
        updated = await db.execute(
            "UPDATE chat_subscribers SET active = 0 WHERE chat_id = ?",
            (str(chat_id),),
        )
    return updated > 0


async def get_active_chat_ids() -> list[str]:
    async with get_db() as db:
        rows = await db.fetchall(
            """SELECT chat_id FROM chat_subscribers
               WHERE active = 1 ORDER BY created_at"""
        )
    return [row["chat_id"] for row in rows]


async def add_push_subscription(endpoint: str, p256dh: str, auth: str) -> None:
    """Store a browser push subscription, replacing keys on re-subscribe."""
    async with get_db() as db:
        await db.execute(
            """INSERT INTO push_subscriptions (endpoint, p256dh, auth)
               VALUES (?, ?, ?)
               ON CONFLICT(endpoint) DO UPDATE SET
                   p256dh = excluded.p256dh,
                   auth = excluded.auth""",
            (endpoint, p256dh, auth),
        )


async def remove_push_subscription(endpoint: str) -> bool:
    async with get_db() as db:
        deleted = await db.execute(
            "DELETE FROM push_subscriptions WHERE endpoint = ?", (endpoint,)
        )
    return deleted > 0


async def get_push_subscriptions() -> list[PushSubscriptionRow]:
    async with get_db() as db:
        rows = await db.fetchall(
            "SELECT endpoint, p256dh, auth FROM push_subscriptions"
        )
    return cast(list[PushSubscriptionRow], rows)
