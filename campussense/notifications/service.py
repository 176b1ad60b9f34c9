"""Notification service that listens to alert events and sends notifications.

Subscribes to the event bus ALERT topic, records every alert as an in-app
notification with per-metric alert log rows, then dispatches it via the
configured channels (Telegram, web push).
"""

from typing import Any

import aiosqlite

from campussense.lib.db import close_db, init_db, insert_alert_logs, insert_notification
from campussense.lib.eventbus import AlertEventPayload, EventSubscriber, Topic
from campussense.lib.exceptions import DatabaseError, NotificationError
from campussense.lib.notifications import AbstractNotifier, get_notifier
from campussense.lib.service import run_service
from campussense.logging import get_logger

logger = get_logger("notifications.service")

ALERT_TITLE = "Threshold Alert"


async def record_alert(event: AlertEventPayload) -> None:
    """Store the in-app notification and alert log rows for an event."""
    try:
        await insert_notification(
            ALERT_TITLE,
            event.message,
            type_="alert",
            scope=event.scope,
            created_at=event.recording_time,
        )
        await insert_alert_logs(
            event.scope, event.alerts, created_at=event.recording_time
        )
    except (aiosqlite.Error, DatabaseError, OSError) as e:
        logger.error("Failed to record alert: %s", e)


async def dispatch_alert(
    event: AlertEventPayload, notifier: AbstractNotifier
) -> None:
    """Record an alert and deliver it. Delivery failures are logged only."""
    logger.info("Processing alert for scope %s: %s", event.scope, event.message)
    await record_alert(event)
    try:
        await notifier.send(event)
    except (NotificationError, OSError, aiosqlite.Error):
        logger.exception("Failed to send notification")


async def handle_message(data: Any) -> None:
    try:
        event = AlertEventPayload.from_dict(data)
    except (KeyError, ValueError, TypeError, AttributeError):
        logger.exception("Failed to parse alert event")
        return
    # Get notifier for each event to pick up latest settings
    await dispatch_alert(event, get_notifier())


async def run() -> None:
    """Run the notification service."""
    await init_db()
    try:
        async with EventSubscriber(topics=[Topic.ALERT]) as subscriber:
            logger.info("Notification service started")
            async for _topic, data in subscriber.receive():
                await handle_message(data)
    finally:
        await close_db()
        logger.info("Notification service stopped")


def main() -> None:
    """Entry point for the notification service."""
    run_service(run, name="notification")


if __name__ == "__main__":
    main()
