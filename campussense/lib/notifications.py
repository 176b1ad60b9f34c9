"""Notification system for threshold alerts.

Provides an abstract notification interface with pluggable channels.
Supports Telegram chats and browser web push, or both simultaneously.
Every channel delivers to all of its recipients; a failure for one
recipient is logged and the rest of the batch still goes out.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import override

from pywebpush import WebPushException, webpush

from campussense.lib.config import NotificationChannel, get_settings
from campussense.lib.eventbus import AlertEventPayload
from campussense.lib.exceptions import DeliveryError
from campussense.lib.reports import MessageKind, format_structured
from campussense.lib.retry import with_retry
from campussense.lib.telegram import TelegramClient, build_keyboard, get_telegram_client
from campussense.logging import get_logger

logger = get_logger("lib.notifications")

# Push services answer 404/410 for subscriptions the browser dropped
_EXPIRED_PUSH_STATUS = frozenset({404, 410})

# Telegram answers 403 when the user blocked the bot
_BLOCKED_CHAT_STATUS = 403


def format_alert_message(event: AlertEventPayload) -> str:
    """Format an alert event as a Markdown chat message."""
    lines = [a.message for a in event.alerts] or [event.message]
    timezone = event.timezone or get_settings().defaults.timezone
    return format_structured(
        MessageKind.ALERT, lines, event.recording_time, timezone
    )


class AbstractNotifier(ABC):
    """Abstract base class for notification channels."""

    @abstractmethod
    async def send(self, event: AlertEventPayload) -> None:
        """Send a notification for the given alert event."""


class TelegramNotifier(AbstractNotifier):
    """Sends alerts to every active Telegram chat subscriber."""

    def __init__(self, client: TelegramClient | None = None):
        self._client = client or get_telegram_client()

    async def broadcast(self, text: str) -> int:
        """Send a message to all active chats. Returns the delivered count."""
        from campussense.lib.db import deactivate_chat_subscriber, get_active_chat_ids

        if self._client is None:
            logger.warning("Telegram bot token not configured, skipping")
            return 0

        chat_ids = await get_active_chat_ids()
        if not chat_ids:
            logger.info("No active Telegram subscribers")
            return 0

        cfg = get_settings().notifications
        keyboard = build_keyboard(cfg.telegram.dashboard_url)
        blocked: list[str] = []
        delivered = 0

        for chat_id in chat_ids:

            def do_send(chat_id: str = chat_id) -> None:
                try:
                    self._client.send_message(chat_id, text, keyboard=keyboard)
                except DeliveryError as e:
                    if e.status_code == _BLOCKED_CHAT_STATUS:
                        blocked.append(chat_id)
                    raise

            ok = await with_retry(
                do_send,
                name=f"Telegram chat {chat_id}",
                logger=logger,
                max_retries=cfg.max_retries,
                initial_backoff_sec=cfg.initial_backoff_sec,
                run_in_thread=True,
            )
            delivered += ok

        for chat_id in blocked:
            await deactivate_chat_subscriber(chat_id)
            logger.info("Deactivated Telegram chat %s (bot blocked)", chat_id)

        logger.info(
            "Telegram message delivered to %d/%d chats", delivered, len(chat_ids)
        )
        return delivered

    @override
    async def send(self, event: AlertEventPayload) -> None:
        await self.broadcast(format_alert_message(event))


class WebPushNotifier(AbstractNotifier):
    """Sends alerts to every stored browser push subscription."""

    def _push(self, subscription: dict[str, str], data: str) -> None:
        cfg = get_settings().notifications
        try:
            webpush(
                subscription_info={
                    "endpoint": subscription["endpoint"],
                    "keys": {
                        "p256dh": subscription["p256dh"],
                        "auth": subscription["auth"],
                    },
                },
                data=data,
                vapid_private_key=cfg.push.private_key.get_secret_value(),
                # webpush() adds aud/exp to the claims dict it is given
                vapid_claims={"sub": cfg.push.subject},
                timeout=cfg.timeout_sec,
            )
        except WebPushException as e:
            status = e.response.status_code if e.response is not None else None
            raise DeliveryError(f"Web push failed: {e}", status_code=status) from e

    @override
    async def send(self, event: AlertEventPayload) -> None:
        from campussense.lib.db import get_push_subscriptions, remove_push_subscription

        subscriptions = await get_push_subscriptions()
        if not subscriptions:
            logger.info("No web push subscriptions")
            return

        cfg = get_settings().notifications
        data = json.dumps(
            {
                "title": "CampusSense Alert",
                "body": event.message,
                "url": cfg.telegram.public_url or "/",
            }
        )
        expired: list[str] = []
        delivered = 0

        for subscription in subscriptions:
            endpoint = subscription["endpoint"]

            def do_send(subscription: dict[str, str] = dict(subscription)) -> None:
                try:
                    self._push(subscription, data)
                except DeliveryError as e:
                    if e.status_code in _EXPIRED_PUSH_STATUS:
                        expired.append(subscription["endpoint"])
                    raise

            delivered += await with_retry(
                do_send,
                name=f"Web push {endpoint[:48]}",
                logger=logger,
                max_retries=cfg.max_retries,
                initial_backoff_sec=cfg.initial_backoff_sec,
                run_in_thread=True,
            )

        for endpoint in expired:
            await remove_push_subscription(endpoint)
            logger.info("Removed expired push subscription %s", endpoint[:48])

        logger.info(
            "Web push delivered to %d/%d subscriptions",
            delivered,
            len(subscriptions),
        )


class CompositeNotifier(AbstractNotifier):
    """Sends notifications to multiple channels."""

    def __init__(self, notifiers: list[AbstractNotifier]):
        self._notifiers = notifiers

    @override
    async def send(self, event: AlertEventPayload) -> None:
        """Send notification to all configured channels concurrently."""
        results = await asyncio.gather(
            *(notifier.send(event) for notifier in self._notifiers),
            return_exceptions=True,
        )
        for notifier, result in zip(self._notifiers, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    "%s failed: %s", type(notifier).__name__, result
                )


class NoOpNotifier(AbstractNotifier):
    """No-op notifier that logs but doesn't send notifications."""

    @override
    async def send(self, event: AlertEventPayload) -> None:
        logger.info(
            "Notifications disabled, skipping alert for scope %s: %s",
            event.scope,
            event.message,
        )


_CHANNEL_MAP: dict[NotificationChannel, type[AbstractNotifier]] = {
    NotificationChannel.TELEGRAM: TelegramNotifier,
    NotificationChannel.WEBPUSH: WebPushNotifier,
}


def get_notifier() -> AbstractNotifier:
    """Factory function to get the configured notifier."""
    cfg = get_settings().notifications
    if not cfg.enabled:
        return NoOpNotifier()

    notifiers = [_CHANNEL_MAP[channel]() for channel in cfg.channels]
    if not notifiers:
        return NoOpNotifier()
    if len(notifiers) == 1:
        return notifiers[0]
    return CompositeNotifier(notifiers)
