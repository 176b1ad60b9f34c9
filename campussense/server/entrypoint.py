"""Application factory for the web server."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.routing import Route

from campussense.lib.config import get_settings
from campussense.lib.db import close_db, ensure_schema
from campussense.lib.exceptions import DeliveryError
from campussense.lib.telegram import get_telegram_client
from campussense.logging import configure, get_logger

from .api.health import health_check
from .api.notifications import list_notifications, mark_read
from .api.push import get_public_key, subscribe, unsubscribe
from .api.readings import get_graph_data, get_latest_data
from .api.settings import (
    get_report_settings,
    get_thresholds,
    save_report_settings,
    set_thresholds,
)
from .api.telegram import telegram_webhook

_logger = get_logger("server.entrypoint")

WEBHOOK_PATH = "/api/telegram-webhook"


async def _register_telegram_webhook() -> None:
    """Point the bot at this server when a public URL is configured."""
    client = get_telegram_client()
    public_url = get_settings().telegram.public_url
    if client is None or not public_url:
        _logger.info("Telegram webhook not registered (token or PUBLIC_URL missing)")
        return
    try:
        await asyncio.to_thread(client.set_webhook, f"{public_url}{WEBHOOK_PATH}")
        await asyncio.to_thread(client.set_commands)
    except (DeliveryError, OSError) as e:
        _logger.error("Failed to register Telegram webhook: %s", e)


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncIterator[None]:
    """Application lifespan manager for startup/shutdown tasks."""
    await ensure_schema()
    await _register_telegram_webhook()
    try:
        yield
    finally:
        await close_db()


def create_app() -> Starlette:
    """Create and configure the Starlette application.

    Database connections come from the pool via get_db(); long-running
    services use init_db() for persistent connections instead.
    """
    configure()

    routes = [
        Route("/health", health_check),
        Route("/api/data", get_latest_data),
        Route("/api/graph", get_graph_data),
        Route("/api/get-thresholds", get_thresholds),
        Route("/api/set-thresholds", set_thresholds, methods=["POST"]),
        Route("/api/get-report-time", get_report_settings),
        Route("/api/save-settings", save_report_settings, methods=["POST"]),
        Route("/api/notifications", list_notifications),
        Route(
            "/api/notifications/read/{notification_id:int}",
            mark_read,
            methods=["POST"],
        ),
        Route(WEBHOOK_PATH, telegram_webhook, methods=["POST"]),
        Route("/api/push/public-key", get_public_key),
        Route("/api/push/subscribe", subscribe, methods=["POST"]),
        Route("/api/push/unsubscribe", unsubscribe, methods=["POST"]),
    ]

    return Starlette(routes=routes, lifespan=lifespan)
