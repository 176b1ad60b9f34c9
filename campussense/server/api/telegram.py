"""Telegram webhook endpoint.

Handles the bot commands (/start, /stop, /status) and the inline keyboard
callbacks attached to alerts and reports. Telegram retries any update that
is not answered with 200, so the endpoint always acknowledges.
"""

import asyncio
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from campussense.lib.config import get_notification_preferences_async
from campussense.lib.db import (
    add_chat_subscriber,
    deactivate_chat_subscriber,
    get_latest_reading,
)
from campussense.lib.exceptions import CampusSenseError
from campussense.lib.reports import format_report
from campussense.lib.telegram import TelegramClient, get_telegram_client
from campussense.logging import get_logger

logger = get_logger("server.api.telegram")

WELCOME_MESSAGE = (
    "✅ Subscribed to CampusSense alerts and reports.\n"
    "Use /status for current readings and /stop to unsubscribe."
)
STOPPED_MESSAGE = "🔕 Notifications stopped. Send /start to subscribe again."
STOP_HINT_MESSAGE = "To stop alerts, type */stop*"


async def _status_message() -> str:
    preferences = await get_notification_preferences_async()
    return format_report(await get_latest_reading(), preferences.timezone)


async def _reply(client: TelegramClient, chat_id: int | str, text: str) -> None:
    await asyncio.to_thread(client.send_message, chat_id, text)


async def handle_command(
    client: TelegramClient, chat_id: int | str, text: str
) -> None:
    """Run a bot command sent as a chat message."""
    # "/start@campus_bot payload" -> "/start"
    command = text.strip().split(maxsplit=1)[0].split("@", 1)[0].lower()

    if command == "/start":
        await add_chat_subscriber(chat_id)
        logger.info("Telegram chat %s subscribed", chat_id)
        await _reply(client, chat_id, WELCOME_MESSAGE)
    elif command == "/stop":
        await deactivate_chat_subscriber(chat_id)
        logger.info("Telegram chat %s unsubscribed", chat_id)
        await _reply(client, chat_id, STOPPED_MESSAGE)
    elif command == "/status":
        await _reply(client, chat_id, await _status_message())


async def handle_callback(
    client: TelegramClient, callback: dict[str, Any]
) -> None:
    """Answer an inline keyboard button press."""
    await asyncio.to_thread(client.answer_callback_query, str(callback["id"]))
    chat_id = callback["message"]["chat"]["id"]
    data = callback.get("data")

    if data == "/status":
        await _reply(client, chat_id, await _status_message())
    elif data == "/stop":
        await _reply(client, chat_id, STOP_HINT_MESSAGE)


async def telegram_webhook(request: Request) -> JSONResponse:
    """Process one Telegram update."""
    try:
        update = await request.json()
    except ValueError:
        return JSONResponse({"error": "Invalid JSON"}, status_code=400)

    client = get_telegram_client()
    if client is None or not isinstance(update, dict):
        return JSONResponse({"ok": True})

    try:
        if isinstance(update.get("callback_query"), dict):
            await handle_callback(client, update["callback_query"])
        elif isinstance(update.get("message"), dict):
            message = update["message"]
            text = message.get("text")
            if isinstance(text, str) and text.startswith("/"):
                await handle_command(client, message["chat"]["id"], text)
    except (KeyError, TypeError) as e:
        logger.warning("Malformed Telegram update: %s", e)
    except (CampusSenseError, OSError) as e:
        logger.error("Failed to handle Telegram update: %s", e)

    return JSONResponse({"ok": True})
