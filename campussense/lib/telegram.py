"""Minimal Telegram Bot API client over urllib.

Calls are synchronous; async callers run them through ``with_retry(...,
run_in_thread=True)`` or ``asyncio.to_thread``.
"""

import json
import urllib.error
import urllib.request
from typing import Any

from campussense.lib.config import get_settings
from campussense.lib.exceptions import DeliveryError
from campussense.logging import get_logger

logger = get_logger("lib.telegram")

API_BASE = "https://api.telegram.org"

BOT_COMMANDS = (
    {"command": "start", "description": "Start alerts and reports"},
    {"command": "status", "description": "Get current readings"},
    {"command": "stop", "description": "Stop notifications"},
)


def build_keyboard(dashboard_url: str) -> dict[str, Any]:
    """Inline keyboard attached to alerts and reports."""
    return {
        "inline_keyboard": [
            [{"text": "📊 Status", "callback_data": "/status"}],
            [{"text": "🌐 Dashboard", "url": dashboard_url}],
            [{"text": "🔕 Stop", "callback_data": "/stop"}],
        ]
    }


class TelegramClient:
    """Thin wrapper around the Bot API methods CampusSense uses."""

    def __init__(self, token: str, *, timeout: float = 10.0):
        self._token = token
        self._timeout = timeout

    def call(self, method: str, payload: dict[str, Any]) -> Any:
        """Invoke a Bot API method and return its ``result``.

        Raises:
            DeliveryError: If Telegram answers with an error.
            OSError: On network failures.
        """
        req = urllib.request.Request(
            f"{API_BASE}/bot{self._token}/{method}",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                body = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            # Telegram reports the reason in a JSON error body
            try:
                detail = json.loads(e.read().decode("utf-8")).get("description")
            except (ValueError, OSError):
                detail = None
            raise DeliveryError(
                f"Telegram {method} failed: {detail or e.reason}",
                status_code=e.code,
            ) from e
        except ValueError as e:
            raise DeliveryError(f"Telegram {method} returned invalid JSON") from e

        if not body.get("ok"):
            raise DeliveryError(
                f"Telegram {method} failed: {body.get('description')}",
                status_code=body.get("error_code"),
            )
        return body.get("result")

    def send_message(
        self,
        chat_id: int | str,
        text: str,
        *,
        keyboard: dict[str, Any] | None = None,
        markdown: bool = True,
    ) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if markdown:
            payload["parse_mode"] = "Markdown"
        if keyboard is not None:
            payload["reply_markup"] = keyboard
        self.call("sendMessage", payload)

    def answer_callback_query(self, callback_query_id: str) -> None:
        self.call("answerCallbackQuery", {"callback_query_id": callback_query_id})

    def set_webhook(self, url: str) -> None:
        self.call("setWebhook", {"url": url})
        logger.info("Telegram webhook set: %s", url)

    def set_commands(self) -> None:
        self.call("setMyCommands", {"commands": list(BOT_COMMANDS)})


def get_telegram_client() -> TelegramClient | None:
    """Return a client for the configured bot, or None without a token."""
    cfg = get_settings().notifications
    if not cfg.telegram.configured:
        return None
    return TelegramClient(
        cfg.telegram.bot_token.get_secret_value(), timeout=cfg.timeout_sec
    )
