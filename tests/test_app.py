"""Tests for the application factory and lifespan."""

from unittest.mock import MagicMock, patch

import pytest

from campussense.lib.config import Settings
from campussense.lib.config.testing import set_settings
from campussense.lib.exceptions import DeliveryError
from campussense.server.entrypoint import (
    WEBHOOK_PATH,
    _register_telegram_webhook,
    create_app,
)


class TestCreateApp:
    """Tests for create_app."""

    def test_routes(self):
        with patch("campussense.server.entrypoint.configure"):
            app = create_app()

        paths = {route.path for route in app.routes}
        assert {
            "/health",
            "/api/data",
            "/api/graph",
            "/api/get-thresholds",
            "/api/set-thresholds",
            "/api/get-report-time",
            "/api/save-settings",
            "/api/notifications",
            "/api/notifications/read/{notification_id:int}",
            WEBHOOK_PATH,
            "/api/push/public-key",
            "/api/push/subscribe",
            "/api/push/unsubscribe",
        } <= paths


class TestRegisterWebhook:
    """Tests for Telegram webhook registration at startup."""

    @pytest.mark.asyncio
    async def test_skipped_without_public_url(self, test_db, caplog):
        set_settings(Settings(db_path=str(test_db), telegram_bot_token="1:x"))

        with patch(
            "campussense.server.entrypoint.get_telegram_client"
        ) as mock_get_client:
            await _register_telegram_webhook()

        mock_get_client.return_value.set_webhook.assert_not_called()
        assert "not registered" in caplog.text

    @pytest.mark.asyncio
    async def test_registers_webhook_and_commands(self, test_db):
        set_settings(
            Settings(
                db_path=str(test_db),
                telegram_bot_token="1:x",
                public_url="https://campus.example/",
            )
        )
        client = MagicMock()

        with patch(
            "campussense.server.entrypoint.get_telegram_client", return_value=client
        ):
            await _register_telegram_webhook()

        client.set_webhook.assert_called_once_with(
            "https://campus.example/api/telegram-webhook"
        )
        client.set_commands.assert_called_once()

    @pytest.mark.asyncio
    async def test_registration_failure_is_logged(self, test_db, caplog):
        set_settings(
            Settings(
                db_path=str(test_db),
                telegram_bot_token="1:x",
                public_url="https://campus.example",
            )
        )
        client = MagicMock()
        client.set_webhook.side_effect = DeliveryError("Unauthorized", status_code=401)

        with patch(
            "campussense.server.entrypoint.get_telegram_client", return_value=client
        ):
            await _register_telegram_webhook()

        assert "Failed to register Telegram webhook" in caplog.text
