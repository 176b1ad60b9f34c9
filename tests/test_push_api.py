"""Tests for the web push subscription endpoints."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from campussense.lib.config import Settings
from campussense.lib.config.testing import set_settings
from campussense.lib.db import get_push_subscriptions
from campussense.server.api.push import get_public_key, subscribe, unsubscribe

SUBSCRIPTION = {
    "endpoint": "https://push.example/abc",
    "keys": {"p256dh": "BNc...", "auth": "tBH..."},
}


def make_request(body):
    request = MagicMock()
    request.json = AsyncMock(return_value=body)
    return request


class TestPublicKey:
    """Tests for GET /api/push/public-key."""

    @pytest.mark.asyncio
    async def test_not_configured(self):
        response = await get_public_key(MagicMock())

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_returns_key(self, test_db):
        set_settings(Settings(db_path=str(test_db), vapid_public_key="BPub"))

        response = await get_public_key(MagicMock())

        assert json.loads(response.body) == {"publicKey": "BPub"}


class TestSubscribe:
    """Tests for subscribe and unsubscribe."""

    @pytest.mark.asyncio
    async def test_subscribe(self):
        response = await subscribe(make_request(SUBSCRIPTION))

        assert response.status_code == 201
        assert await get_push_subscriptions() == [
            {"endpoint": "https://push.example/abc", "p256dh": "BNc...", "auth": "tBH..."}
        ]

    @pytest.mark.asyncio
    async def test_resubscribe_replaces_keys(self):
        await subscribe(make_request(SUBSCRIPTION))
        updated = {**SUBSCRIPTION, "keys": {"p256dh": "new", "auth": "new"}}

        await subscribe(make_request(updated))

        subscriptions = await get_push_subscriptions()
        assert len(subscriptions) == 1
        assert subscriptions[0]["p256dh"] == "new"

    @pytest.mark.asyncio
    async def test_rejects_plain_http_endpoint(self):
        body = {**SUBSCRIPTION, "endpoint": "http://push.example/abc"}

        response = await subscribe(make_request(body))

        assert response.status_code == 400
        assert await get_push_subscriptions() == []

    @pytest.mark.asyncio
    async def test_rejects_missing_keys(self):
        response = await subscribe(make_request({"endpoint": "https://push.example/a"}))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        await subscribe(make_request(SUBSCRIPTION))

        response = await unsubscribe(make_request({"endpoint": SUBSCRIPTION["endpoint"]}))
        again = await unsubscribe(make_request({"endpoint": SUBSCRIPTION["endpoint"]}))

        assert json.loads(response.body) == {"ok": True, "removed": True}
        assert json.loads(again.body) == {"ok": True, "removed": False}
