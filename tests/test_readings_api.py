"""Tests for the reading and in-app notification endpoints."""

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from campussense.lib.db import insert_notification, insert_reading
from campussense.lib.reading import MetricReading
from campussense.server.api.notifications import list_notifications, mark_read
from campussense.server.api.readings import get_graph_data, get_latest_data


def make_request(query_params=None, path_params=None):
    request = MagicMock()
    request.query_params = query_params or {}
    request.path_params = path_params or {}
    return request


async def store(minutes_ago: int, **values: float) -> None:
    await insert_reading(
        MetricReading(
            values=values,
            timestamp=datetime.now(UTC) - timedelta(minutes=minutes_ago),
            location="lab",
        )
    )


class TestLatestData:
    """Tests for GET /api/latest."""

    @pytest.mark.asyncio
    async def test_no_content_without_readings(self):
        response = await get_latest_data(make_request())

        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_returns_newest_reading(self):
        await store(10, aqi=300)
        await store(1, aqi=320, uv=4)

        response = await get_latest_data(make_request())

        data = json.loads(response.body)
        assert data["aqi"] == 320.0
        assert data["uv"] == 4.0
        assert data["bmp_temp"] is None
        assert data["location"] == "lab"


class TestGraphData:
    """Tests for GET /api/graph."""

    @pytest.mark.asyncio
    async def test_range_filter(self):
        await store(120, aqi=100)
        await store(30, aqi=200)
        await store(2, uv=5)

        response = await get_graph_data(
            make_request({"metric": "aqi", "range": "1h"})
        )

        data = json.loads(response.body)
        assert data["metric"] == "aqi"
        assert [p["value"] for p in data["points"]] == [200.0]

    @pytest.mark.asyncio
    async def test_unknown_metric(self):
        response = await get_graph_data(make_request({"metric": "noise"}))

        assert response.status_code == 400
        assert "Unknown metric" in json.loads(response.body)["error"]

    @pytest.mark.asyncio
    async def test_unknown_range(self):
        response = await get_graph_data(
            make_request({"metric": "aqi", "range": "1y"})
        )

        assert response.status_code == 400
        assert "range must be one of" in json.loads(response.body)["error"]


class TestNotificationsApi:
    """Tests for the in-app notification endpoints."""

    @pytest.mark.asyncio
    async def test_lists_newest_first(self):
        base = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)
        for i in range(3):
            await insert_notification(
                "Threshold Alert", f"alert {i}", created_at=base + timedelta(minutes=i)
            )

        response = await list_notifications(make_request({"limit": "2"}))

        data = json.loads(response.body)
        assert [n["message"] for n in data] == ["alert 2", "alert 1"]

    @pytest.mark.asyncio
    async def test_invalid_limit(self):
        response = await list_notifications(make_request({"limit": "ten"}))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_mark_read(self):
        notification_id = await insert_notification("Threshold Alert", "aqi high")

        response = await mark_read(
            make_request(path_params={"notification_id": notification_id})
        )
        unread = await list_notifications(make_request({"unread": "1"}))

        assert response.status_code == 200
        assert json.loads(unread.body) == []

    @pytest.mark.asyncio
    async def test_mark_read_missing(self):
        response = await mark_read(make_request(path_params={"notification_id": 999}))

        assert response.status_code == 404
