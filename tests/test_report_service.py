"""Tests for status report formatting and the report scheduler."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from aiosqlite import OperationalError

from campussense.lib.config import Metric, save_notification_preferences
from campussense.lib.db import insert_reading
from campussense.lib.reading import MetricReading
from campussense.lib.reports import (
    NO_DATA_MESSAGE,
    MessageKind,
    format_metric,
    format_report,
    format_structured,
    get_rain_status,
)
from campussense.reports.service import ReportScheduler

ROW = {
    "bmp_temp": 24.25,
    "dht_temp": None,
    "humidity": 61.0,
    "aqi": 312.4,
    "uv": 7.5,
    "light_level": 40.0,
    "rain_percentage": 30.0,
    "pressure": 1008.3,
    "recording_time": "2024-06-15 12:00:00",
}


class TestRainStatus:
    """Tests for rain percentage buckets."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, "Dry"),
            (0.5, "Light Moisture"),
            (25, "Light Moisture"),
            (25.1, "Moderate Rain"),
            (70, "Moderate Rain"),
            (70.1, "Heavy Rain"),
            (None, "N/A"),
            ("wet", "N/A"),
        ],
    )
    def test_buckets(self, value, expected):
        assert get_rain_status(value) == expected


class TestFormatReport:
    """Tests for format_report and format_structured."""

    def test_format_metric(self):
        assert format_metric(Metric.AQI, 312.6) == "313 PPM"
        assert format_metric(Metric.PRESSURE, 1008.34) == "1008.3 hPa"
        assert format_metric(Metric.UV, 7.5) == "7.5"
        assert format_metric(Metric.DHT_TEMP, None) == "N/A"

    def test_report_lines(self):
        text = format_report(ROW, "Asia/Kolkata")

        assert text.splitlines() == [
            "📊 *Latest Status* (15/06/2024 17:30 Asia/Kolkata)",
            "",
            "🌡 BMP Temp: 24.2°C",
            "🌡 DHT Temp: N/A",
            "💧 Humidity: 61.0%",
            "🫁 AQI: 312 PPM",
            "☀️ UV: 7.5",
            "💡 Light: 40.0%",
            "🌧 Rain: *Moderate Rain*",
            "📉 Pressure: 1008.3 hPa",
        ]

    def test_no_data(self):
        assert format_report(None, "UTC") == NO_DATA_MESSAGE

    def test_structured_message(self):
        text = format_structured(
            MessageKind.REPORT,
            ["line one", "line two"],
            datetime(2024, 6, 15, 12, 0, 5, tzinfo=UTC),
            "Asia/Kolkata",
        )

        assert text == (
            "*📋 REPORT*\n\nline one\nline two\n\n_Time: 17:30:05 (Asia/Kolkata)_"
        )


class TestReportScheduler:
    """Tests for ReportScheduler.tick."""

    @pytest_asyncio.fixture
    async def report_times(self):
        await save_notification_preferences(
            report_times=["09:00", "18:00"], timezone="UTC"
        )

    @pytest.mark.asyncio
    async def test_sends_at_report_time(self, report_times):
        await insert_reading(
            MetricReading(
                values={"aqi": 300, "rain_percentage": 0},
                timestamp=datetime(2024, 6, 15, 8, 59, tzinfo=UTC),
            )
        )
        notifier = AsyncMock()
        scheduler = ReportScheduler(notifier)

        sent = await scheduler.tick(datetime(2024, 6, 15, 9, 0, 20, tzinfo=UTC))

        assert sent is True
        text = notifier.broadcast.await_args.args[0]
        assert text.startswith("*📋 REPORT*\n\n📊 *Latest Status* (15/06/2024 08:59 UTC)")
        assert "🌧 Rain: *Dry*" in text
        assert text.endswith("_Time: 09:00:20 (UTC)_")

    @pytest.mark.asyncio
    async def test_sends_once_per_report_time(self, report_times):
        notifier = AsyncMock()
        scheduler = ReportScheduler(notifier)

        first = await scheduler.tick(datetime(2024, 6, 15, 9, 0, 0, tzinfo=UTC))
        second = await scheduler.tick(datetime(2024, 6, 15, 9, 0, 40, tzinfo=UTC))
        next_day = await scheduler.tick(datetime(2024, 6, 16, 9, 0, 0, tzinfo=UTC))

        assert (first, second, next_day) == (True, False, True)
        assert notifier.broadcast.await_count == 2

    @pytest.mark.asyncio
    async def test_no_report_between_times(self, report_times):
        notifier = AsyncMock()

        sent = await ReportScheduler(notifier).tick(
            datetime(2024, 6, 15, 12, 0, tzinfo=UTC)
        )

        assert sent is False
        notifier.broadcast.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_report_without_data(self, report_times):
        notifier = AsyncMock()

        await ReportScheduler(notifier).tick(datetime(2024, 6, 15, 18, 0, tzinfo=UTC))

        assert NO_DATA_MESSAGE in notifier.broadcast.await_args.args[0]

    @pytest.mark.asyncio
    async def test_report_time_in_preference_timezone(self):
        await save_notification_preferences(
            report_times=["09:00"], timezone="Asia/Kolkata"
        )
        notifier = AsyncMock()

        sent = await ReportScheduler(notifier).tick(
            datetime(2024, 6, 15, 3, 30, tzinfo=UTC)
        )

        assert sent is True

    @pytest.mark.asyncio
    async def test_failed_report_is_retried_next_tick(self, report_times):
        notifier = AsyncMock()
        scheduler = ReportScheduler(notifier)

        with patch(
            "campussense.reports.service.get_latest_reading",
            new_callable=AsyncMock,
            side_effect=OperationalError("database is locked"),
        ):
            with pytest.raises(OperationalError):
                await scheduler.tick(datetime(2024, 6, 15, 9, 0, 0, tzinfo=UTC))

        sent = await scheduler.tick(datetime(2024, 6, 15, 9, 0, 30, tzinfo=UTC))

        assert sent is True
        notifier.broadcast.assert_awaited_once()
