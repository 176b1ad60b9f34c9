"""Tests for report time parsing, notification windows and cooldowns."""

from datetime import UTC, datetime, timedelta

import pytest

from campussense.lib.gating import (
    CooldownTracker,
    NotifyWindow,
    cooldown_interval,
    local_hhmm,
    normalize_time,
    normalize_times,
    parse_hhmm,
)

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


class TestTimeParsing:
    """Tests for HH:MM normalization."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("09:05", "09:05"),
            ("9:05", "09:05"),
            ("09:05:30", "09:05"),
            (" 18:00 ", "18:00"),
            ("24:00", None),
            ("12:60", None),
            ("noon", None),
            ("", None),
            (None, None),
            (900, None),
        ],
    )
    def test_normalize_time(self, value, expected):
        assert normalize_time(value) == expected

    def test_parse_hhmm(self):
        assert parse_hhmm("00:00") == 0
        assert parse_hhmm("23:59") == 23 * 60 + 59

    def test_parse_hhmm_rejects_garbage(self):
        with pytest.raises(ValueError, match="Invalid time of day"):
            parse_hhmm("25:00")

    def test_normalize_times_sorts_and_dedupes(self):
        """Invalid entries are dropped and the rest sorted."""
        result = normalize_times(["18:00", "9:00", "bogus", "09:00", "12:00"])

        assert result == ("09:00", "12:00", "18:00")

    def test_normalize_times_from_stored_string(self):
        assert normalize_times("18:00,09:00") == ("09:00", "18:00")

    def test_normalize_times_none(self):
        assert normalize_times(None) == ()


class TestNotifyWindow:
    """Tests for NotifyWindow."""

    def test_same_day_window_is_inclusive(self):
        window = NotifyWindow("09:00", "18:00")

        assert window.contains("09:00")
        assert window.contains("18:00")
        assert not window.contains("08:59")
        assert not window.contains("18:01")
        assert not window.overnight

    def test_overnight_window_wraps_midnight(self):
        window = NotifyWindow("22:00", "06:00")

        assert window.overnight
        assert window.contains("23:30")
        assert window.contains("00:00")
        assert window.contains("06:00")
        assert not window.contains("12:00")

    def test_single_minute_window(self):
        window = NotifyWindow("12:00", "12:00")

        assert window.contains("12:00")
        assert not window.contains("12:01")

    def test_normalizes_bounds(self):
        window = NotifyWindow("9:00", "17:30:00")

        assert window == NotifyWindow("09:00", "17:30")

    def test_rejects_invalid_bounds(self):
        with pytest.raises(ValueError, match="start"):
            NotifyWindow("nope", "06:00")

    def test_from_report_times(self):
        window = NotifyWindow.from_report_times(["18:00", "09:00", "12:00"])

        assert window == NotifyWindow("09:00", "18:00")

    def test_from_empty_report_times_spans_whole_day(self):
        window = NotifyWindow.from_report_times([])

        assert (window.start, window.end) == ("00:00", "23:59")


class TestLocalTime:
    """Tests for local_hhmm."""

    def test_converts_to_timezone(self):
        assert local_hhmm(NOW, "Asia/Kolkata") == "17:30"

    def test_naive_datetime_is_utc(self):
        assert local_hhmm(NOW.replace(tzinfo=None), "UTC") == "12:00"


class TestCooldown:
    """Tests for cooldown intervals and CooldownTracker."""

    @pytest.mark.parametrize(
        ("rate", "expected"),
        [
            ("immediate", timedelta(seconds=60)),
            ("15min", timedelta(minutes=15)),
            ("30min", timedelta(minutes=30)),
            ("hourly", timedelta(hours=1)),
        ],
    )
    def test_cooldown_interval(self, rate, expected):
        assert cooldown_interval(rate) == expected

    def test_unknown_rate(self):
        with pytest.raises(ValueError, match="Unknown alert rate"):
            cooldown_interval("daily")

    def test_fresh_tracker_is_never_active(self):
        tracker = CooldownTracker()

        assert tracker.last_alert_sent_at is None
        assert not tracker.is_active(NOW, timedelta(hours=1))

    def test_active_until_interval_elapses(self):
        tracker = CooldownTracker()
        tracker.record(NOW)

        assert tracker.is_active(NOW + timedelta(seconds=59), timedelta(seconds=60))
        assert not tracker.is_active(NOW + timedelta(seconds=60), timedelta(seconds=60))

    def test_record_never_moves_backward(self):
        tracker = CooldownTracker(NOW)

        tracker.record(NOW - timedelta(minutes=5))

        assert tracker.last_alert_sent_at == NOW

    def test_seed_none_keeps_value(self):
        tracker = CooldownTracker(NOW)

        tracker.seed(None)

        assert tracker.last_alert_sent_at == NOW

    def test_naive_timestamps_are_utc(self):
        tracker = CooldownTracker(NOW.replace(tzinfo=None))

        assert tracker.last_alert_sent_at == NOW
        assert tracker.last_alert_sent_at.tzinfo is UTC
