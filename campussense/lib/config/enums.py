"""Enumerations for the CampusSense application."""

from enum import StrEnum


class Metric(StrEnum):
    """Metric identifiers after payload normalization."""

    BMP_TEMP = "bmp_temp"
    DHT_TEMP = "dht_temp"
    HUMIDITY = "humidity"
    PRESSURE = "pressure"
    AQI = "aqi"
    UV = "uv"
    LIGHT_LEVEL = "light_level"
    RAIN_PERCENTAGE = "rain_percentage"


class Direction(StrEnum):
    """Which side of the limit counts as a crossing."""

    ABOVE = "above"  # crossed when value >= limit
    BELOW = "below"  # crossed when value <= limit

    @property
    def comparator(self) -> str:
        return ">=" if self is Direction.ABOVE else "<="


class AlertRate(StrEnum):
    """Minimum spacing between two delivered alerts."""

    IMMEDIATE = "immediate"
    FIFTEEN_MIN = "15min"
    THIRTY_MIN = "30min"
    HOURLY = "hourly"


class NotificationChannel(StrEnum):
    TELEGRAM = "telegram"
    WEBPUSH = "webpush"


class SettingsKey(StrEnum):
    """Valid DB settings keys (thresholds use threshold_key())."""

    REPORT_TIMES = "notification.report_times"
    ALERT_RATE = "notification.alert_rate"
    TIMEZONE = "notification.timezone"
    WINDOW_START = "notification.window_start"
    WINDOW_END = "notification.window_end"
    NOTIFICATION_ENABLED = "notification.enabled"


def threshold_key(metric_id: str) -> str:
    """Return the settings key holding the limit for a metric."""
    return f"threshold.{metric_id}"


def last_sent_key(scope: str) -> str:
    """Return the settings key holding the last alert time of a scope."""
    return f"alert.last_sent.{scope}"
