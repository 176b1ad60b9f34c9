"""Human-readable status reports and structured chat messages."""

from collections.abc import Mapping, Sequence
from datetime import datetime
from enum import StrEnum
from typing import Any
from zoneinfo import ZoneInfo

from campussense.lib.config import METRICS, Metric
from campussense.lib.utils import as_utc, from_sqlite, safe_float

NO_DATA_MESSAGE = "No sensor data available."

# Report line order and icon per metric; rain is rendered as a status word
_REPORT_LINES: tuple[tuple[str, Metric], ...] = (
    ("🌡", Metric.BMP_TEMP),
    ("🌡", Metric.DHT_TEMP),
    ("💧", Metric.HUMIDITY),
    ("🫁", Metric.AQI),
    ("☀️", Metric.UV),
    ("💡", Metric.LIGHT_LEVEL),
    ("🌧", Metric.RAIN_PERCENTAGE),
    ("📉", Metric.PRESSURE),
)


class MessageKind(StrEnum):
    ALERT = "🚨 ALERT"
    REPORT = "📋 REPORT"


def get_rain_status(percentage: Any) -> str:
    """Bucket a rain sensor percentage into a status word."""
    p = safe_float(percentage)
    if p is None:
        return "N/A"
    if p == 0:
        return "Dry"
    if p <= 25:
        return "Light Moisture"
    if p <= 70:
        return "Moderate Rain"
    return "Heavy Rain"


def format_metric(metric: Metric, value: Any) -> str:
    """Format a value with the registry precision and unit, or N/A."""
    number = safe_float(value)
    spec = METRICS[metric]
    if number is None:
        return "N/A"
    return f"{number:.{spec.digits}f}{spec.unit}"


def _local(moment: datetime, timezone: str) -> datetime:
    return as_utc(moment).astimezone(ZoneInfo(timezone))


def format_report(row: Mapping[str, Any] | None, timezone: str) -> str:
    """Format the latest sensor row as a Markdown status message."""
    if not row:
        return NO_DATA_MESSAGE

    recorded = row.get("recording_time")
    when = (
        _local(from_sqlite(recorded), timezone).strftime("%d/%m/%Y %H:%M")
        if isinstance(recorded, str)
        else "unknown time"
    )

    lines = [f"📊 *Latest Status* ({when} {timezone})", ""]
    for icon, metric in _REPORT_LINES:
        label = METRICS[metric].label
        if metric is Metric.RAIN_PERCENTAGE:
            lines.append(f"{icon} {label}: *{get_rain_status(row.get(metric))}*")
        else:
            lines.append(f"{icon} {label}: {format_metric(metric, row.get(metric))}")
    return "\n".join(lines)


def format_structured(
    kind: MessageKind,
    lines: Sequence[str],
    moment: datetime,
    timezone: str,
) -> str:
    """Wrap message lines with a bold title and a local-time footer."""
    body = "\n".join(lines)
    local_time = _local(moment, timezone).strftime("%H:%M:%S")
    return f"*{kind}*\n\n{body}\n\n_Time: {local_time} ({timezone})_"
