"""Sensor reading queries."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import cast

from campussense.lib.config import METRICS, Metric
from campussense.lib.db.connection import get_db, load_template
from campussense.lib.db.types import GraphPoint, SensorRow
from campussense.lib.exceptions import ValidationError
from campussense.lib.reading import MetricReading
from campussense.lib.utils import as_utc, to_sqlite, utcnow

# Stored metric columns, in table order
SENSOR_COLUMNS: tuple[str, ...] = tuple(m.value for m in METRICS)

# Graph range name -> lookback; "today" is resolved per call
_RANGES: dict[str, timedelta | None] = {
    "5m": timedelta(minutes=5),
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "today": None,
    "7d": timedelta(days=7),
}

GRAPH_RANGES: tuple[str, ...] = tuple(_RANGES)

_INSERT_SQL = (
    f"INSERT INTO sensor_data (location, {', '.join(SENSOR_COLUMNS)}, recording_time) "
    f"VALUES (?, {', '.join('?' for _ in SENSOR_COLUMNS)}, ?)"
)


def resolve_range(range_name: str, now: datetime | None = None) -> datetime:
    """Return the start of a graph range.

    Raises:
        ValidationError: If the range name is unknown.
    """
    if range_name not in _RANGES:
        raise ValidationError(
            f"range must be one of: {', '.join(GRAPH_RANGES)}"
        )
    now = as_utc(now or utcnow())
    lookback = _RANGES[range_name]
    if lookback is None:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    return now - lookback


async def insert_reading(reading: MetricReading) -> int:
    """Persist a reading. Metrics without a column are not stored."""
    params = (
        reading.location,
        *(reading.get(column) for column in SENSOR_COLUMNS),
        to_sqlite(reading.timestamp),
    )
    async with get_db() as db:
        return await db.insert(_INSERT_SQL, params)


async def get_latest_reading() -> SensorRow | None:
    """Return the most recent sensor_data row."""
    async with get_db() as db:
        row = await db.fetchone(load_template("sensor_latest_recording.sql"))
        return cast(SensorRow | None, row)


async def get_metric_history(
    metric: str,
    range_name: str,
    *,
    now: datetime | None = None,
) -> list[GraphPoint]:
    """Return the time series of one metric over a named range.

    Raises:
        ValidationError: On an unknown metric or range.
    """
    if metric not in SENSOR_COLUMNS:
        raise ValidationError(f"Unknown metric: {metric}")
    since = resolve_range(range_name, now)
    # Column name comes from the registry whitelist above
    sql = (
        f"SELECT recording_time, "
        f"CAST(strftime('%s', recording_time) AS INTEGER) AS epoch, "
        f"{Metric(metric).value} AS value "
        f"FROM sensor_data "
        f"WHERE recording_time >= ? AND {Metric(metric).value} IS NOT NULL "
        f"ORDER BY recording_time ASC"
    )
    async with get_db() as db:
        rows = await db.fetchall(sql, (to_sqlite(since),))
        return cast(list[GraphPoint], rows)
