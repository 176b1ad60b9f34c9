"""Type definitions for database operations."""

from typing import Any, TypedDict

type SQLParams = tuple[Any, ...] | dict[str, Any]
"""SQL parameter types: positional tuple or named dict for query binding."""


class SensorRow(TypedDict):
    """Latest sensor_data row, metric columns may be NULL."""

    location: str
    bmp_temp: float | None
    dht_temp: float | None
    humidity: float | None
    pressure: float | None
    aqi: float | None
    uv: float | None
    light_level: float | None
    rain_percentage: float | None
    recording_time: str
    epoch: int


class GraphPoint(TypedDict):
    recording_time: str
    epoch: int
    value: float


class NotificationRow(TypedDict):
    id: int
    title: str
    message: str
    type: str
    is_read: bool
    scope: str
    created_at: str


class PushSubscriptionRow(TypedDict):
    endpoint: str
    p256dh: str
    auth: str
