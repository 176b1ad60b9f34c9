"""Redis-based event bus between sensors, the ingestion service and dispatch.

Sensor gateways (or the simulator) publish raw readings on
``sensor.reading``. The ingestion service consumes them and publishes
``alert`` events, which the notification service fans out to subscribers.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal, Self

import redis
import redis.asyncio as aioredis

from campussense.lib.alerts import Alert, Triggered
from campussense.lib.config import Direction, get_settings
from campussense.lib.reading import MetricReading
from campussense.lib.utils import as_utc, from_sqlite, to_sqlite
from campussense.logging import get_logger

logger = get_logger("lib.eventbus")


class Topic(StrEnum):
    """Event bus topics."""

    READING = "sensor.reading"
    ALERT = "alert"


@dataclass(frozen=True, slots=True)
class Event(ABC):
    """Base class for all event bus payloads."""

    @property
    @abstractmethod
    def event_type(self) -> str:
        """Discriminator field for event type identification."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for JSON serialization."""


@dataclass(frozen=True, slots=True)
class SensorReadingEvent(Event):
    """Raw device reading, keyed the way devices report metrics."""

    values: Mapping[str, float]
    recording_time: datetime
    location: str = "unknown"

    @property
    def event_type(self) -> Literal["sensor_reading"]:
        return "sensor_reading"

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.values,
            "type": self.event_type,
            "location": self.location,
            "timestamp": as_utc(self.recording_time).isoformat(),
        }


@dataclass(frozen=True, slots=True)
class AlertEventPayload(Event):
    """A delivered alert decision of one scope."""

    scope: str
    message: str
    recording_time: datetime
    alerts: tuple[Alert, ...] = field(default=())
    timezone: str | None = None
    location: str = "unknown"

    @property
    def event_type(self) -> Literal["alert"]:
        return "alert"

    @classmethod
    def from_triggered(
        cls,
        scope: str,
        result: Triggered,
        reading: MetricReading,
        *,
        timezone: str | None = None,
    ) -> Self:
        return cls(
            scope=scope,
            message=result.message,
            recording_time=reading.timestamp,
            alerts=result.alerts,
            timezone=timezone,
            location=reading.location,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Rebuild an event received from the bus.

        Raises:
            KeyError, TypeError, ValueError: On a malformed payload.
        """
        alerts = tuple(
            Alert(
                metric_id=str(item["metric_id"]),
                observed_value=float(item["value"]),
                limit=float(item["limit"]),
                direction=Direction(item["direction"]),
                message=str(item["message"]),
            )
            for item in data.get("alerts", ())
        )
        return cls(
            scope=str(data["scope"]),
            message=str(data["message"]),
            recording_time=from_sqlite(data["recording_time"]),
            alerts=alerts,
            timezone=data.get("timezone"),
            location=str(data.get("location") or "unknown"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "scope": self.scope,
            "message": self.message,
            "recording_time": to_sqlite(self.recording_time),
            "timezone": self.timezone,
            "location": self.location,
            "alerts": [
                {
                    "metric_id": a.metric_id,
                    "value": a.observed_value,
                    "limit": a.limit,
                    "direction": a.direction.value,
                    "message": a.message,
                }
                for a in self.alerts
            ],
        }


# Type alias for any concrete event type
type AnyEvent = SensorReadingEvent | AlertEventPayload


class EventPublisher:
    """Publishes events to the event bus."""

    def __init__(self) -> None:
        self._redis_url = get_settings().eventbus.redis_url
        self._client: redis.Redis | None = None

    def connect(self) -> None:
        """Connect to Redis."""
        self._client = redis.from_url(self._redis_url)
        logger.info("Event publisher connected to Redis")

    def publish(self, topic: Topic, event: Event) -> None:
        """Publish an event on a topic. A no-op until connect() is called.

        Raises:
            redis.RedisError: If Redis rejects or drops the publish.
        """
        if self._client is None:
            return
        message = json.dumps(event.to_dict())
        self._client.publish(topic, message)
        logger.debug("Published to %s: %s", topic, message)

    def close(self) -> None:
        """Close the publisher connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
        logger.info("Event publisher closed")


class EventSubscriber:
    """Subscribes to topics on the event bus."""

    def __init__(self, topics: list[Topic] | None = None) -> None:
        """Initialize subscriber.

        Args:
            topics: List of topics to subscribe to. If None, subscribes to all.
        """
        self._redis_url = get_settings().eventbus.redis_url
        self._topics = topics or list(Topic)
        self._client: aioredis.Redis | None = None
        self._pubsub: aioredis.client.PubSub | None = None

    async def connect(self) -> None:
        """Connect to Redis and subscribe to topics."""
        self._client = aioredis.from_url(self._redis_url)
        self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(*self._topics)
        logger.info(
            "Event subscriber connected to Redis, topics: %s",
            ", ".join(self._topics),
        )

    async def receive(self) -> AsyncIterator[tuple[Topic, Any]]:
        """Async iterator that yields (topic, data) tuples as they arrive."""
        if self._pubsub is None:
            return

        async for message in self._pubsub.listen():
            if message["type"] != "message":
                continue

            try:
                topic = Topic(message["channel"].decode())
                data = json.loads(message["data"].decode())
            except (ValueError, UnicodeDecodeError) as e:
                logger.warning("Invalid message: %s", e)
                continue
            yield topic, data

    async def close(self) -> None:
        """Close the subscriber connection."""
        if self._pubsub is not None:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.info("Event subscriber closed")

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()
