"""Ingestion service.

Subscribes to the sensor.reading topic, stores every reading, evaluates it
through the configured alert scope and publishes an alert event whenever
the engine decides an alert should go out.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

import aiosqlite
import redis

from campussense.lib.alerts import EvaluationResult, Triggered
from campussense.lib.config import get_last_alert_sent, get_settings, set_last_alert_sent
from campussense.lib.db import close_db, init_db, insert_reading
from campussense.lib.eventbus import (
    AlertEventPayload,
    EventPublisher,
    EventSubscriber,
    Topic,
)
from campussense.lib.exceptions import ConfigurationError, DatabaseError
from campussense.lib.reading import MetricReading
from campussense.lib.scope import AlertScope
from campussense.lib.service import run_service
from campussense.logging import get_logger

logger = get_logger("ingest.service")


class IngestService:
    """Processes readings of one scope, in arrival order."""

    def __init__(self, scope: AlertScope, publisher: EventPublisher):
        self._scope = scope
        self._publisher = publisher

    @property
    def scope(self) -> AlertScope:
        return self._scope

    async def _store(self, reading: MetricReading) -> None:
        try:
            await insert_reading(reading)
        except (aiosqlite.Error, DatabaseError, OSError) as e:
            logger.error("Failed to store reading from %s: %s", reading.location, e)

    async def _record_alert(self, reading: MetricReading, result: Triggered) -> None:
        try:
            await set_last_alert_sent(self._scope.name, reading.timestamp)
        except (aiosqlite.Error, DatabaseError, OSError) as e:
            logger.error("Failed to persist alert cooldown: %s", e)

        preferences = self._scope.preferences
        event = AlertEventPayload.from_triggered(
            self._scope.name,
            result,
            reading,
            timezone=preferences.timezone if preferences else None,
        )
        try:
            self._publisher.publish(Topic.ALERT, event)
        except redis.RedisError as e:
            logger.error("Failed to publish alert: %s", e)

    async def handle(
        self, payload: Mapping[str, Any], *, received_at: datetime | None = None
    ) -> EvaluationResult | None:
        """Store and evaluate one raw payload.

        Returns the engine result, or None when the payload had no usable
        values or the configuration could not be read.
        """
        reading = MetricReading.from_payload(payload, received_at=received_at)
        if not reading.values:
            logger.warning("Ignoring reading without numeric values: %s", dict(payload))
            return None

        await self._store(reading)

        try:
            result = await self._scope.evaluate(reading)
        except ConfigurationError as e:
            logger.error("Skipping evaluation: %s", e)
            return None

        if isinstance(result, Triggered):
            logger.info("Alert triggered for scope %s: %s", self._scope.name, result.message)
            await self._record_alert(reading, result)
        return result


async def run() -> None:
    """Run the ingestion service."""
    await init_db()
    publisher = EventPublisher()
    try:
        scope_name = get_settings().alerts.scope
        scope = AlertScope.from_settings(
            last_alert_sent_at=await get_last_alert_sent(scope_name)
        )
        publisher.connect()
        service = IngestService(scope, publisher)

        async with EventSubscriber(topics=[Topic.READING]) as subscriber:
            logger.info("Ingestion service started (scope %s)", scope_name)
            async for _topic, data in subscriber.receive():
                if not isinstance(data, dict):
                    logger.warning("Ignoring non-object reading payload")
                    continue
                await service.handle(data)
    finally:
        publisher.close()
        await close_db()
        logger.info("Ingestion service stopped")


def main() -> None:
    run_service(run, name="ingest")


if __name__ == "__main__":
    main()
