"""Development publisher of mock sensor readings.

Publishes a random-walk reading on the sensor.reading topic every
SIMULATOR_FREQUENCY_SEC seconds. Enabled with MOCK_SENSORS=1.

Run: python -m campussense.simulator
"""

import asyncio

import redis

from campussense.lib.config import get_settings
from campussense.lib.eventbus import EventPublisher, SensorReadingEvent, Topic
from campussense.lib.mock import MockSensorStation
from campussense.lib.service import run_service
from campussense.lib.utils import utcnow
from campussense.logging import get_logger

logger = get_logger("simulator")


def publish_once(
    station: MockSensorStation, publisher: EventPublisher, location: str
) -> SensorReadingEvent:
    event = SensorReadingEvent(
        values=station.read(), recording_time=utcnow(), location=location
    )
    publisher.publish(Topic.READING, event)
    return event


async def run() -> None:
    """Publish mock readings until cancelled."""
    cfg = get_settings().simulator
    station = MockSensorStation()
    publisher = EventPublisher()
    publisher.connect()
    logger.info("Simulator started (every %gs)", cfg.frequency_sec)
    try:
        while True:
            try:
                publish_once(station, publisher, cfg.location)
            except redis.RedisError as e:
                logger.warning("Failed to publish mock reading: %s", e)
            await asyncio.sleep(cfg.frequency_sec)
    finally:
        publisher.close()


def main() -> None:
    run_service(
        run,
        enabled=lambda: get_settings().simulator.enabled,
        name="simulator",
    )


if __name__ == "__main__":
    main()
