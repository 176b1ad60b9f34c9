"""Mock sensor station for development.

Generates realistic multi-metric readings without hardware, keyed the way
the campus gateways report them. Used by the simulator when MOCK_SENSORS=1.
"""

import random
from dataclasses import dataclass


def _random_walk(
    current: float, drift: float, min_val: float, max_val: float
) -> float:
    """Generate next value using random walk with bounds."""
    change = random.gauss(0, drift)
    new_val = current + change
    return max(min_val, min(max_val, new_val))


@dataclass(frozen=True, slots=True)
class _Walk:
    """Random walk parameters for one device key."""

    start: tuple[float, float]
    drift: float
    bounds: tuple[float, float]
    digits: int = 1


_WALKS: dict[str, _Walk] = {
    "bmp_temp": _Walk((24.0, 27.0), 0.15, (15.0, 40.0)),
    "dht_temp": _Walk((24.0, 27.0), 0.15, (15.0, 40.0)),
    "humidity": _Walk((50.0, 65.0), 0.4, (20.0, 100.0)),
    "pressure": _Walk((1005.0, 1012.0), 0.3, (970.0, 1030.0)),
    "co2_ppm": _Walk((380.0, 430.0), 8.0, (300.0, 700.0), digits=0),
    "uv_index": _Walk((2.0, 5.0), 0.2, (0.0, 11.0)),
    "light_pcnt": _Walk((40.0, 70.0), 1.5, (0.0, 100.0)),
    "rain_pcnt": _Walk((0.0, 10.0), 1.0, (0.0, 100.0)),
}


class MockSensorStation:
    """Mock gateway that produces one payload per call to read()."""

    def __init__(self) -> None:
        self._values = {
            key: random.uniform(*walk.start) for key, walk in _WALKS.items()
        }

    def read(self) -> dict[str, float]:
        """Advance every metric and return a device-keyed payload."""
        payload = {}
        for key, walk in _WALKS.items():
            self._values[key] = _random_walk(
                self._values[key], walk.drift, *walk.bounds
            )
            payload[key] = round(self._values[key], walk.digits)
        return payload
