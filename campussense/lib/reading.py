"""Domain model for a single multi-metric sensor reading."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from types import MappingProxyType
from typing import Any

from campussense.lib.config.constants import DEVICE_KEYS
from campussense.lib.utils import as_utc, safe_float
from campussense.logging import get_logger

logger = get_logger("lib.reading")

# Payload fields that are never metric values
_RESERVED_KEYS = frozenset({"location", "timestamp", "recording_time", "id"})

_DEFAULT_LOCATION = "unknown"

# Device clocks may run slightly ahead; anything further is not trusted
MAX_CLOCK_SKEW = timedelta(minutes=5)


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO string or epoch seconds; None if malformed."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    epoch = safe_float(value)
    if epoch is not None:
        try:
            return datetime.fromtimestamp(epoch, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    return None


@dataclass(frozen=True, slots=True)
class MetricReading:
    """Snapshot of metric values from one device at one moment.

    Absent and non-finite values are dropped at construction, and naive
    timestamps are taken as UTC.
    """

    values: Mapping[str, float]
    timestamp: datetime
    location: str = _DEFAULT_LOCATION

    def __post_init__(self) -> None:
        cleaned = {}
        for key, value in self.values.items():
            number = safe_float(value)
            if number is not None:
                cleaned[str(key)] = number
        object.__setattr__(self, "values", MappingProxyType(cleaned))
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))

    def get(self, metric_id: str) -> float | None:
        return self.values.get(metric_id)

    def __contains__(self, metric_id: object) -> bool:
        return metric_id in self.values

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        *,
        received_at: datetime | None = None,
    ) -> MetricReading:
        """Build a reading from a raw device payload. Never raises.

        Device keys are mapped to metric identifiers (``co2_ppm`` becomes
        ``aqi`` and so on). Unknown numeric keys are kept under their own
        name so rules can target new metrics without code changes.

        The device timestamp is used unless it is missing, malformed or more
        than ``MAX_CLOCK_SKEW`` ahead of ``received_at`` (default: now), in
        which case the receive time is used.
        """
        received_at = as_utc(received_at or datetime.now(UTC))
        values: dict[str, float] = {}
        for key, value in payload.items():
            if not isinstance(key, str) or key in _RESERVED_KEYS:
                continue
            number = safe_float(value)
            if number is None:
                continue
            metric_id = DEVICE_KEYS.get(key, key)
            # Canonical keys win over device aliases for the same metric
            if metric_id in values and key != metric_id:
                continue
            values[metric_id] = number

        timestamp = _parse_timestamp(
            payload.get("timestamp", payload.get("recording_time"))
        )
        if timestamp is None:
            timestamp = received_at
        elif as_utc(timestamp) - received_at > MAX_CLOCK_SKEW:
            logger.warning(
                "Reading timestamp %s is ahead of receive time %s, using receive time",
                timestamp.isoformat(),
                received_at.isoformat(),
            )
            timestamp = received_at

        location = payload.get("location")
        if not isinstance(location, str) or not location.strip():
            location = _DEFAULT_LOCATION

        return cls(
            values=values,
            timestamp=timestamp,
            location=location.strip(),
        )
