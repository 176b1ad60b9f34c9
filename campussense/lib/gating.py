"""Delivery gating helpers: report times, notification windows and cooldowns.

Times of day are handled as ``HH:MM`` strings in the preference timezone.
Everything here is pure so the alert engine can stay free of I/O.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Self
from zoneinfo import ZoneInfo

from campussense.lib.utils import as_utc

# Accepts "9:05", "09:05" and "09:05:00"; seconds are dropped
_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")

# Alert rate -> minimum spacing between two delivered alerts
RATE_INTERVALS: dict[str, timedelta] = {
    "immediate": timedelta(seconds=60),
    "15min": timedelta(minutes=15),
    "30min": timedelta(minutes=30),
    "hourly": timedelta(hours=1),
}

_FULL_DAY = ("00:00", "23:59")


def normalize_time(value: object) -> str | None:
    """Normalize a time of day to ``HH:MM``, or None if it is not one."""
    if not isinstance(value, str):
        return None
    match = _TIME_PATTERN.match(value.strip())
    if match is None:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def parse_hhmm(value: str) -> int:
    """Return minutes since midnight for a time of day.

    Raises:
        ValueError: If the value is not a valid time of day.
    """
    normalized = normalize_time(value)
    if normalized is None:
        raise ValueError(f"Invalid time of day: {value!r}")
    hour, minute = normalized.split(":")
    return int(hour) * 60 + int(minute)


def normalize_times(values: str | Iterable[object] | None) -> tuple[str, ...]:
    """Normalize report times: invalid entries dropped, sorted, de-duplicated.

    A string is treated as a comma-separated list, which is how report times
    are stored in the settings table.
    """
    if values is None:
        return ()
    if isinstance(values, str):
        values = values.split(",")
    normalized = {t for t in map(normalize_time, values) if t is not None}
    return tuple(sorted(normalized))


@dataclass(frozen=True)
class NotifyWindow:
    """Time-of-day range during which alerts may be delivered.

    ``start <= end`` is an inclusive same-day range, ``start > end`` wraps
    over midnight (e.g. 22:00-06:00).
    """

    start: str
    end: str

    def __post_init__(self) -> None:
        for name in ("start", "end"):
            normalized = normalize_time(getattr(self, name))
            if normalized is None:
                raise ValueError(
                    f"Invalid window {name}: {getattr(self, name)!r}"
                )
            object.__setattr__(self, name, normalized)

    @property
    def overnight(self) -> bool:
        return self.start > self.end

    def contains(self, hhmm: str) -> bool:
        """Check whether a local time of day falls inside the window."""
        now = parse_hhmm(hhmm)
        start, end = parse_hhmm(self.start), parse_hhmm(self.end)
        if start <= end:
            return start <= now <= end
        return now >= start or now <= end

    @classmethod
    def from_report_times(cls, report_times: Iterable[str]) -> Self:
        """Derive a window spanning the earliest to the latest report time."""
        times = normalize_times(report_times)
        if not times:
            return cls(*_FULL_DAY)
        return cls(times[0], times[-1])


def local_hhmm(moment: datetime, timezone: str | ZoneInfo) -> str:
    """Format a moment as ``HH:MM`` in the given timezone (naive = UTC)."""
    tz = timezone if isinstance(timezone, ZoneInfo) else ZoneInfo(timezone)
    return as_utc(moment).astimezone(tz).strftime("%H:%M")


def cooldown_interval(rate: str) -> timedelta:
    """Return the minimum spacing between alerts for an alert rate."""
    try:
        return RATE_INTERVALS[rate]
    except KeyError:
        raise ValueError(f"Unknown alert rate: {rate!r}") from None


class CooldownTracker:
    """Tracks when the last alert of a scope was sent.

    The timestamp only moves forward, so replaying an older reading can
    never reopen a cooldown window.
    """

    def __init__(self, last_alert_sent_at: datetime | None = None):
        self._last_alert_sent_at: datetime | None = None
        self.seed(last_alert_sent_at)

    @property
    def last_alert_sent_at(self) -> datetime | None:
        return self._last_alert_sent_at

    def is_active(self, now: datetime, interval: timedelta) -> bool:
        if self._last_alert_sent_at is None:
            return False
        return as_utc(now) - self._last_alert_sent_at < interval

    def record(self, now: datetime) -> None:
        now = as_utc(now)
        if self._last_alert_sent_at is None or now > self._last_alert_sent_at:
            self._last_alert_sent_at = now

    def seed(self, timestamp: datetime | None) -> None:
        """Restore a persisted timestamp; None leaves the tracker unchanged."""
        if timestamp is not None:
            self.record(timestamp)
