"""Value objects for runtime alerting configuration."""

from typing import Any, Self
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from campussense.lib.config.constants import (
    DEFAULT_ALERT_RATE,
    DEFAULT_REPORT_TIMES,
    DEFAULT_TIMEZONE,
    METRICS,
)
from campussense.lib.config.enums import AlertRate, Direction, Metric
from campussense.lib.gating import NotifyWindow, normalize_times


class ThresholdRule(BaseModel):
    """A limit on one metric and the side of it that counts as a crossing."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    metric_id: str = Field(min_length=1)
    limit: float
    direction: Direction = Direction.ABOVE
    label: str | None = None

    def crossed(self, value: float) -> bool:
        if self.direction is Direction.ABOVE:
            return value >= self.limit
        return value <= self.limit

    @property
    def display_label(self) -> str:
        return self.label or self.metric_id

    @classmethod
    def for_metric(cls, metric: Metric, limit: float | None = None) -> Self:
        """Build a rule using the registry direction, label and default limit."""
        spec = METRICS[metric]
        if limit is None:
            if spec.default_limit is None:
                raise ValueError(f"Metric {metric} has no default limit")
            limit = spec.default_limit
        return cls(
            metric_id=metric,
            limit=limit,
            direction=spec.direction,
            label=spec.label,
        )


class NotificationPreferences(BaseModel):
    """When, how often and where alerts may be delivered.

    When no window is given it spans the earliest to the latest report time.
    """

    model_config = ConfigDict(frozen=True)

    report_times: tuple[str, ...] = DEFAULT_REPORT_TIMES
    alert_rate: AlertRate = DEFAULT_ALERT_RATE
    notify_window: NotifyWindow
    timezone: str = DEFAULT_TIMEZONE
    enabled: bool = True

    @model_validator(mode="before")
    @classmethod
    def _derive_window(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("notify_window") is None:
            report_times = data.get("report_times") or DEFAULT_REPORT_TIMES
            data = {
                **data,
                "notify_window": NotifyWindow.from_report_times(report_times),
            }
        return data

    @field_validator("report_times", mode="before")
    @classmethod
    def _normalize_report_times(cls, v: Any) -> tuple[str, ...]:
        times = normalize_times(v)
        if not times:
            raise ValueError("at least one valid report time is required")
        return times

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone {v!r}") from e
        return v

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)
