"""Threshold alerting engine.

Turns a stream of sensor readings into gated, de-duplicated alert decisions.

Each metric with a rule goes through hysteresis first: a crossing has to be
seen on ``confirmation_count`` consecutive readings before the metric
latches into the alarming state, and a single non-crossing reading clears
it again. Latched metrics then pass the delivery gates (preferences
enabled, notification window, cooldown) before an alert is emitted.

The engine does no I/O. Rules and preferences are passed in and delivery
is left to the caller, so one instance per scope can be driven and tested
in isolation.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Self

from campussense.lib.config.constants import DEFAULT_CONFIRMATION_COUNT
from campussense.lib.config.enums import Direction
from campussense.lib.config.models import NotificationPreferences, ThresholdRule
from campussense.lib.gating import CooldownTracker, cooldown_interval, local_hhmm
from campussense.lib.reading import MetricReading
from campussense.logging import get_logger

logger = get_logger("lib.alerts")


class SuppressionReason(StrEnum):
    NO_CROSSING = "no-threshold-crossing"
    DISABLED = "notifications-disabled"
    OUTSIDE_WINDOW = "outside-notification-window"
    COOLDOWN = "cooldown-active"


@dataclass(slots=True)
class AlarmState:
    """Hysteresis state of one metric."""

    is_alarming: bool = False
    consecutive_count: int = 0


def format_value(value: float) -> str:
    """Render a number compactly (520.0 -> '520', 7.5 -> '7.5')."""
    return f"{value:g}"


@dataclass(frozen=True, slots=True)
class Alert:
    """One metric that is past its limit at the time of the alert."""

    metric_id: str
    observed_value: float
    limit: float
    direction: Direction
    message: str

    @classmethod
    def from_rule(cls, rule: ThresholdRule, value: float) -> Self:
        message = (
            f"{rule.display_label}: {format_value(value)} "
            f"({rule.direction.comparator} {format_value(rule.limit)})"
        )
        return cls(
            metric_id=rule.metric_id,
            observed_value=value,
            limit=rule.limit,
            direction=rule.direction,
            message=message,
        )


@dataclass(frozen=True, slots=True)
class Suppressed:
    reason: SuppressionReason

    @property
    def triggered(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Triggered:
    alerts: tuple[Alert, ...]
    message: str

    @property
    def triggered(self) -> bool:
        return True


type EvaluationResult = Suppressed | Triggered


class ThresholdAlertEngine:
    """Evaluates readings of one scope against its threshold rules.

    Args:
        rules: Threshold rules, at most one per metric.
        confirmation_count: Consecutive crossing readings needed to latch.
        cooldown: Shared cooldown tracker; a fresh one when omitted.
        repeat_while_active: Whether metrics that stay latched are delivered
            again once the cooldown has elapsed, or only on the reading that
            latched them.
    """

    def __init__(
        self,
        rules: Iterable[ThresholdRule],
        *,
        confirmation_count: int = DEFAULT_CONFIRMATION_COUNT,
        cooldown: CooldownTracker | None = None,
        repeat_while_active: bool = True,
    ):
        if confirmation_count < 1:
            raise ValueError("confirmation_count must be at least 1")
        self._confirmation_count = confirmation_count
        self._cooldown = cooldown if cooldown is not None else CooldownTracker()
        self._repeat_while_active = repeat_while_active
        self._rules: tuple[ThresholdRule, ...] = ()
        self._states: dict[str, AlarmState] = {}
        self.reload_rules(rules)

    @property
    def rules(self) -> tuple[ThresholdRule, ...]:
        return self._rules

    @property
    def cooldown(self) -> CooldownTracker:
        return self._cooldown

    def state(self, metric_id: str) -> AlarmState | None:
        return self._states.get(metric_id)

    def reload_rules(self, rules: Iterable[ThresholdRule]) -> None:
        """Replace the rule set and reset every metric's alarm state.

        Raises:
            ValueError: If two rules target the same metric.
        """
        rules = tuple(rules)
        metric_ids = [rule.metric_id for rule in rules]
        if len(set(metric_ids)) != len(metric_ids):
            raise ValueError("Duplicate threshold rule for a metric")
        self._rules = rules
        self._states = {metric_id: AlarmState() for metric_id in metric_ids}
        logger.info("Loaded %d threshold rules", len(rules))

    def _update_state(self, rule: ThresholdRule, value: float) -> bool:
        """Apply hysteresis for one metric. Returns True on a new trigger."""
        state = self._states[rule.metric_id]

        if not rule.crossed(value):
            if state.is_alarming:
                logger.info(
                    "%s cleared at %s (limit %s)",
                    rule.metric_id,
                    format_value(value),
                    format_value(rule.limit),
                )
            state.is_alarming = False
            state.consecutive_count = 0
            return False

        if state.is_alarming:
            return False

        state.consecutive_count += 1
        if state.consecutive_count < self._confirmation_count:
            logger.debug(
                "%s crossing %d/%d",
                rule.metric_id,
                state.consecutive_count,
                self._confirmation_count,
            )
            return False

        state.is_alarming = True
        state.consecutive_count = 0
        logger.info(
            "%s alarming at %s (%s %s)",
            rule.metric_id,
            format_value(value),
            rule.direction.comparator,
            format_value(rule.limit),
        )
        return True

    def _suppress(self, reason: SuppressionReason) -> Suppressed:
        logger.debug("Alert suppressed: %s", reason)
        return Suppressed(reason)

    def evaluate(
        self, reading: MetricReading, preferences: NotificationPreferences
    ) -> EvaluationResult:
        """Run one reading through hysteresis and the delivery gates.

        Metrics without a rule or without a value in the reading are skipped
        and their state is left untouched. The cooldown is recorded only when
        the result is Triggered.
        """
        now = reading.timestamp
        # Gate inputs are resolved before any state is touched
        local_time = local_hhmm(now, preferences.tz)
        interval = cooldown_interval(preferences.alert_rate)

        deliverable: list[Alert] = []
        for rule in self._rules:
            value = reading.get(rule.metric_id)
            if value is None:
                continue
            new_trigger = self._update_state(rule, value)
            still_active = (
                self._repeat_while_active
                and self._states[rule.metric_id].is_alarming
            )
            if new_trigger or still_active:
                deliverable.append(Alert.from_rule(rule, value))

        if not deliverable:
            return self._suppress(SuppressionReason.NO_CROSSING)
        if not preferences.enabled:
            return self._suppress(SuppressionReason.DISABLED)
        if not preferences.notify_window.contains(local_time):
            return self._suppress(SuppressionReason.OUTSIDE_WINDOW)
        if self._cooldown.is_active(now, interval):
            return self._suppress(SuppressionReason.COOLDOWN)

        self._cooldown.record(now)
        alerts = tuple(deliverable)
        return Triggered(
            alerts=alerts, message=", ".join(a.message for a in alerts)
        )
