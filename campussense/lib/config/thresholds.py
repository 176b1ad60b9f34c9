"""Threshold rules and notification preferences backed by the settings table.

Stored values override the registry and environment defaults. Missing keys
are seeded with their defaults on first access so the dashboard always shows
what the alert engine is using.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from campussense.lib.config.constants import ALERTABLE_METRICS, DEFAULT_REPORT_TIMES
from campussense.lib.config.enums import (
    AlertRate,
    SettingsKey,
    last_sent_key,
    threshold_key,
)
from campussense.lib.config.models import NotificationPreferences, ThresholdRule
from campussense.lib.config.settings import get_settings
from campussense.lib.exceptions import ValidationError
from campussense.lib.gating import NotifyWindow, normalize_time, normalize_times
from campussense.lib.utils import from_sqlite, safe_float, to_sqlite
from campussense.logging import get_logger

_logger = get_logger("lib.config.thresholds")

_RATES = frozenset(r.value for r in AlertRate)


def _is_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def _encode_bool(value: bool) -> str:
    return "1" if value else "0"


def default_settings() -> dict[str, str]:
    """Return the settings rows seeded into an empty database."""
    defaults = get_settings().defaults
    rows = {
        threshold_key(rule.metric_id): str(rule.limit)
        for rule in (ThresholdRule.for_metric(m) for m in ALERTABLE_METRICS)
    }
    rows[SettingsKey.REPORT_TIMES] = ",".join(DEFAULT_REPORT_TIMES)
    rows[SettingsKey.ALERT_RATE] = defaults.alert_rate
    rows[SettingsKey.TIMEZONE] = defaults.timezone
    rows[SettingsKey.NOTIFICATION_ENABLED] = _encode_bool(True)
    return rows


def rules_from_settings(
    db_settings: Mapping[str, str],
) -> tuple[ThresholdRule, ...]:
    """Build threshold rules in registry order, falling back to defaults."""
    rules = []
    for metric in ALERTABLE_METRICS:
        limit = safe_float(db_settings.get(threshold_key(metric)))
        if limit is None and threshold_key(metric) in db_settings:
            _logger.warning(
                "Ignoring non-numeric %s=%r",
                threshold_key(metric),
                db_settings[threshold_key(metric)],
            )
        rules.append(ThresholdRule.for_metric(metric, limit))
    return tuple(rules)


def preferences_from_settings(
    db_settings: Mapping[str, str],
) -> NotificationPreferences:
    """Build notification preferences, repairing invalid stored values."""
    defaults = get_settings().defaults

    report_times = normalize_times(db_settings.get(SettingsKey.REPORT_TIMES))
    if not report_times:
        report_times = DEFAULT_REPORT_TIMES

    alert_rate = db_settings.get(SettingsKey.ALERT_RATE) or defaults.alert_rate
    if alert_rate not in _RATES:
        _logger.warning("Ignoring unknown alert rate %r", alert_rate)
        alert_rate = defaults.alert_rate

    timezone = db_settings.get(SettingsKey.TIMEZONE) or defaults.timezone
    if not _is_timezone(timezone):
        _logger.warning("Ignoring unknown timezone %r", timezone)
        timezone = defaults.timezone

    start = normalize_time(db_settings.get(SettingsKey.WINDOW_START))
    end = normalize_time(db_settings.get(SettingsKey.WINDOW_END))
    window = (
        NotifyWindow(start, end)
        if start and end
        else NotifyWindow.from_report_times(report_times)
    )

    enabled = db_settings.get(SettingsKey.NOTIFICATION_ENABLED)

    return NotificationPreferences(
        report_times=report_times,
        alert_rate=AlertRate(alert_rate),
        notify_window=window,
        timezone=timezone,
        enabled=enabled != "0" if enabled is not None else True,
    )


async def _get_seeded_settings() -> dict[str, str]:
    from campussense.lib.db import get_all_settings, set_settings_batch

    db_settings = await get_all_settings()
    missing = {
        key: value
        for key, value in default_settings().items()
        if key not in db_settings
    }
    if not missing:
        return db_settings
    _logger.info("Seeding %d default settings", len(missing))
    return await set_settings_batch(missing)


async def get_threshold_rules_async() -> tuple[ThresholdRule, ...]:
    """Get threshold rules with DB overrides applied."""
    return rules_from_settings(await _get_seeded_settings())


async def get_notification_preferences_async() -> NotificationPreferences:
    """Get notification preferences with DB overrides applied."""
    return preferences_from_settings(await _get_seeded_settings())


async def save_thresholds(
    limits: Mapping[str, float],
) -> tuple[ThresholdRule, ...]:
    """Persist new limits for alertable metrics.

    Raises:
        ValidationError: On an unknown metric or a non-finite limit.
    """
    from campussense.lib.db import set_settings_batch

    batch: dict[str, str] = {}
    for metric_id, value in limits.items():
        if metric_id not in ALERTABLE_METRICS:
            raise ValidationError(f"Unknown metric: {metric_id}")
        limit = safe_float(value)
        if limit is None:
            raise ValidationError(f"{metric_id} must be a finite number")
        batch[threshold_key(metric_id)] = str(limit)

    if not batch:
        raise ValidationError("No threshold values provided")

    stored = await set_settings_batch(batch)
    _logger.info("Updated thresholds: %s", ", ".join(sorted(batch)))
    return rules_from_settings(stored)


async def save_notification_preferences(
    *,
    report_times: Iterable[object],
    alert_rate: str | None = None,
    timezone: str | None = None,
    window_start: str | None = None,
    window_end: str | None = None,
    enabled: bool | None = None,
) -> NotificationPreferences:
    """Persist notification preferences.

    A missing or invalid window is replaced by the span of the report times.

    Raises:
        ValidationError: If no valid report time is given, or the alert
            rate or timezone is unknown.
    """
    from campussense.lib.db import set_settings_batch

    times = normalize_times(report_times)
    if not times:
        raise ValidationError(
            "At least one valid report time (HH:MM) is required"
        )

    defaults = get_settings().defaults
    rate = (alert_rate or "").strip() or defaults.alert_rate
    if rate not in _RATES:
        raise ValidationError(
            f"alert_rate must be one of: {', '.join(sorted(_RATES))}"
        )

    tz = (timezone or "").strip() or defaults.timezone
    if not _is_timezone(tz):
        raise ValidationError(f"Unknown timezone: {tz}")

    start, end = normalize_time(window_start), normalize_time(window_end)
    if not (start and end):
        derived = NotifyWindow.from_report_times(times)
        start, end = derived.start, derived.end

    batch = {
        SettingsKey.REPORT_TIMES: ",".join(times),
        SettingsKey.ALERT_RATE: rate,
        SettingsKey.TIMEZONE: tz,
        SettingsKey.WINDOW_START: start,
        SettingsKey.WINDOW_END: end,
        SettingsKey.NOTIFICATION_ENABLED: _encode_bool(
            True if enabled is None else enabled
        ),
    }
    stored = await set_settings_batch(batch)
    _logger.info(
        "Updated notification preferences: rate=%s window=%s-%s", rate, start, end
    )
    return preferences_from_settings(stored)


async def get_last_alert_sent(scope: str) -> datetime | None:
    """Return the persisted cooldown timestamp of a scope, if any."""
    from campussense.lib.db import get_all_settings

    value = (await get_all_settings()).get(last_sent_key(scope))
    if not value:
        return None
    try:
        return from_sqlite(value)
    except ValueError:
        _logger.warning("Ignoring malformed %s=%r", last_sent_key(scope), value)
        return None


async def set_last_alert_sent(scope: str, when: datetime) -> None:
    """Persist the cooldown timestamp of a scope."""
    from campussense.lib.db import set_settings_batch

    await set_settings_batch({last_sent_key(scope): to_sqlite(when)})
