"""Threshold and notification preference endpoints."""

from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from campussense.lib.config import (
    Metric,
    NotificationPreferences,
    ThresholdRule,
    get_last_alert_sent,
    get_notification_preferences_async,
    get_settings,
    get_threshold_rules_async,
    save_notification_preferences,
    save_thresholds,
)
from campussense.lib.exceptions import ValidationError
from campussense.server.validators import (
    InvalidRequest,
    PreferencesRequest,
    ThresholdsRequest,
    error_response,
    parse_body,
)


def _thresholds_to_response(rules: tuple[ThresholdRule, ...]) -> dict[str, Any]:
    limits: dict[str, Any] = {rule.metric_id: rule.limit for rule in rules}
    # Dashboard clients read humidity under its legacy name
    limits["humidity_threshold"] = limits.get(Metric.HUMIDITY)
    limits["rules"] = [
        {
            "metric_id": rule.metric_id,
            "limit": rule.limit,
            "direction": rule.direction.value,
            "label": rule.display_label,
        }
        for rule in rules
    ]
    return limits


async def _preferences_to_response(
    preferences: NotificationPreferences,
) -> dict[str, Any]:
    last_sent = await get_last_alert_sent(get_settings().alerts.scope)
    return {
        "report_times": list(preferences.report_times),
        "alert_rate": preferences.alert_rate.value,
        "rate": preferences.alert_rate.value,
        "timezone": preferences.timezone,
        "notification_enabled": preferences.enabled,
        "notify_start_time": preferences.notify_window.start,
        "notify_end_time": preferences.notify_window.end,
        "last_alert_sent": last_sent.isoformat() if last_sent else None,
    }


async def get_thresholds(request: Request) -> JSONResponse:
    """Return the current limit of every alertable metric."""
    rules = await get_threshold_rules_async()
    return JSONResponse(_thresholds_to_response(rules))


async def set_thresholds(request: Request) -> JSONResponse:
    """Update metric limits."""
    try:
        data = await parse_body(request, ThresholdsRequest)
        rules = await save_thresholds(data.limits())
    except (InvalidRequest, ValidationError) as e:
        return error_response(e)
    return JSONResponse({"ok": True, "data": _thresholds_to_response(rules)})


async def get_report_settings(request: Request) -> JSONResponse:
    """Return notification preferences."""
    preferences = await get_notification_preferences_async()
    return JSONResponse(await _preferences_to_response(preferences))


async def save_report_settings(request: Request) -> JSONResponse:
    """Update notification preferences."""
    try:
        data = await parse_body(request, PreferencesRequest)
        preferences = await save_notification_preferences(
            report_times=data.report_times,
            alert_rate=data.alert_rate,
            timezone=data.timezone,
            window_start=data.notify_start_time,
            window_end=data.notify_end_time,
            enabled=data.notification_enabled,
        )
    except (InvalidRequest, ValidationError) as e:
        return error_response(e)
    return JSONResponse(
        {"ok": True, "data": await _preferences_to_response(preferences)}
    )
