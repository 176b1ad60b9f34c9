"""Centralized configuration for the CampusSense application.

This package provides:
- Enums for metrics, alert rates and notification channels
- The metric registry and alerting defaults
- Pydantic settings models for process configuration
- Functions for accessing DB-backed runtime settings
"""

from .constants import (
    ALERTABLE_METRICS,
    DEFAULT_CONFIRMATION_COUNT,
    METRICS,
    MetricSpec,
)
from .enums import (
    AlertRate,
    Direction,
    Metric,
    NotificationChannel,
    SettingsKey,
    last_sent_key,
    threshold_key,
)
from .models import NotificationPreferences, ThresholdRule
from .settings import (
    AlertSettings,
    CleanupSettings,
    DefaultSettings,
    EventBusSettings,
    NotificationSettings,
    PushSettings,
    ReportSettings,
    Settings,
    SimulatorSettings,
    TelegramSettings,
    get_settings,
)
from .thresholds import (
    get_last_alert_sent,
    get_notification_preferences_async,
    get_threshold_rules_async,
    save_notification_preferences,
    save_thresholds,
    set_last_alert_sent,
)

__all__ = [
    # Enums
    "AlertRate",
    "Direction",
    "Metric",
    "NotificationChannel",
    "SettingsKey",
    # Registry
    "ALERTABLE_METRICS",
    "DEFAULT_CONFIRMATION_COUNT",
    "METRICS",
    "MetricSpec",
    # Value objects
    "NotificationPreferences",
    "ThresholdRule",
    # Settings models
    "AlertSettings",
    "CleanupSettings",
    "DefaultSettings",
    "EventBusSettings",
    "NotificationSettings",
    "PushSettings",
    "ReportSettings",
    "Settings",
    "SimulatorSettings",
    "TelegramSettings",
    # Functions
    "get_last_alert_sent",
    "get_notification_preferences_async",
    "get_settings",
    "get_threshold_rules_async",
    "last_sent_key",
    "save_notification_preferences",
    "save_thresholds",
    "set_last_alert_sent",
    "threshold_key",
]
