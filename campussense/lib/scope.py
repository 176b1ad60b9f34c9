"""Alert scopes: one engine per independently alerting set of sensors.

A scope owns its engine, its cooldown and a lock. Every evaluation reads the
current rules and preferences from a provider first, so threshold changes
made through the API take effect on the next reading.
"""

import asyncio
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol, Self

from campussense.lib.alerts import EvaluationResult, ThresholdAlertEngine
from campussense.lib.config import (
    NotificationPreferences,
    ThresholdRule,
    get_notification_preferences_async,
    get_settings,
    get_threshold_rules_async,
)
from campussense.lib.config.constants import DEFAULT_CONFIRMATION_COUNT
from campussense.lib.exceptions import ConfigurationError
from campussense.lib.gating import CooldownTracker
from campussense.lib.reading import MetricReading
from campussense.logging import get_logger

logger = get_logger("lib.scope")


class ConfigProvider(Protocol):
    """Source of rules and preferences. Both reads must be idempotent."""

    async def get_threshold_rules(self) -> Sequence[ThresholdRule]: ...

    async def get_notification_preferences(
        self,
    ) -> NotificationPreferences: ...


class DatabaseConfigProvider:
    """Reads rules and preferences from the settings table."""

    async def get_threshold_rules(self) -> Sequence[ThresholdRule]:
        return await get_threshold_rules_async()

    async def get_notification_preferences(self) -> NotificationPreferences:
        return await get_notification_preferences_async()


class AlertScope:
    """Serializes evaluations of one scope and keeps its engine in sync."""

    def __init__(
        self,
        name: str,
        provider: ConfigProvider,
        *,
        confirmation_count: int = DEFAULT_CONFIRMATION_COUNT,
        repeat_while_active: bool = True,
        last_alert_sent_at: datetime | None = None,
    ):
        self.name = name
        self._provider = provider
        self._confirmation_count = confirmation_count
        self._repeat_while_active = repeat_while_active
        self._cooldown = CooldownTracker(last_alert_sent_at)
        self._engine: ThresholdAlertEngine | None = None
        self._preferences: NotificationPreferences | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        provider: ConfigProvider | None = None,
        *,
        last_alert_sent_at: datetime | None = None,
    ) -> Self:
        """Build the scope configured by ALERT_* environment settings."""
        cfg = get_settings().alerts
        return cls(
            cfg.scope,
            provider or DatabaseConfigProvider(),
            confirmation_count=cfg.confirmation_count,
            repeat_while_active=cfg.repeat_while_active,
            last_alert_sent_at=last_alert_sent_at,
        )

    @property
    def engine(self) -> ThresholdAlertEngine | None:
        return self._engine

    @property
    def cooldown(self) -> CooldownTracker:
        return self._cooldown

    @property
    def preferences(self) -> NotificationPreferences | None:
        """Preferences used by the most recent evaluation."""
        return self._preferences

    async def _load_config(
        self,
    ) -> tuple[tuple[ThresholdRule, ...], NotificationPreferences]:
        try:
            rules = tuple(await self._provider.get_threshold_rules())
            preferences = await self._provider.get_notification_preferences()
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to load alert configuration for scope {self.name!r}: {e}"
            ) from e
        return rules, preferences

    def _sync_rules(self, rules: tuple[ThresholdRule, ...]) -> ThresholdAlertEngine:
        if self._engine is None:
            self._engine = ThresholdAlertEngine(
                rules,
                confirmation_count=self._confirmation_count,
                cooldown=self._cooldown,
                repeat_while_active=self._repeat_while_active,
            )
        elif rules != self._engine.rules:
            logger.info("Threshold rules changed for scope %s", self.name)
            self._engine.reload_rules(rules)
        return self._engine

    async def evaluate(self, reading: MetricReading) -> EvaluationResult:
        """Evaluate a reading against the current configuration.

        Raises:
            ConfigurationError: If rules or preferences cannot be read. No
                state is changed in that case.
        """
        async with self._lock:
            rules, preferences = await self._load_config()
            try:
                engine = self._sync_rules(rules)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
            self._preferences = preferences
            return engine.evaluate(reading, preferences)
