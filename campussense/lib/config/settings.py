"""Settings models and configuration loading for the CampusSense application."""

from functools import cached_property, lru_cache
from typing import Annotated, Any, Self
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from campussense.lib.config.constants import (
    DEFAULT_ALERT_RATE,
    DEFAULT_CONFIRMATION_COUNT,
    DEFAULT_TIMEZONE,
)
from campussense.lib.config.enums import AlertRate, NotificationChannel

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _parse_bool(v: Any) -> bool:
    """Parse boolean from strings like '1'/'true'/'0' or an actual bool."""
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v.strip().lower() in _TRUTHY
    return bool(v)


def _validate_http_url_or_empty(v: str) -> str:
    """Validate HTTP URL format, allowing empty string."""
    if not v:
        return v
    HttpUrl(v)
    return v.rstrip("/")


def _validate_timezone(v: str) -> str:
    try:
        ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {v!r}") from e
    return v


_BoolFromStr = Annotated[bool, BeforeValidator(_parse_bool)]
_HttpUrlOrEmpty = Annotated[str, AfterValidator(_validate_http_url_or_empty)]
_Timezone = Annotated[str, AfterValidator(_validate_timezone)]


def _split_channels(raw: str) -> list[str]:
    return [c.strip().lower() for c in raw.split(",") if c.strip()]


class AlertSettings(BaseModel):
    """Alert engine behavior settings."""

    model_config = ConfigDict(frozen=True)

    scope: str = "global"
    confirmation_count: int = DEFAULT_CONFIRMATION_COUNT
    repeat_while_active: bool = True


class DefaultSettings(BaseModel):
    """Fallbacks for runtime preferences missing from the database."""

    model_config = ConfigDict(frozen=True)

    timezone: str = DEFAULT_TIMEZONE
    alert_rate: AlertRate = DEFAULT_ALERT_RATE


class TelegramSettings(BaseModel):
    """Telegram bot settings."""

    model_config = ConfigDict(frozen=True)

    bot_token: SecretStr = SecretStr("")
    public_url: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.bot_token.get_secret_value())

    @property
    def dashboard_url(self) -> str:
        return self.public_url or "http://localhost:5000"


class PushSettings(BaseModel):
    """Web push (VAPID) settings."""

    model_config = ConfigDict(frozen=True)

    public_key: str = ""
    private_key: SecretStr = SecretStr("")
    subject: str = ""

    @property
    def configured(self) -> bool:
        return bool(
            self.public_key
            and self.private_key.get_secret_value()
            and self.subject
        )


class NotificationSettings(BaseModel):
    """Notification service settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    channels: list[NotificationChannel] = []
    telegram: TelegramSettings = TelegramSettings()
    push: PushSettings = PushSettings()
    max_retries: int = 3
    initial_backoff_sec: float = 2.0
    timeout_sec: float = 10.0


class CleanupSettings(BaseModel):
    """Database cleanup settings (used by cron job)."""

    model_config = ConfigDict(frozen=True)

    retention_days: int = 30


class EventBusSettings(BaseModel):
    """Redis event bus settings."""

    model_config = ConfigDict(frozen=True)

    redis_url: str = "redis://localhost:6379/0"


class SimulatorSettings(BaseModel):
    """Mock sensor publisher settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    frequency_sec: float = 10.0
    location: str = "campus-simulator"


class ReportSettings(BaseModel):
    """Scheduled report settings."""

    model_config = ConfigDict(frozen=True)

    check_interval_sec: float = 20.0


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    db_path: str = "campussense.sqlite3"
    db_timeout_sec: float = 30.0

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Alerting
    alert_scope: str = Field(default="global", min_length=1)
    alert_confirmation_count: int = Field(
        default=DEFAULT_CONFIRMATION_COUNT, ge=1
    )
    alert_repeat_while_active: _BoolFromStr = True
    default_timezone: _Timezone = DEFAULT_TIMEZONE

    # Notifications
    enable_notification_service: _BoolFromStr = False
    notification_channels: str = "telegram"
    notification_max_retries: int = Field(default=3, ge=1)
    notification_initial_backoff_sec: float = Field(default=2.0, ge=0)
    notification_timeout_sec: float = Field(default=10.0, gt=0)
    telegram_bot_token: SecretStr = SecretStr("")
    public_url: _HttpUrlOrEmpty = ""
    vapid_public_key: str = ""
    vapid_private_key: SecretStr = SecretStr("")
    vapid_subject: str = ""

    # Cleanup
    retention_days: int = Field(default=30, ge=1)

    # Simulator
    mock_sensors: _BoolFromStr = False
    simulator_frequency_sec: float = Field(default=10.0, gt=0)

    # Reports
    report_check_interval_sec: float = Field(default=20.0, gt=0)

    @cached_property
    def alerts(self) -> AlertSettings:
        """Get alert engine settings."""
        return AlertSettings(
            scope=self.alert_scope,
            confirmation_count=self.alert_confirmation_count,
            repeat_while_active=self.alert_repeat_while_active,
        )

    @cached_property
    def defaults(self) -> DefaultSettings:
        """Get fallbacks for runtime preferences."""
        return DefaultSettings(timezone=self.default_timezone)

    @cached_property
    def telegram(self) -> TelegramSettings:
        """Get Telegram bot settings."""
        return TelegramSettings(
            bot_token=self.telegram_bot_token,
            public_url=self.public_url,
        )

    @cached_property
    def push(self) -> PushSettings:
        """Get web push settings."""
        return PushSettings(
            public_key=self.vapid_public_key,
            private_key=self.vapid_private_key,
            subject=self.vapid_subject,
        )

    @cached_property
    def notifications(self) -> NotificationSettings:
        """Get notification settings as nested object."""
        return NotificationSettings(
            enabled=self.enable_notification_service,
            channels=[
                NotificationChannel(c)
                for c in _split_channels(self.notification_channels)
            ],
            telegram=self.telegram,
            push=self.push,
            max_retries=self.notification_max_retries,
            initial_backoff_sec=self.notification_initial_backoff_sec,
            timeout_sec=self.notification_timeout_sec,
        )

    @cached_property
    def cleanup(self) -> CleanupSettings:
        """Get cleanup settings."""
        return CleanupSettings(retention_days=self.retention_days)

    @cached_property
    def eventbus(self) -> EventBusSettings:
        """Get event bus settings."""
        return EventBusSettings(redis_url=self.redis_url)

    @cached_property
    def simulator(self) -> SimulatorSettings:
        """Get mock sensor publisher settings."""
        return SimulatorSettings(
            enabled=self.mock_sensors,
            frequency_sec=self.simulator_frequency_sec,
        )

    @cached_property
    def reports(self) -> ReportSettings:
        """Get scheduled report settings."""
        return ReportSettings(
            check_interval_sec=self.report_check_interval_sec
        )

    @model_validator(mode="after")
    def validate_settings(self) -> Self:
        """Validate cross-field configuration constraints."""
        errors: list[str] = []

        channels = _split_channels(self.notification_channels)
        unknown = [
            c for c in channels if c not in {ch.value for ch in NotificationChannel}
        ]
        if unknown:
            errors.append(
                f"NOTIFICATION_CHANNELS has unknown entries: {', '.join(unknown)}"
            )

        # Credential checks only matter when the dispatcher will run
        if self.enable_notification_service:
            if NotificationChannel.TELEGRAM in channels:
                if not self.telegram_bot_token.get_secret_value():
                    errors.append(
                        "Telegram enabled but TELEGRAM_BOT_TOKEN is not set"
                    )

            if NotificationChannel.WEBPUSH in channels:
                missing = []
                if not self.vapid_public_key:
                    missing.append("VAPID_PUBLIC_KEY")
                if not self.vapid_private_key.get_secret_value():
                    missing.append("VAPID_PRIVATE_KEY")
                if not self.vapid_subject:
                    missing.append("VAPID_SUBJECT")
                if missing:
                    errors.append(
                        f"Web push enabled but missing: {', '.join(missing)}"
                    )

        if errors:
            raise ValueError(
                "Configuration validation failed:\n  - "
                + "\n  - ".join(errors)
            )

        return self


# Settings override for testing - allows injecting custom Settings without
# modifying environment variables or clearing the lru_cache.
_settings_override: Settings | None = None


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    """Load settings from environment (cached)."""
    return Settings()


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns the test override if set, otherwise loads from environment
    variables (cached after first load). For testing, use set_settings()
    from campussense.lib.config.testing to override.
    """
    if _settings_override is not None:
        return _settings_override
    return _load_settings()
