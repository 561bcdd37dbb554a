"""Configuration schema models using Pydantic."""

from datetime import timedelta
from enum import Enum

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, Field, field_validator

from listing_alerts.domain.models import AlertFrequency

from .duration import DurationParseError, parse_duration, parse_timedelta, validate_duration_range

# Digest windows shorter than an hour or longer than a quarter make no sense
MIN_WINDOW_SECONDS = 3600
MAX_WINDOW_SECONDS = 90 * 86400


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class DigestConfig(BaseModel):
    """Digest windows and cron schedules for periodic alerts."""

    daily_window: str = Field(
        "24h", description="Look-back window for a daily search that never dispatched"
    )
    weekly_window: str = Field(
        "7d", description="Look-back window for a weekly search that never dispatched"
    )
    daily_schedule: str = Field("0 8 * * *", description="Crontab for the daily digest run")
    weekly_schedule: str = Field("0 8 * * mon", description="Crontab for the weekly digest run")

    @field_validator("daily_window", "weekly_window")
    @classmethod
    def validate_window(cls, v: str) -> str:
        """Reject windows that cannot be parsed or fall outside 1h..90d."""
        try:
            seconds = parse_duration(v)
            validate_duration_range(
                seconds, MIN_WINDOW_SECONDS, MAX_WINDOW_SECONDS, label="Digest window"
            )
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v.strip()

    @field_validator("daily_schedule", "weekly_schedule")
    @classmethod
    def validate_schedule(cls, v: str) -> str:
        """Ensure the schedule is a valid five-field crontab expression."""
        try:
            CronTrigger.from_crontab(v.strip())
        except ValueError as e:
            raise ValueError(f"Invalid crontab expression '{v}': {e}") from e
        return v.strip()

    def window_for(self, frequency: AlertFrequency) -> timedelta:
        """Default look-back period for a periodic frequency.

        Raises:
            ValueError: If the frequency has no digest window
        """
        if frequency == AlertFrequency.DAILY:
            return parse_timedelta(self.daily_window)
        if frequency == AlertFrequency.WEEKLY:
            return parse_timedelta(self.weekly_window)
        raise ValueError(f"Frequency '{frequency}' has no digest window")

    def schedule_for(self, frequency: AlertFrequency) -> str:
        """Crontab expression driving the given digest frequency."""
        if frequency == AlertFrequency.DAILY:
            return self.daily_schedule
        if frequency == AlertFrequency.WEEKLY:
            return self.weekly_schedule
        raise ValueError(f"Frequency '{frequency}' is not scheduled")


class EmailConfig(BaseModel):
    """Email notification settings."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    max_retries: int = Field(
        3, ge=0, le=10, description="Number of retry attempts for failed email sends"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: int = Field(
        5, ge=1, le=60, description="Initial retry delay in seconds"
    )


class DeliveryConfig(BaseModel):
    """How notification delivery is decoupled from the triggering call."""

    background: bool = Field(
        True, description="Hand deliveries to a worker pool instead of sending inline"
    )
    max_workers: int = Field(4, ge=1, le=32, description="Delivery worker threads")


class LinksConfig(BaseModel):
    """Public URLs embedded in notification e-mails."""

    frontend_url: str = Field(
        "http://localhost:3000", min_length=1, description="Base URL of the web frontend"
    )

    @field_validator("frontend_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("frontend_url must start with http:// or https://")
        return stripped


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the listing alert engine."""

    digest: DigestConfig = Field(default_factory=DigestConfig)
    email: EmailConfig = Field(default_factory=EmailConfig, description="Email settings")
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    links: LinksConfig = Field(default_factory=LinksConfig)
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
