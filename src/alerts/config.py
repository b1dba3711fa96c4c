"""Alert service configuration.

Controls the alert history cap, the optional re-trigger cool-down, and the
recipients for threshold email notifications. All settings can be
overridden via ``ALERTS_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AlertConfig(BaseSettings):
    """Configuration for threshold evaluation and alert history."""

    model_config = SettingsConfigDict(
        env_prefix="ALERTS_",
        case_sensitive=False,
        extra="ignore",
    )

    history_limit: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Maximum alert events kept in history (oldest dropped)",
    )
    default_event_limit: int = Field(
        default=50,
        ge=1,
        description="Events returned by get_events() when no limit is given",
    )

    # Re-trigger suppression (0 = disabled, every breach creates an event)
    cooldown_seconds: int = Field(
        default=0,
        ge=0,
        le=7 * 24 * 3600,
        description="Seconds after a trigger during which the same threshold stays silent",
    )

    # Email notification for thresholds with notify_email set
    alert_recipients: list[str] = Field(
        default_factory=list,
        description="Addresses that receive threshold alert emails",
    )
    system_name: str = Field(
        default="Lands DB",
        description="System name shown in alert emails",
    )

    redis_key_prefix: str = Field(
        default="lands:alerts",
        description="Redis key prefix for thresholds and alert history",
    )
