"""Notification configuration.

``NotificationConfig`` (``NOTIFICATIONS_*``) controls webhook delivery:
envelope source tag, request identity, per-attempt timeout, log cap, and
the secrets for the built-in channels. ``EmailConfig`` (``EMAIL_*``) holds
provider credentials for transactional email.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotificationConfig(BaseSettings):
    """Configuration for webhook dispatch."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        case_sensitive=False,
        extra="ignore",
    )

    source: str = Field(
        default="lands-db-monitoring",
        description="Value of the payload 'source' field",
    )
    user_agent: str = Field(
        default="LandsDB-Webhook/1.0",
        description="User-Agent header for outbound requests",
    )
    signature_header: str = Field(
        default="X-Webhook-Signature",
        description="Header carrying 'sha256=<hex>' when a channel has a secret",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Timeout applied to each HTTP attempt",
    )
    log_limit: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Maximum webhook log entries kept (oldest dropped)",
    )

    # Built-in channel secrets and endpoints
    custom_webhook_url: str = Field(
        default="https://api.example.com/webhooks/lands-db",
        description="URL for the built-in 'Custom Endpoint' channel",
    )
    custom_webhook_secret: str | None = Field(
        default=None,
        description="Signing secret for the built-in 'Custom Endpoint' channel",
    )
    pagerduty_routing_key: str | None = Field(
        default=None,
        description="Events v2 routing key for the built-in PagerDuty channel",
    )

    redis_key_prefix: str = Field(
        default="lands:notify",
        description="Redis key prefix for webhook configs and logs",
    )


class EmailConfig(BaseSettings):
    """Credentials and sender identity for outgoing email."""

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        case_sensitive=False,
        extra="ignore",
    )

    resend_api_key: str | None = Field(default=None, description="Resend API key")
    resend_api_url: str = "https://api.resend.com/emails"
    sendgrid_api_key: str | None = Field(default=None, description="SendGrid API key")
    sendgrid_api_url: str = "https://api.sendgrid.com/v3/mail/send"

    # Reported by configured_providers(); sending via SMTP is not implemented
    smtp_host: str | None = None
    smtp_user: str | None = None

    from_address: str = "noreply@lands.gov.pg"
    from_name: str = "Lands DB System"
    admin_email: str = Field(
        default="admin@lands.gov.pg",
        description="Default recipient for test emails",
    )
    timeout_seconds: float = Field(default=10.0, gt=0.0, le=120.0)

    @property
    def resend_configured(self) -> bool:
        return bool(self.resend_api_key)

    @property
    def sendgrid_configured(self) -> bool:
        return bool(self.sendgrid_api_key)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user)
