"""Built-in webhook channels.

Four inactive channels that operators enable after filling in their URLs.
Secrets and the custom endpoint URL come from ``NotificationConfig``.
"""

from datetime import datetime, timezone

from src.notifications.config import NotificationConfig
from src.notifications.schemas import WILDCARD_EVENT, WebhookConfig

_SEEDED_AT = datetime(2024, 6, 1, tzinfo=timezone.utc)


def default_webhooks(config: NotificationConfig | None = None) -> list[WebhookConfig]:
    """Build fresh copies of the built-in channels."""
    config = config or NotificationConfig()
    return [
        WebhookConfig(
            id="webhook-1",
            name="Slack Alerts",
            url="https://hooks.slack.com/services/YOUR/SLACK/WEBHOOK",
            events=["alert.critical", "security.suspicious", "backup.failed"],
            is_active=False,
            retry_count=3,
            retry_delay=30,
            created_at=_SEEDED_AT,
            format="slack",
        ),
        WebhookConfig(
            id="webhook-2",
            name="Microsoft Teams",
            url="https://outlook.office.com/webhook/YOUR/TEAMS/WEBHOOK",
            events=["alert.critical", "alert.warning"],
            is_active=False,
            retry_count=3,
            retry_delay=30,
            created_at=_SEEDED_AT,
            format="teams",
        ),
        WebhookConfig(
            id="webhook-3",
            name="PagerDuty",
            url="https://events.pagerduty.com/v2/enqueue",
            secret=config.pagerduty_routing_key,
            events=["alert.critical", "security.critical"],
            is_active=False,
            retry_count=5,
            retry_delay=60,
            created_at=_SEEDED_AT,
            headers={"Content-Type": "application/json"},
            format="pagerduty",
        ),
        WebhookConfig(
            id="webhook-4",
            name="Custom Endpoint",
            url=config.custom_webhook_url,
            secret=config.custom_webhook_secret,
            events=[WILDCARD_EVENT],
            is_active=False,
            retry_count=3,
            retry_delay=30,
            created_at=_SEEDED_AT,
        ),
    ]
