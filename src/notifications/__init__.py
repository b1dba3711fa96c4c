"""Outbound notifications: signed webhooks and transactional email.

Components:
- WebhookConfig / WebhookPayload / WebhookResult / WebhookLog: Channel and delivery records
- NotificationConfig / EmailConfig: Pydantic settings
- NotificationDispatcher: Signed delivery with retry, fan-out, and delivery log
- WebhookStore / LogStore: Store interfaces with in-memory and Redis backends
- register_formatter / get_formatter: Provider payload shapes (default, slack, teams, pagerduty)
- EmailSender: Resend with SendGrid fallback, plus message templates
"""

from src.notifications.config import EmailConfig, NotificationConfig
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.email import EmailMessage, EmailResult, EmailSender
from src.notifications.formatters import (
    available_formats,
    get_formatter,
    register_formatter,
)
from src.notifications.repository import (
    InMemoryLogStore,
    InMemoryWebhookStore,
    LogStore,
    RedisLogStore,
    RedisWebhookStore,
    WebhookStore,
)
from src.notifications.schemas import (
    WEBHOOK_EVENT_TYPES,
    WebhookConfig,
    WebhookLog,
    WebhookPayload,
    WebhookResult,
)
from src.notifications.seed_data import default_webhooks
from src.notifications.signing import sign_payload, verify_signature

__all__ = [
    "EmailConfig",
    "EmailMessage",
    "EmailResult",
    "EmailSender",
    "InMemoryLogStore",
    "InMemoryWebhookStore",
    "LogStore",
    "NotificationConfig",
    "NotificationDispatcher",
    "RedisLogStore",
    "RedisWebhookStore",
    "WEBHOOK_EVENT_TYPES",
    "WebhookConfig",
    "WebhookLog",
    "WebhookPayload",
    "WebhookResult",
    "WebhookStore",
    "available_formats",
    "default_webhooks",
    "get_formatter",
    "register_formatter",
    "sign_payload",
    "verify_signature",
]
