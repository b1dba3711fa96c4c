"""
Dependency injection for FastAPI endpoints.

Services are process-wide singletons created on first use. The storage
backend (in-memory or Redis) is chosen by ``Settings.storage_backend``.
"""

import redis.asyncio as redis

from src.alerts.config import AlertConfig
from src.alerts.registry import ThresholdRegistry
from src.alerts.repository import (
    InMemoryEventStore,
    InMemoryThresholdStore,
    RedisEventStore,
    RedisThresholdStore,
)
from src.alerts.seed_data import default_thresholds
from src.alerts.service import AlertService
from src.config.settings import get_settings
from src.notifications.config import EmailConfig, NotificationConfig
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.email import EmailSender
from src.notifications.repository import (
    InMemoryLogStore,
    InMemoryWebhookStore,
    RedisLogStore,
    RedisWebhookStore,
)
from src.notifications.seed_data import default_webhooks
from src.observability.metrics import get_metrics

# Global service instances (initialized on first request)
_redis_client: redis.Redis | None = None
_dispatcher: NotificationDispatcher | None = None
_email_sender: EmailSender | None = None
_alert_service: AlertService | None = None


def get_redis_client() -> redis.Redis:
    """Get the shared Redis client."""
    global _redis_client

    if _redis_client is None:
        settings = get_settings()
        _redis_client = redis.from_url(
            str(settings.redis_url),
            encoding="utf-8",
            decode_responses=True,
        )

    return _redis_client


async def get_dispatcher() -> NotificationDispatcher:
    """
    Get webhook dispatcher instance.

    Seeds the built-in channels on first use.
    """
    global _dispatcher

    if _dispatcher is None:
        settings = get_settings()
        config = NotificationConfig()

        if settings.uses_redis:
            client = get_redis_client()
            webhook_store = RedisWebhookStore(client, config.redis_key_prefix)
            await webhook_store.seed(default_webhooks(config))
            log_store = RedisLogStore(client, config.redis_key_prefix)
        else:
            webhook_store = InMemoryWebhookStore(default_webhooks(config))
            log_store = InMemoryLogStore()

        _dispatcher = NotificationDispatcher(
            config=config,
            log_store=log_store,
            webhook_store=webhook_store,
            metrics=get_metrics(),
        )

    return _dispatcher


async def get_email_sender() -> EmailSender:
    """Get email sender instance."""
    global _email_sender

    if _email_sender is None:
        _email_sender = EmailSender(config=EmailConfig(), metrics=get_metrics())

    return _email_sender


async def get_alert_service() -> AlertService:
    """
    Get alert service instance.

    Wires the threshold registry, alert history, dispatcher, and email
    sender on the configured storage backend.
    """
    global _alert_service

    if _alert_service is None:
        settings = get_settings()
        config = AlertConfig()

        if settings.uses_redis:
            client = get_redis_client()
            threshold_store = RedisThresholdStore(client, config.redis_key_prefix)
            await threshold_store.seed(default_thresholds())
            event_store = RedisEventStore(client, config.redis_key_prefix)
        else:
            threshold_store = InMemoryThresholdStore(default_thresholds())
            event_store = InMemoryEventStore()

        _alert_service = AlertService(
            config=config,
            registry=ThresholdRegistry(threshold_store),
            event_store=event_store,
            dispatcher=await get_dispatcher(),
            email_sender=await get_email_sender(),
            metrics=get_metrics(),
        )

    return _alert_service


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _redis_client, _dispatcher, _email_sender, _alert_service

    _alert_service = None
    _dispatcher = None
    _email_sender = None

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
