"""Shared fixtures for API tests.

The client runs against real services on in-memory stores. Built-in
webhook channels are inactive, so evaluation never makes network calls
unless a test activates a channel and mocks it with respx.
"""

import pytest
from fastapi.testclient import TestClient

from src.alerts.config import AlertConfig
from src.alerts.registry import ThresholdRegistry
from src.alerts.service import AlertService
from src.api.app import create_app
from src.api.dependencies import get_alert_service, get_dispatcher, get_email_sender
from src.notifications.config import EmailConfig, NotificationConfig
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.email import EmailSender
from src.notifications.repository import InMemoryLogStore, InMemoryWebhookStore
from src.notifications.seed_data import default_webhooks


@pytest.fixture
def webhook_store():
    return InMemoryWebhookStore(default_webhooks(NotificationConfig()))


@pytest.fixture
def api_dispatcher(webhook_store):
    return NotificationDispatcher(
        config=NotificationConfig(),
        log_store=InMemoryLogStore(),
        webhook_store=webhook_store,
    )


@pytest.fixture
def email_sender():
    """Sender with no provider configured."""
    return EmailSender(EmailConfig(resend_api_key=None, sendgrid_api_key=None))


@pytest.fixture
def alert_service(api_dispatcher):
    return AlertService(
        config=AlertConfig(),
        registry=ThresholdRegistry(),
        dispatcher=api_dispatcher,
    )


@pytest.fixture
def client(alert_service, api_dispatcher, email_sender):
    """FastAPI TestClient with dependency overrides."""
    app = create_app()

    app.dependency_overrides[get_alert_service] = lambda: alert_service
    app.dependency_overrides[get_dispatcher] = lambda: api_dispatcher
    app.dependency_overrides[get_email_sender] = lambda: email_sender

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
