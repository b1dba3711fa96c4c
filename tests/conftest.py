"""Pytest fixtures for lands-db-monitoring tests."""

from datetime import datetime, timezone

import pytest

from src.alerts.config import AlertConfig
from src.alerts.registry import ThresholdRegistry
from src.alerts.schemas import Threshold, UsageMetrics
from src.alerts.triggers import BYTES_PER_GB
from src.config.settings import Settings
from src.notifications.config import NotificationConfig
from src.notifications.schemas import WebhookConfig


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        storage_backend="memory",
        redis_url="redis://localhost:6379/1",  # Use DB 1 for tests
    )


@pytest.fixture
def alert_config() -> AlertConfig:
    return AlertConfig()


@pytest.fixture
def notification_config() -> NotificationConfig:
    return NotificationConfig(log_limit=100, request_timeout_seconds=5.0)


@pytest.fixture
def registry() -> ThresholdRegistry:
    """Registry seeded with the seven default thresholds."""
    return ThresholdRegistry()


@pytest.fixture
def quiet_metrics() -> UsageMetrics:
    """A snapshot below every default threshold."""
    return UsageMetrics(
        cost=10.0,
        storage=1 * BYTES_PER_GB,
        bandwidth=20 * BYTES_PER_GB,
        mau=500,
        connections=12,
        functions=1000,
    )


@pytest.fixture
def cost_threshold() -> Threshold:
    return Threshold(
        id="cost-warning",
        name="Monthly Cost Warning",
        metric="cost",
        operator="gt",
        value=30,
        unit="USD",
        notify_email=True,
        created_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def webhook() -> WebhookConfig:
    """Active wildcard channel with a signing secret and no retry delay."""
    return WebhookConfig(
        id="hook-1",
        name="Ops Endpoint",
        url="https://hooks.example.com/lands",
        events=["*"],
        secret="s3cret",
        is_active=True,
        retry_count=2,
        retry_delay=0,
    )
