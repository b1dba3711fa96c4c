"""
Request and response models for the monitoring API.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.alerts.schemas import AlertSeverity, ComparisonOperator, MetricName, UsageMetrics
from src.notifications.schemas import WebhookConfig


class ApiResponse(BaseModel):
    """Envelope used by the alert endpoints."""

    success: bool = Field(default=True, description="Whether the request succeeded")
    data: Any = Field(default=None, description="Endpoint-specific payload")


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str = Field(
        ...,
        description="Error message",
    )
    error_type: str = Field(
        default="error",
        description="Error type",
    )


# Alert models


class ThresholdDefinition(BaseModel):
    """Fields for a new threshold (id and created_at are assigned)."""

    name: str = Field(..., min_length=1, description="Display name")
    metric: MetricName = Field(..., description="Usage metric to compare")
    operator: ComparisonOperator = Field(..., description="Comparison: gt, gte, lt, lte, eq")
    value: float = Field(..., description="Bound, in the metric's display unit")
    unit: str = Field(..., description="Display unit (USD, GB, users, ...)")
    enabled: bool = Field(default=True, description="Whether the threshold is evaluated")
    notify_email: bool = Field(default=False, description="Email recipients when triggered")
    notify_dashboard: bool = Field(default=True, description="Show on the dashboard")
    severity: AlertSeverity | None = Field(
        default=None,
        description="Explicit severity; derived from the name when omitted",
    )


class UsageMetricsModel(BaseModel):
    """Usage snapshot. Storage and bandwidth are in bytes."""

    cost: float = 0.0
    storage: float = 0.0
    bandwidth: float = 0.0
    mau: float = 0.0
    connections: float = 0.0
    functions: float = 0.0

    def to_metrics(self) -> UsageMetrics:
        return UsageMetrics(**self.model_dump())


class AlertActionRequest(BaseModel):
    """Body for ``POST /alerts``.

    ``create`` needs ``threshold``, ``evaluate`` needs ``metrics``, and
    ``acknowledge`` needs ``alert_id``.
    """

    action: str = Field(..., description="create, evaluate, acknowledge, or acknowledgeAll")
    threshold: ThresholdDefinition | None = None
    metrics: UsageMetricsModel | None = None
    alert_id: str | None = None


class ThresholdUpdateRequest(BaseModel):
    """Body for ``PUT /alerts``: the id plus the fields to change."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Threshold identifier")

    @property
    def updates(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


# Webhook models


class WebhookModel(BaseModel):
    """Webhook channel as submitted by the admin UI."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    events: list[str] = Field(default_factory=list)
    secret: str | None = Field(
        default=None,
        description="Signing secret; omitted on save keeps the stored secret",
    )
    is_active: bool = True
    retry_count: int = Field(default=3, ge=0, le=10)
    retry_delay: float = Field(default=30.0, ge=0.0, le=3600.0)
    headers: dict[str, str] = Field(default_factory=dict)
    format: str = "default"

    def to_config(self, created_at: datetime | None = None) -> WebhookConfig:
        data = self.model_dump()
        if created_at is not None:
            data["created_at"] = created_at
        return WebhookConfig(**data)


class WebhookActionRequest(BaseModel):
    """Body for ``POST /webhooks``.

    ``test`` and ``save`` need ``webhook``; ``trigger`` needs ``event``.
    """

    action: str = Field(..., description="test, trigger, or save")
    webhook: WebhookModel | None = None
    event: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


# Email models


class EmailTestRequest(BaseModel):
    to: str | None = Field(
        default=None,
        description="Recipient; defaults to the configured admin address",
    )


# Health models


class ComponentHealth(BaseModel):
    """Health status of an individual infrastructure component."""

    status: str = Field(..., description="healthy, unhealthy, or not_configured")
    latency_ms: float | None = Field(default=None, description="Check latency in milliseconds")
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(
        ...,
        description="Overall service status: healthy, degraded, or unhealthy",
    )
    storage_backend: str = Field(..., description="memory or redis")
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    version: str = Field(default="0.1.0")
