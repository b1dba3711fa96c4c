"""Alert thresholds and their evaluation against usage snapshots.

Components:
- Threshold / UsageMetrics / AlertEvent / AlertSummary: Dataclasses
- AlertConfig: Pydantic settings for history cap, cool-down, and recipients
- ThresholdRegistry: CRUD over threshold definitions
- ThresholdStore / EventStore: Store interfaces with in-memory and Redis backends
- AlertService: Orchestrator for evaluation, history, and notification
- MetricName / ComparisonOperator / AlertSeverity: Literal types for type safety
- VALID_METRICS / VALID_OPERATORS / VALID_SEVERITIES: Frozensets for runtime validation
"""

from src.alerts.config import AlertConfig
from src.alerts.registry import ThresholdRegistry
from src.alerts.repository import (
    EventStore,
    InMemoryEventStore,
    InMemoryThresholdStore,
    RedisEventStore,
    RedisThresholdStore,
    ThresholdStore,
)
from src.alerts.schemas import (
    VALID_METRICS,
    VALID_OPERATORS,
    VALID_SEVERITIES,
    AlertEvent,
    AlertSeverity,
    AlertSummary,
    ComparisonOperator,
    MetricName,
    Threshold,
    UsageMetrics,
)
from src.alerts.seed_data import default_thresholds
from src.alerts.service import AlertService

__all__ = [
    "AlertConfig",
    "AlertEvent",
    "AlertService",
    "AlertSeverity",
    "AlertSummary",
    "ComparisonOperator",
    "EventStore",
    "InMemoryEventStore",
    "InMemoryThresholdStore",
    "MetricName",
    "RedisEventStore",
    "RedisThresholdStore",
    "Threshold",
    "ThresholdRegistry",
    "ThresholdStore",
    "UsageMetrics",
    "VALID_METRICS",
    "VALID_OPERATORS",
    "VALID_SEVERITIES",
    "default_thresholds",
]
