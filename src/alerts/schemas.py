"""Schema definitions for thresholds, usage snapshots, and alert events.

A ``Threshold`` is a named rule comparing one usage metric to a bound. A
``UsageMetrics`` snapshot comes from the billing/metrics collaborator once
per evaluation cycle. Each breach found during an evaluation becomes an
``AlertEvent`` in the alert history.
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

MetricName = Literal[
    "cost",
    "storage",
    "bandwidth",
    "mau",
    "connections",
    "functions",
]

VALID_METRICS: frozenset[str] = frozenset({
    "cost",
    "storage",
    "bandwidth",
    "mau",
    "connections",
    "functions",
})

ComparisonOperator = Literal["gt", "gte", "lt", "lte", "eq"]

VALID_OPERATORS: frozenset[str] = frozenset({
    "gt",
    "gte",
    "lt",
    "lte",
    "eq",
})

AlertSeverity = Literal["critical", "warning", "info"]

VALID_SEVERITIES: frozenset[str] = frozenset({
    "critical",
    "warning",
    "info",
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _coerce_datetime(name: str, value: Any) -> datetime | None:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise ValueError(f"Threshold {name} must be an ISO timestamp, got {value!r}") from None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
    if value is not None and not isinstance(value, datetime):
        raise ValueError(f"Threshold {name} must be a timestamp, got {value!r}")
    return value


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class Threshold:
    """A named rule that fires when a usage metric crosses a bound.

    Attributes:
        id: Unique identifier within the registry.
        name: Display name. Also the fallback source of severity.
        metric: Usage dimension to watch.
        operator: Comparison applied as ``metric <operator> value``.
        value: Numeric bound, in ``unit``.
        unit: Display unit (``USD``, ``GB``, ``users``...).
        enabled: Disabled thresholds are skipped by evaluation.
        notify_email: Email recipients when the threshold fires.
        notify_dashboard: Show on the dashboard when the threshold fires.
        created_at: Creation timestamp.
        last_triggered: Timestamp of the most recent breach, if any.
        severity: Explicit severity. When None, derived from ``name``.
    """

    id: str
    name: str
    metric: str
    operator: str
    value: float
    unit: str
    enabled: bool = True
    notify_email: bool = False
    notify_dashboard: bool = True
    created_at: datetime = field(default_factory=_utcnow)
    last_triggered: datetime | None = None
    severity: str | None = None

    def __post_init__(self) -> None:
        if self.metric not in VALID_METRICS:
            raise ValueError(
                f"Invalid metric {self.metric!r}. "
                f"Must be one of: {sorted(VALID_METRICS)}"
            )
        if self.operator not in VALID_OPERATORS:
            raise ValueError(
                f"Invalid operator {self.operator!r}. "
                f"Must be one of: {sorted(VALID_OPERATORS)}"
            )
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise ValueError(f"Threshold value must be a number, got {self.value!r}")
        if not math.isfinite(self.value):
            raise ValueError(f"Threshold value must be finite, got {self.value!r}")
        if self.severity is not None and self.severity not in VALID_SEVERITIES:
            raise ValueError(
                f"Invalid severity {self.severity!r}. "
                f"Must be one of: {sorted(VALID_SEVERITIES)}"
            )
        for name in ("name", "unit"):
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"Threshold {name} must be a string, got {getattr(self, name)!r}")
        for name in ("enabled", "notify_email", "notify_dashboard"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"Threshold {name} must be a boolean, got {getattr(self, name)!r}")

        # Timestamps arrive as ISO strings from JSON bodies and stored records
        self.created_at = _coerce_datetime("created_at", self.created_at)
        if self.created_at is None:
            raise ValueError("Threshold created_at is required")
        self.last_triggered = _coerce_datetime("last_triggered", self.last_triggered)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "metric": self.metric,
            "operator": self.operator,
            "value": self.value,
            "unit": self.unit,
            "enabled": self.enabled,
            "notify_email": self.notify_email,
            "notify_dashboard": self.notify_dashboard,
            "created_at": self.created_at.isoformat(),
            "last_triggered": _isoformat(self.last_triggered),
            "severity": self.severity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Threshold":
        """Create a Threshold from a dictionary.

        Records written before ``severity`` existed load with
        ``severity=None`` and keep their name-derived severity.
        """
        return cls(
            id=data["id"],
            name=data["name"],
            metric=data["metric"],
            operator=data["operator"],
            value=data["value"],
            unit=data.get("unit", ""),
            enabled=data.get("enabled", True),
            notify_email=data.get("notify_email", False),
            notify_dashboard=data.get("notify_dashboard", True),
            created_at=_parse_datetime(data.get("created_at")) or _utcnow(),
            last_triggered=_parse_datetime(data.get("last_triggered")),
            severity=data.get("severity"),
        )


@dataclass(frozen=True)
class UsageMetrics:
    """Point-in-time usage snapshot for the hosted database project.

    ``storage`` and ``bandwidth`` are in bytes. ``cost`` is in the billing
    currency. The rest are plain counts.
    """

    cost: float = 0.0
    storage: float = 0.0
    bandwidth: float = 0.0
    mau: float = 0.0
    connections: float = 0.0
    functions: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageMetrics":
        return cls(**{
            key: float(data[key])
            for key in VALID_METRICS
            if data.get(key) is not None
        })


@dataclass
class AlertEvent:
    """A single threshold breach recorded during one evaluation.

    Attributes:
        id: ``alert-<epoch ms>-<threshold id>``.
        threshold_id: Threshold that fired.
        threshold_name: Name of that threshold at trigger time.
        metric: Metric that was compared.
        current_value: Observed value in the threshold's unit.
        threshold_value: Bound that was crossed.
        message: Human-readable description.
        severity: Urgency level (critical, warning, info).
        triggered_at: When the breach was detected.
        acknowledged: Whether a user has reviewed the event.
    """

    id: str
    threshold_id: str
    threshold_name: str
    metric: str
    current_value: float
    threshold_value: float
    message: str
    severity: str
    triggered_at: datetime = field(default_factory=_utcnow)
    acknowledged: bool = False

    def __post_init__(self) -> None:
        if self.severity not in VALID_SEVERITIES:
            raise ValueError(
                f"Invalid severity {self.severity!r}. "
                f"Must be one of: {sorted(VALID_SEVERITIES)}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "threshold_id": self.threshold_id,
            "threshold_name": self.threshold_name,
            "metric": self.metric,
            "current_value": self.current_value,
            "threshold_value": self.threshold_value,
            "message": self.message,
            "severity": self.severity,
            "triggered_at": self.triggered_at.isoformat(),
            "acknowledged": self.acknowledged,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AlertEvent":
        return cls(
            id=data["id"],
            threshold_id=data["threshold_id"],
            threshold_name=data["threshold_name"],
            metric=data["metric"],
            current_value=data["current_value"],
            threshold_value=data["threshold_value"],
            message=data["message"],
            severity=data["severity"],
            triggered_at=_parse_datetime(data.get("triggered_at")) or _utcnow(),
            acknowledged=data.get("acknowledged", False),
        )


@dataclass
class AlertSummary:
    """Counts over the current thresholds and alert history."""

    total_thresholds: int
    enabled_thresholds: int
    total_alerts: int
    unacknowledged_alerts: int
    critical_alerts: int
    warning_alerts: int
    last_alert_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_alert_time"] = _isoformat(self.last_alert_time)
        return data
