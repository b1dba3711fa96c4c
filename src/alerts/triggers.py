"""Stateless threshold checks.

Each function is pure: resolve a metric from a snapshot, compare it to a
bound, classify severity, or turn a breach into an ``AlertEvent``. History,
cool-down, and notification live in ``AlertService``.

Unknown metrics or operators never raise. They evaluate as "not
triggered" so one bad record cannot stop the rest of an evaluation cycle.
"""

import operator as _op
from collections.abc import Callable
from datetime import datetime

from src.alerts.schemas import AlertEvent, Threshold, UsageMetrics

BYTES_PER_GB = 1024 ** 3

# Metrics reported in bytes and compared in GB
_BYTE_METRICS: frozenset[str] = frozenset({"storage", "bandwidth"})
_METRIC_NAMES: frozenset[str] = frozenset(UsageMetrics.__dataclass_fields__)

OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "gt": _op.gt,
    "gte": _op.ge,
    "lt": _op.lt,
    "lte": _op.le,
    "eq": _op.eq,
}


def resolve_metric_value(metrics: UsageMetrics, metric: str) -> float | None:
    """Pick the value a threshold on ``metric`` compares against.

    Byte-valued metrics are converted to GB (``/ 2**30``). Returns None for
    unknown metric names.
    """
    value = getattr(metrics, metric, None) if metric in _METRIC_NAMES else None
    if value is None:
        return None
    if metric in _BYTE_METRICS:
        return value / BYTES_PER_GB
    return value


def evaluate_condition(current: float | None, operator: str, bound: float) -> bool:
    """Apply ``current <operator> bound``. Unknown operators return False."""
    if current is None:
        return False
    compare = OPERATORS.get(operator)
    if compare is None:
        return False
    return compare(current, bound)


def derive_severity(threshold: Threshold) -> str:
    """Severity for events from ``threshold``.

    An explicit ``severity`` wins. Otherwise the name decides:
    "critical" → critical, "warning" → warning, anything else → info.
    """
    if threshold.severity is not None:
        return threshold.severity
    name = threshold.name.lower()
    if "critical" in name:
        return "critical"
    if "warning" in name:
        return "warning"
    return "info"


def format_bound(value: float) -> str:
    """Render a bound the way the dashboard prints numbers (30, not 30.0)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_message(threshold: Threshold, current: float) -> str:
    bound = format_bound(threshold.value)
    return (
        f"{threshold.name}: {current:.2f} {threshold.unit} "
        f"exceeds threshold of {bound} {threshold.unit}"
    )


def check_threshold(
    threshold: Threshold,
    metrics: UsageMetrics,
    now: datetime,
) -> AlertEvent | None:
    """Check one threshold against a snapshot.

    Does not look at ``enabled``; callers filter disabled thresholds.

    Args:
        threshold: Rule to evaluate.
        metrics: Current usage snapshot.
        now: Timestamp used for the event id and ``triggered_at``.

    Returns:
        AlertEvent or None.
    """
    current = resolve_metric_value(metrics, threshold.metric)
    if not evaluate_condition(current, threshold.operator, threshold.value):
        return None

    return AlertEvent(
        id=f"alert-{int(now.timestamp() * 1000)}-{threshold.id}",
        threshold_id=threshold.id,
        threshold_name=threshold.name,
        metric=threshold.metric,
        current_value=current,
        threshold_value=threshold.value,
        message=build_message(threshold, current),
        severity=derive_severity(threshold),
        triggered_at=now,
        acknowledged=False,
    )
