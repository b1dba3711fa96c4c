"""Built-in threshold set for a hosted Postgres project on the Pro plan.

Bounds are 80%/95% of the plan quotas: 8 GB database storage, 250 GB
bandwidth, 100K monthly active users, 500 pooled connections, plus two
monthly cost tiers. ``reset_to_defaults()`` restores exactly this set.
"""

from dataclasses import dataclass

from src.alerts.schemas import Threshold


@dataclass(frozen=True)
class _ThresholdDef:
    """Lightweight threshold definition for seed data."""

    id: str
    name: str
    metric: str
    value: float
    unit: str
    notify_email: bool


DEFAULT_THRESHOLD_DEFS: list[_ThresholdDef] = [
    _ThresholdDef("cost-warning", "Monthly Cost Warning", "cost", 30, "USD", True),
    _ThresholdDef("cost-critical", "Monthly Cost Critical", "cost", 50, "USD", True),
    # 80% / 95% of 8 GB
    _ThresholdDef("storage-80", "Storage 80% Warning", "storage", 6.4, "GB", True),
    _ThresholdDef("storage-95", "Storage 95% Critical", "storage", 7.6, "GB", True),
    # 80% of 250 GB
    _ThresholdDef("bandwidth-warning", "Bandwidth 80% Warning", "bandwidth", 200, "GB", False),
    # 80% of 100K
    _ThresholdDef("mau-warning", "MAU 80% Warning", "mau", 80000, "users", False),
    # 80% of 500
    _ThresholdDef("connections-warning", "Connections Warning", "connections", 400, "connections", False),
]


def default_thresholds() -> list[Threshold]:
    """Build fresh Threshold records for the seed set.

    Returns new objects on every call so callers can mutate them freely.
    """
    return [
        Threshold(
            id=d.id,
            name=d.name,
            metric=d.metric,
            operator="gt",
            value=d.value,
            unit=d.unit,
            enabled=True,
            notify_email=d.notify_email,
            notify_dashboard=True,
        )
        for d in DEFAULT_THRESHOLD_DEFS
    ]
