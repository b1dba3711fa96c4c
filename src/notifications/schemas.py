"""Schema definitions for outbound webhook channels and their delivery log.

``WebhookConfig`` describes one destination. ``WebhookPayload`` is the
envelope sent for every event, ``WebhookResult`` is the outcome of a single
attempt, and ``WebhookLog`` pairs the two for the delivery history.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

WILDCARD_EVENT = "*"

WebhookStatus = Literal["success", "failed"]

# Event catalogue shown in the channel editor: (id, display name, category)
WEBHOOK_EVENT_TYPES: list[dict[str, str]] = [
    {"id": "alert.critical", "name": "Critical Alert", "category": "Alerts"},
    {"id": "alert.warning", "name": "Warning Alert", "category": "Alerts"},
    {"id": "alert.info", "name": "Info Alert", "category": "Alerts"},
    {"id": "security.login", "name": "User Login", "category": "Security"},
    {"id": "security.failed_login", "name": "Failed Login", "category": "Security"},
    {"id": "security.suspicious", "name": "Suspicious Activity", "category": "Security"},
    {"id": "security.critical", "name": "Critical Security Event", "category": "Security"},
    {"id": "backup.started", "name": "Backup Started", "category": "Backup"},
    {"id": "backup.completed", "name": "Backup Completed", "category": "Backup"},
    {"id": "backup.failed", "name": "Backup Failed", "category": "Backup"},
    {"id": "system.health", "name": "System Health Change", "category": "System"},
    {"id": "system.maintenance", "name": "Maintenance Event", "category": "System"},
    {"id": "billing.threshold", "name": "Billing Threshold", "category": "Billing"},
    {"id": "billing.invoice", "name": "New Invoice", "category": "Billing"},
]

TEST_EVENT = "test.connection"


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class WebhookConfig:
    """An outbound webhook destination.

    Attributes:
        id: Channel identifier.
        name: Display name.
        url: Endpoint receiving the POST.
        secret: HMAC-SHA256 signing key. For ``pagerduty`` channels it is
            the routing key and deliveries are not signed.
        events: Event types delivered to this channel. ``"*"`` means all.
        is_active: Inactive channels never receive events.
        retry_count: Retries after the first failed attempt.
        retry_delay: Seconds to wait between attempts.
        last_triggered: Time of the most recent attempt.
        last_status: Outcome of the most recent attempt.
        created_at: Creation timestamp.
        headers: Extra request headers, merged over the defaults.
        format: Payload formatter name (default, slack, teams, pagerduty).
    """

    id: str
    name: str
    url: str
    events: list[str] = field(default_factory=list)
    secret: str | None = None
    is_active: bool = True
    retry_count: int = 3
    retry_delay: float = 30.0
    last_triggered: datetime | None = None
    last_status: WebhookStatus | None = None
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    headers: dict[str, str] = field(default_factory=dict)
    format: str = "default"

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            raise ValueError(f"retry_count must be >= 0, got {self.retry_count}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")

    def accepts(self, event: str) -> bool:
        """True if this channel is active and subscribed to ``event``."""
        return self.is_active and (
            WILDCARD_EVENT in self.events or event in self.events
        )

    def to_dict(self, include_secret: bool = False) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary.

        The secret is replaced by a ``has_secret`` flag unless
        ``include_secret`` is set.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "events": list(self.events),
            "is_active": self.is_active,
            "retry_count": self.retry_count,
            "retry_delay": self.retry_delay,
            "last_triggered": self.last_triggered.isoformat() if self.last_triggered else None,
            "last_status": self.last_status,
            "created_at": self.created_at.isoformat(),
            "headers": dict(self.headers),
            "format": self.format,
            "has_secret": self.secret is not None,
        }
        if include_secret:
            data["secret"] = self.secret
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WebhookConfig":
        return cls(
            id=data["id"],
            name=data["name"],
            url=data["url"],
            events=list(data.get("events", [])),
            secret=data.get("secret"),
            is_active=data.get("is_active", True),
            retry_count=data.get("retry_count", 3),
            retry_delay=data.get("retry_delay", 30.0),
            last_triggered=_parse_datetime(data.get("last_triggered")),
            last_status=data.get("last_status"),
            created_at=_parse_datetime(data.get("created_at")) or datetime.now(timezone.utc),
            headers=dict(data.get("headers") or {}),
            format=data.get("format", "default"),
        )


@dataclass(frozen=True)
class WebhookPayload:
    """Envelope delivered for every event."""

    event: str
    timestamp: str
    data: dict[str, Any]
    source: str

    def to_dict(self) -> dict[str, Any]:
        # Key order is part of the signed body
        return {
            "event": self.event,
            "timestamp": self.timestamp,
            "data": self.data,
            "source": self.source,
        }


@dataclass(frozen=True)
class WebhookResult:
    """Outcome of one delivery attempt.

    ``response_time`` is in milliseconds.
    """

    success: bool
    status_code: int | None = None
    response_time: float | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "status_code": self.status_code,
            "response_time": self.response_time,
            "error": self.error,
        }


@dataclass(frozen=True)
class WebhookLog:
    """Immutable record of one attempt and its result."""

    id: str
    webhook_id: str
    webhook_name: str
    event: str
    payload: WebhookPayload
    response: WebhookResult
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "webhook_id": self.webhook_id,
            "webhook_name": self.webhook_name,
            "event": self.event,
            "payload": self.payload.to_dict(),
            "response": self.response.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WebhookLog":
        return cls(
            id=data["id"],
            webhook_id=data["webhook_id"],
            webhook_name=data["webhook_name"],
            event=data["event"],
            payload=WebhookPayload(**data["payload"]),
            response=WebhookResult(**data["response"]),
            timestamp=_parse_datetime(data["timestamp"]),
        )
