"""Provider-specific payload shapes for webhook channels.

A formatter is a pure function ``(payload, channel) -> dict`` that turns the
standard envelope into the JSON body a given provider expects. Channels pick
one by name via ``WebhookConfig.format``. Add a provider by decorating a
function with ``@register_formatter("name")``; the dispatcher's retry and
logging path does not change.

Pattern: Strategy (formatter looked up by name at send time).
"""

import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from src.notifications.schemas import WebhookConfig, WebhookPayload

PayloadFormatter = Callable[[WebhookPayload, WebhookConfig], dict[str, Any]]

# Slack/Teams cards show at most this many data fields
MAX_FIELDS = 10

_FORMATTERS: dict[str, PayloadFormatter] = {}

# Formats that put the channel secret in the body instead of signing with it
_SECRET_IN_BODY: set[str] = set()


def register_formatter(
    name: str, secret_in_body: bool = False,
) -> Callable[[PayloadFormatter], PayloadFormatter]:
    """Decorator registering a formatter under ``name``.

    Args:
        name: Value of ``WebhookConfig.format`` that selects the formatter.
        secret_in_body: The formatter sends the channel secret itself (a
            provider credential), so deliveries in this format are not signed.
    """

    def decorator(func: PayloadFormatter) -> PayloadFormatter:
        _FORMATTERS[name] = func
        if secret_in_body:
            _SECRET_IN_BODY.add(name)
        else:
            _SECRET_IN_BODY.discard(name)
        return func

    return decorator


def get_formatter(name: str) -> PayloadFormatter:
    """Look up a formatter.

    Raises:
        KeyError: No formatter is registered under ``name``.
    """
    try:
        return _FORMATTERS[name]
    except KeyError:
        raise KeyError(
            f"Unknown payload format {name!r}. Available: {sorted(_FORMATTERS)}"
        ) from None


def available_formats() -> list[str]:
    return sorted(_FORMATTERS)


def signs_payload(name: str) -> bool:
    """Whether deliveries in format ``name`` carry a signature header."""
    return name not in _SECRET_IN_BODY


def event_severity(event: str) -> str:
    """Severity implied by an event type name."""
    if "critical" in event:
        return "critical"
    if "warning" in event:
        return "warning"
    return "info"


def _fields(data: dict[str, Any]) -> list[tuple[str, str]]:
    return [(key, str(value)) for key, value in list(data.items())[:MAX_FIELDS]]


@register_formatter("default")
def format_envelope(payload: WebhookPayload, channel: WebhookConfig) -> dict[str, Any]:
    """Standard envelope: event, timestamp, data, source."""
    return payload.to_dict()


@register_formatter("slack")
def format_slack(payload: WebhookPayload, channel: WebhookConfig) -> dict[str, Any]:
    """Slack incoming-webhook body using Block Kit."""
    return {
        "text": f"*{payload.event}*",
        "blocks": [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"Lands DB Alert: {payload.event}",
                },
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*{key}:*\n{value}"}
                    for key, value in _fields(payload.data)
                ],
            },
            {
                "type": "context",
                "elements": [
                    {
                        "type": "mrkdwn",
                        "text": f"Triggered at {payload.timestamp}",
                    },
                ],
            },
        ],
    }


@register_formatter("teams")
def format_teams(payload: WebhookPayload, channel: WebhookConfig) -> dict[str, Any]:
    """Microsoft Teams connector MessageCard."""
    theme_colors = {
        "critical": "dc2626",
        "warning": "f59e0b",
        "info": "0891b2",
    }
    return {
        "@type": "MessageCard",
        "@context": "http://schema.org/extensions",
        "themeColor": theme_colors[event_severity(payload.event)],
        "summary": f"Lands DB: {payload.event}",
        "sections": [
            {
                "activityTitle": f"Lands DB Alert: {payload.event}",
                "facts": [
                    {"name": key, "value": value}
                    for key, value in _fields(payload.data)
                ],
                "markdown": True,
            },
        ],
    }


@register_formatter("pagerduty", secret_in_body=True)
def format_pagerduty(payload: WebhookPayload, channel: WebhookConfig) -> dict[str, Any]:
    """PagerDuty Events API v2 trigger. The channel secret is the routing key."""
    return {
        "routing_key": channel.secret or "",
        "event_action": "trigger",
        "dedup_key": f"lands-db-{payload.event}-{int(time.time() * 1000)}",
        "payload": {
            "summary": f"Lands DB: {payload.event}",
            "severity": event_severity(payload.event),
            "source": "Lands DB Monitoring System",
            "timestamp": payload.timestamp,
            "custom_details": payload.data,
        },
    }


def build_payload(event: str, data: dict[str, Any], source: str) -> WebhookPayload:
    """Build the standard envelope stamped with the current UTC time."""
    return WebhookPayload(
        event=event,
        timestamp=datetime.now(timezone.utc).isoformat(),
        data=data,
        source=source,
    )
