"""Tests for provider payload formatters."""

import pytest

from src.notifications import formatters
from src.notifications.formatters import (
    MAX_FIELDS,
    available_formats,
    build_payload,
    event_severity,
    format_envelope,
    format_pagerduty,
    format_slack,
    format_teams,
    get_formatter,
    register_formatter,
    signs_payload,
)
from src.notifications.schemas import WebhookConfig


@pytest.fixture
def payload():
    return build_payload(
        "alert.critical",
        {"metric": "cost", "current_value": 55.0},
        "lands-db-monitoring",
    )


@pytest.fixture
def channel():
    return WebhookConfig(id="c", name="C", url="https://x.example.com", secret="rk-123")


class TestRegistry:
    def test_builtin_formats(self):
        assert {"default", "slack", "teams", "pagerduty"} <= set(available_formats())

    def test_unknown_format(self):
        with pytest.raises(KeyError, match="Unknown payload format"):
            get_formatter("fax")

    def test_register(self, payload, channel, monkeypatch):
        monkeypatch.setattr(formatters, "_FORMATTERS", dict(formatters._FORMATTERS))

        @register_formatter("echo-test")
        def echo(p, c):
            return {"event": p.event}

        assert get_formatter("echo-test")(payload, channel) == {"event": "alert.critical"}

    def test_signing_per_format(self):
        assert signs_payload("default") is True
        assert signs_payload("slack") is True
        assert signs_payload("pagerduty") is False

    def test_register_secret_in_body(self, monkeypatch):
        monkeypatch.setattr(formatters, "_FORMATTERS", dict(formatters._FORMATTERS))
        monkeypatch.setattr(formatters, "_SECRET_IN_BODY", set(formatters._SECRET_IN_BODY))

        @register_formatter("keyed-test", secret_in_body=True)
        def keyed(p, c):
            return {"key": c.secret}

        assert signs_payload("keyed-test") is False


class TestEventSeverity:
    @pytest.mark.parametrize(
        "event,expected",
        [
            ("alert.critical", "critical"),
            ("security.critical", "critical"),
            ("alert.warning", "warning"),
            ("backup.completed", "info"),
        ],
    )
    def test_event_severity(self, event, expected):
        assert event_severity(event) == expected


class TestFormatters:
    def test_envelope(self, payload, channel):
        body = format_envelope(payload, channel)

        assert body["event"] == "alert.critical"
        assert body["source"] == "lands-db-monitoring"
        assert body["data"]["metric"] == "cost"
        assert body["timestamp"].endswith("+00:00")

    def test_slack(self, payload, channel):
        body = format_slack(payload, channel)

        assert body["text"] == "*alert.critical*"
        assert body["blocks"][0]["type"] == "header"
        fields = body["blocks"][1]["fields"]
        assert fields[0]["text"] == "*metric:*\ncost"

    def test_slack_caps_fields(self, channel):
        data = {f"k{i}": i for i in range(MAX_FIELDS + 5)}
        body = format_slack(build_payload("system.health", data, "s"), channel)

        assert len(body["blocks"][1]["fields"]) == MAX_FIELDS

    def test_teams(self, payload, channel):
        body = format_teams(payload, channel)

        assert body["@type"] == "MessageCard"
        assert body["themeColor"] == "dc2626"
        assert {"name": "current_value", "value": "55.0"} in body["sections"][0]["facts"]

    def test_pagerduty_uses_secret_as_routing_key(self, payload, channel):
        body = format_pagerduty(payload, channel)

        assert body["routing_key"] == "rk-123"
        assert body["event_action"] == "trigger"
        assert body["dedup_key"].startswith("lands-db-alert.critical-")
        assert body["payload"]["severity"] == "critical"
        assert body["payload"]["custom_details"] == payload.data
