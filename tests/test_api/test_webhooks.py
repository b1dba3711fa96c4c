"""Tests for webhook REST API endpoints."""

import json

import httpx
import respx

from src.notifications.dispatcher import TEST_MESSAGE
from src.notifications.signing import verify_signature

ENDPOINT = "https://hooks.example.com/ops"


def _webhook(**overrides) -> dict:
    body = {
        "id": "ops",
        "name": "Ops Endpoint",
        "url": ENDPOINT,
        "events": ["*"],
        "secret": "s3cret",
        "is_active": True,
        "retry_count": 0,
        "retry_delay": 0,
    }
    body.update(overrides)
    return body


# ── GET /webhooks ────────────────────────────────────────


class TestGetWebhooks:
    def test_lists_builtin_channels(self, client):
        resp = client.get("/webhooks")

        assert resp.status_code == 200
        data = resp.json()
        assert [w["id"] for w in data["webhooks"]] == [
            "webhook-1", "webhook-2", "webhook-3", "webhook-4",
        ]
        assert data["logs"] == []
        assert "slack" in data["formats"]
        assert any(e["id"] == "alert.critical" for e in data["event_types"])

    def test_secrets_never_returned(self, client):
        client.post("/webhooks", json={"action": "save", "webhook": _webhook()})

        data = client.get("/webhooks").json()
        saved = next(w for w in data["webhooks"] if w["id"] == "ops")
        assert "secret" not in saved
        assert saved["has_secret"] is True


# ── POST /webhooks ───────────────────────────────────────


class TestSave:
    def test_save_new(self, client):
        resp = client.post("/webhooks", json={"action": "save", "webhook": _webhook()})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Webhook configuration saved"
        assert body["webhook"]["id"] == "ops"
        assert len(client.get("/webhooks").json()["webhooks"]) == 5

    def test_save_existing_keeps_created_at_and_secret(self, client):
        before = next(
            w for w in client.get("/webhooks").json()["webhooks"] if w["id"] == "webhook-4"
        )
        client.post("/webhooks", json={
            "action": "save",
            "webhook": _webhook(id="webhook-4", name="Custom Endpoint", secret="abc"),
        })

        resp = client.post("/webhooks", json={
            "action": "save",
            "webhook": _webhook(id="webhook-4", name="Renamed", secret=None),
        })

        saved = resp.json()["webhook"]
        assert saved["name"] == "Renamed"
        assert saved["created_at"] == before["created_at"]
        assert saved["has_secret"] is True
        assert len(client.get("/webhooks").json()["webhooks"]) == 4

    def test_save_unknown_format(self, client):
        resp = client.post("/webhooks", json={
            "action": "save",
            "webhook": _webhook(format="carrier-pigeon"),
        })
        assert resp.status_code == 422

    def test_save_negative_retry_rejected(self, client):
        resp = client.post("/webhooks", json={
            "action": "save",
            "webhook": _webhook(retry_count=-1),
        })
        assert resp.status_code == 422

    def test_save_requires_webhook(self, client):
        resp = client.post("/webhooks", json={"action": "save"})
        assert resp.status_code == 400


class TestTestAction:
    @respx.mock
    def test_sends_signed_test_event(self, client):
        route = respx.post(ENDPOINT).mock(return_value=httpx.Response(200))

        resp = client.post("/webhooks", json={"action": "test", "webhook": _webhook()})

        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["status_code"] == 200

        request = route.calls.last.request
        body = json.loads(request.content)
        assert body["event"] == "test.connection"
        assert body["data"]["message"] == TEST_MESSAGE
        assert verify_signature("s3cret", request.content, request.headers["X-Webhook-Signature"])

    @respx.mock
    def test_failure_reported_not_raised(self, client):
        respx.post(ENDPOINT).mock(return_value=httpx.Response(404))

        resp = client.post("/webhooks", json={"action": "test", "webhook": _webhook()})

        assert resp.status_code == 200
        assert resp.json()["success"] is False
        assert resp.json()["error"] == "HTTP 404: Not Found"

    @respx.mock
    def test_test_is_logged(self, client):
        respx.post(ENDPOINT).mock(return_value=httpx.Response(200))

        client.post("/webhooks", json={"action": "test", "webhook": _webhook()})

        logs = client.get("/webhooks").json()["logs"]
        assert len(logs) == 1
        assert logs[0]["webhook_id"] == "ops"
        assert logs[0]["response"]["success"] is True

    @respx.mock
    def test_draft_does_not_overwrite_stored_channel(self, client):
        client.post("/webhooks", json={"action": "save", "webhook": _webhook(
            id="webhook-4", name="Custom Endpoint", is_active=False,
        )})
        respx.post("https://hook.example/draft").mock(return_value=httpx.Response(200))

        draft = _webhook(
            id="webhook-4", name="Draft", url="https://hook.example/draft",
            secret=None, is_active=True,
        )
        resp = client.post("/webhooks", json={"action": "test", "webhook": draft})
        assert resp.json()["success"] is True

        stored = next(
            w for w in client.get("/webhooks").json()["webhooks"] if w["id"] == "webhook-4"
        )
        assert stored["name"] == "Custom Endpoint"
        assert stored["url"] == ENDPOINT
        assert stored["has_secret"] is True
        assert stored["is_active"] is False
        assert stored["last_status"] == "success"
        assert stored["last_triggered"] is not None


class TestTrigger:
    @respx.mock
    def test_trigger_active_subscribed_channels(self, client):
        route = respx.post(ENDPOINT).mock(return_value=httpx.Response(200))
        client.post("/webhooks", json={
            "action": "save",
            "webhook": _webhook(events=["backup.completed"]),
        })

        resp = client.post("/webhooks", json={
            "action": "trigger",
            "event": "backup.completed",
            "data": {"name": "nightly"},
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert list(body["results"]) == ["ops"]
        assert body["results"]["ops"]["success"] is True
        assert json.loads(route.calls.last.request.content)["data"] == {"name": "nightly"}

    def test_trigger_without_subscribers(self, client):
        resp = client.post("/webhooks", json={"action": "trigger", "event": "billing.invoice"})

        assert resp.json() == {"success": True, "results": {}}
        assert client.get("/webhooks").json()["logs"] == []

    def test_trigger_requires_event(self, client):
        resp = client.post("/webhooks", json={"action": "trigger"})
        assert resp.status_code == 400

    def test_unknown_action(self, client):
        resp = client.post("/webhooks", json={"action": "delete"})
        assert resp.status_code == 400
