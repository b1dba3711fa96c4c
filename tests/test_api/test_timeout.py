"""Tests for request timeout middleware."""

import asyncio

from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.middleware.timeout import TimeoutMiddleware


def _create_test_app(timeout: float = 1.0, **kwargs) -> FastAPI:
    """Minimal app with a fast route, a slow route, and excluded routes."""
    app = FastAPI()
    app.add_middleware(TimeoutMiddleware, timeout_seconds=timeout, **kwargs)

    @app.get("/fast")
    async def fast():
        return {"status": "ok"}

    @app.post("/webhooks")
    async def slow_trigger():
        await asyncio.sleep(10)
        return {"status": "ok"}

    @app.get("/health")
    async def health():
        await asyncio.sleep(0.2)
        return {"status": "healthy"}

    @app.get("/metrics")
    async def metrics():
        await asyncio.sleep(0.2)
        return {"status": "ok"}

    return app


class TestTimeoutMiddleware:
    def test_fast_request_succeeds(self):
        client = TestClient(_create_test_app(timeout=5.0))
        response = client.get("/fast")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_slow_request_returns_504(self):
        client = TestClient(_create_test_app(timeout=0.1))
        response = client.post("/webhooks")

        assert response.status_code == 504
        data = response.json()
        assert "timed out" in data["detail"]
        assert data["timeout_seconds"] == 0.1
        assert data["path"] == "/webhooks"

    def test_health_and_metrics_excluded(self):
        client = TestClient(_create_test_app(timeout=0.05))

        assert client.get("/health").status_code == 200
        assert client.get("/metrics").status_code == 200

    def test_custom_exclusions(self):
        client = TestClient(_create_test_app(timeout=0.05, excluded_prefixes=("/fast",)))

        assert client.get("/fast").status_code == 200
        assert client.get("/health").status_code == 504
