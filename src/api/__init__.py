"""
FastAPI monitoring service.

Provides REST API for alert thresholds and notifications:
- GET/POST/PUT/DELETE /alerts - Thresholds, evaluation, alert history
- GET/POST /webhooks - Webhook channels, tests, manual triggers
- GET /email/providers, POST /email/test - Email provider status
- GET /health - Service health check
"""

from src.api.app import create_app

__all__ = ["create_app"]
