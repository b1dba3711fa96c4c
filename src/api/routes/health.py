"""
Health check endpoint with storage and provider checks.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from src.api.dependencies import get_email_sender, get_redis_client
from src.api.models import ComponentHealth, HealthResponse
from src.config.settings import get_settings
from src.notifications.email import EmailSender

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _check_redis(redis_client) -> ComponentHealth:
    """Check Redis connectivity and measure latency."""
    start = time.perf_counter()
    try:
        await redis_client.ping()
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="healthy",
            latency_ms=round(latency_ms, 2),
        )
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.warning("Redis health check failed", error=str(e))
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round(latency_ms, 2),
            details={"error": str(e)},
        )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Check the health of the service and its dependencies.",
)
async def health_check(
    sender: EmailSender = Depends(get_email_sender),
) -> HealthResponse:
    """
    Check service health.

    Status logic:
    - unhealthy: the Redis storage backend is down
    - degraded: no email provider is configured
    - healthy: all components operational
    """
    settings = get_settings()
    components: dict[str, ComponentHealth] = {}

    if settings.uses_redis:
        components["redis"] = await _check_redis(get_redis_client())

    providers = [p.name for p in sender.configured_providers() if p.is_configured]
    components["email"] = ComponentHealth(
        status="healthy" if sender.is_configured else "not_configured",
        details={"providers": providers},
    )

    if components.get("redis", ComponentHealth(status="healthy")).status == "unhealthy":
        status = "unhealthy"
    elif not sender.is_configured:
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        storage_backend=settings.storage_backend,
        components=components,
        version="0.1.0",
    )
