"""
FastAPI application factory for the monitoring API.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.dependencies import cleanup_dependencies
from src.api.middleware.timeout import TimeoutMiddleware
from src.api.routes import alerts, email, health, webhooks
from src.config.settings import get_settings

logger = structlog.get_logger(__name__)

API_TITLE = "Lands DB Monitoring API"
API_VERSION = "0.1.0"

API_DESCRIPTION = """
Alert thresholds and notification dispatch for the Lands DB Supabase project.

## Alerts

Thresholds compare usage metrics (cost, storage, bandwidth, MAU, connections,
functions) to a bound. Evaluating a usage snapshot records alert events and
delivers them to webhook channels as `alert.<severity>`.

## Webhooks

Deliveries are signed with `X-Webhook-Signature: sha256=<hex>` when the
channel has a secret, and retried with a fixed delay.
"""

OPENAPI_TAGS = [
    {"name": "health", "description": "Service health checks"},
    {"name": "alerts", "description": "Thresholds, evaluation, and alert history"},
    {"name": "webhooks", "description": "Webhook channels and delivery log"},
    {"name": "email", "description": "Email provider status and tests"},
]

REQUEST_ID_HEADER = "X-Request-ID"

# Health-check and scrape traffic is logged at debug so it does not drown delivery logs
_QUIET_PATHS = ("/health", "/metrics")


def _request_id(request: Request) -> str:
    return (
        request.headers.get(REQUEST_ID_HEADER)
        or request.headers.get("X-Correlation-ID")
        or uuid.uuid4().hex
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(
        "Monitoring API starting up",
        environment=settings.environment,
        storage_backend=settings.storage_backend,
    )
    try:
        yield
    finally:
        logger.info("Monitoring API shutting down")
        await cleanup_dependencies()


async def log_requests(request: Request, call_next):
    """Tag every log line of a request with its id and echo the id back."""
    request_id = _request_id(request)
    structlog.contextvars.bind_contextvars(request_id=request_id)
    started = time.perf_counter()

    try:
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        path = request.url.path
        if response.status_code >= 500:
            log = logger.warning
        elif path.startswith(_QUIET_PATHS):
            log = logger.debug
        else:
            log = logger.info
        log(
            "Request handled",
            method=request.method,
            path=path,
            status=response.status_code,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response
    finally:
        structlog.contextvars.unbind_contextvars("request_id")


async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error_type": "internal"},
    )


def create_app() -> FastAPI:
    """
    Build the monitoring API.

    Middleware order matters: the timeout is registered before the request
    logger, so the logger sits outside it and still records 504 responses.
    """
    settings = get_settings()

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=lifespan,
        openapi_tags=OPENAPI_TAGS,
    )

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    if settings.request_timeout_seconds > 0:
        app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)

    app.middleware("http")(log_requests)
    app.add_exception_handler(Exception, unhandled_error)

    for module, tag in ((health, "health"), (alerts, "alerts"), (webhooks, "webhooks"), (email, "email")):
        app.include_router(module.router, tags=[tag])

    @app.get("/", include_in_schema=False)
    async def root():
        return {"service": API_TITLE, "version": API_VERSION, "docs": app.docs_url}

    return app
