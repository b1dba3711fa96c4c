"""
Request timeout middleware.

Bounds how long a request may run before the client gets 504 Gateway
Timeout. Webhook triggers wait for every retry, so the app configures a
generous limit. Health and metrics endpoints are never cut off.
"""

import asyncio

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

DEFAULT_EXCLUDED_PREFIXES = ("/health", "/metrics")


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Enforce a maximum request duration, returning 504 on timeout.

    Args:
        app: ASGI application.
        timeout_seconds: Limit applied to each request.
        excluded_prefixes: Path prefixes that run without a limit.
    """

    def __init__(
        self,
        app,
        timeout_seconds: float = 120.0,
        excluded_prefixes: tuple[str, ...] = DEFAULT_EXCLUDED_PREFIXES,
    ):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds
        self.excluded_prefixes = excluded_prefixes

    def _is_excluded(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.excluded_prefixes)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if self._is_excluded(path):
            return await call_next(request)

        try:
            async with asyncio.timeout(self.timeout_seconds):
                return await call_next(request)
        except TimeoutError:
            logger.warning(
                "Request exceeded time limit",
                path=path,
                method=request.method,
                timeout_seconds=self.timeout_seconds,
            )
            return JSONResponse(
                status_code=504,
                content={
                    "detail": f"Request timed out after {self.timeout_seconds}s",
                    "timeout_seconds": self.timeout_seconds,
                    "path": path,
                },
            )
