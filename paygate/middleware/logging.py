"""
Request logging middleware with correlation ID support.

Every request gets a short correlation ID, bound to the structlog context and
returned in the X-Correlation-ID header.

Query strings are never logged: capability tokens travel there.
"""

import secrets
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

QUIET_PATHS = frozenset({"/health"})


def generate_correlation_id() -> str:
    """Generate an 8-character correlation ID."""
    return secrets.token_hex(4)


def current_correlation_id() -> str | None:
    return structlog.contextvars.get_contextvars().get("correlation_id")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs request_completed / request_failed with method, path, status and
    duration. Never logs IP addresses, headers or query parameters.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = generate_correlation_id()
        start_time = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        logger = structlog.get_logger()
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                error=str(e),
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                exc_info=True,
            )
            raise

        if path not in QUIET_PATHS:
            logger.info(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )

        response.headers["X-Correlation-ID"] = correlation_id
        return response
