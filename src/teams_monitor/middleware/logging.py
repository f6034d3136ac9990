"""Request logging middleware."""
import time
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

# Probes are noise; the event stream never completes while a client listens.
EXCLUDED_PATHS = frozenset({
    "/api/health/live",
    "/api/health/ready",
    "/api/events",
})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one structured line per snapshot or command request.

    The dashboard polls snapshot endpoints, so successful GETs are logged
    at debug level and everything else at info.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and log details.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware or route handler.

        Returns:
            HTTP response from handler.
        """
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        log = logger.debug if request.method == "GET" and response.status_code < 400 else logger.info
        log(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(duration_ms, 2),
            client=request.client.host if request.client else None,
        )

        return response
