"""
Request middleware for logging, timing, request ID tracking and rate limiting.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.rate_limit import get_rate_limiter

logger = get_logger(__name__)

# Never throttle probes or the Stripe webhook endpoint
RATE_LIMIT_EXEMPT_PATHS = ("/health", "/metrics", "/api/v1/webhooks/")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Assigns a unique request ID to each request
    2. Logs request method, path, status code, and duration
    3. Binds request context to structlog for correlation
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms}ms"

            return response

        except Exception as e:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.error(
                "request_failed",
                error=str(e),
                duration_ms=duration_ms,
            )
            raise


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP fixed-window limit; answers 429 with Retry-After once exhausted."""

    def __init__(self, app, limiter=None):
        super().__init__(app)
        self.limiter = limiter or get_rate_limiter()

    async def dispatch(self, request: Request, call_next) -> Response:
        settings = get_settings()
        path = request.url.path
        if not settings.RATE_LIMIT_ENABLED or path.startswith(RATE_LIMIT_EXEMPT_PATHS):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        result = await self.limiter.hit(client_ip)
        if not result.allowed:
            logger.warning("rate_limit_exceeded", client_ip=client_ip, limit=result.limit)
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Too many requests, please try again later",
                    "code": "RATE_LIMIT_EXCEEDED",
                },
                headers={"Retry-After": str(result.reset_in)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response
