"""
API Middleware

- Request logging: request id bound to the log context, one completion event
  per request carrying the user and the response cache outcome
- Response headers: security headers, plus cache headers on analytics reads
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

from academy_analytics.config import get_settings

logger = structlog.get_logger(__name__)

ANALYTICS_PREFIX = "/api/v1/analytics"


def _user_id(request: Request):
    user = getattr(request.state, "user", None)
    return getattr(user, "id", None)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request once it completes, at a level matching its status."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        request_id = request.headers.get("X-Request-ID", str(time.time_ns()))

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            if response.status_code >= 500:
                log = logger.error
            elif response.status_code >= 400:
                log = logger.warning
            else:
                log = logger.info

            log(
                "Request completed",
                method=request.method,
                path=request.url.path,
                query=str(request.query_params) or None,
                user_id=_user_id(request),
                status_code=response.status_code,
                cache=getattr(request.state, "cache_status", None),
                duration_ms=round(duration_ms, 2),
            )

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        response.headers["X-Request-ID"] = request_id
        return response


class ResponseHeadersMiddleware(BaseHTTPMiddleware):
    """
    Security headers on every response.

    Successful analytics reads also report the response cache outcome in
    X-Cache and may be kept privately by the client for the cache lifetime,
    since entries are keyed per user.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        cache_status = getattr(request.state, "cache_status", None)
        if cache_status is not None:
            response.headers["X-Cache"] = cache_status

        if (
            request.method == "GET"
            and request.url.path.startswith(ANALYTICS_PREFIX)
            and response.status_code == 200
        ):
            ttl = get_settings().cache.default_ttl_seconds
            response.headers["Cache-Control"] = f"private, max-age={ttl}"
        else:
            response.headers.setdefault("Cache-Control", "no-store")

        return response
