"""HTTP logging middleware for healthcare environments.

Design goals:
- Log *metadata only* (no request/response bodies, no query strings, no sensitive headers).
- Generate or propagate X-Correlation-ID so logs and error bodies can be matched.
- Structured logging using the standard library logger `extra` fields.
"""

from __future__ import annotations

import logging
import re
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger("app.http")

CORRELATION_ID_HEADER = "X-Correlation-ID"
_SAFE_CORRELATION_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


def _get_or_create_correlation_id(*, request: Request) -> str:
    """Return a safe correlation id, either propagated or newly generated.

    We only accept a narrow character set and length to avoid log injection and
    other unexpected values. If invalid, we generate a new UUID4.
    """

    candidate = request.headers.get(CORRELATION_ID_HEADER)
    if candidate and _SAFE_CORRELATION_ID_PATTERN.fullmatch(candidate):
        return candidate
    return uuid.uuid4().hex


def get_correlation_id(request: Request) -> str:
    """Return the id assigned to this request, creating one if the middleware did not run."""

    correlation_id = getattr(request.state, "correlation_id", None)
    if not correlation_id:
        correlation_id = _get_or_create_correlation_id(request=request)
        request.state.correlation_id = correlation_id
    return correlation_id


def safe_route_label(*, request: Request) -> str:
    """
    Return a safe path label for logs.

    Prefer the framework's route template to avoid logging raw URLs.
    """

    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if isinstance(path, str) and path:
        return path
    return "unmatched"


class HttpLoggingMiddleware(BaseHTTPMiddleware):
    """Log request/response metadata and propagate a correlation id.

    IMPORTANT: This middleware intentionally does NOT log:
    - request body / response body (chat messages may contain PHI)
    - query string values
    - headers (may contain API keys, session ids or client addresses)
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = _get_or_create_correlation_id(request=request)
        started = time.perf_counter()
        # Downstream handlers read the id from request.state for logs and error bodies.
        request.state.correlation_id = correlation_id

        try:
            response = await call_next(request)
        except Exception:  # noqa: BLE001 - we must log unexpected exceptions with stack trace
            duration_ms = (time.perf_counter() - started) * 1000.0
            logger.exception(
                "Unhandled exception while processing request",
                extra={
                    "correlation_id": correlation_id,
                    "http_method": request.method,
                    "request_path": safe_route_label(request=request),
                    "status_code": 500,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000.0

        # Ensure correlation id is present on all responses.
        response.headers[CORRELATION_ID_HEADER] = correlation_id

        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "http_method": request.method,
                "request_path": safe_route_label(request=request),
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
