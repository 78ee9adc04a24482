"""CORS middleware for the chat front-end.

SECURITY:
- Exactly one origin is echoed per response (see `app.core.cors`).
- Explicit methods and headers; no credentials.
- Preflight requests are answered here, before rate limiting or body parsing.
"""

from __future__ import annotations

from collections.abc import Sequence

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from app.core.cors import resolve_allowed_origin
from app.core.middleware.http_logging import CORRELATION_ID_HEADER

ALLOWED_METHODS = "POST, OPTIONS"
ALLOWED_HEADERS = f"Content-Type, {CORRELATION_ID_HEADER}, X-Session-ID"


def build_cors_headers(*, origin: str | None, allowed_origins: Sequence[str]) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": resolve_allowed_origin(origin, allowed_origins),
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Expose-Headers": CORRELATION_ID_HEADER,
        # Cache preflight requests for 10 minutes
        "Access-Control-Max-Age": "600",
        "Vary": "Origin",
    }


class CorsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, *, allowed_origins: Sequence[str]):
        super().__init__(app)
        self._allowed_origins = list(allowed_origins)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        headers = build_cors_headers(
            origin=request.headers.get("origin"), allowed_origins=self._allowed_origins
        )

        if request.method == "OPTIONS":
            return Response(status_code=200, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
