from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.schemas import ErrorOut
from app.core.metrics import ChatOutcome, record_chat_outcome
from app.core.middleware.cors import build_cors_headers
from app.core.middleware.http_logging import (
    CORRELATION_ID_HEADER,
    get_correlation_id,
    safe_route_label,
)
from app.domain.exceptions import (
    ChatProxyError,
    ConfigurationError,
    RateLimitExceeded,
    UnhandledError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger("app.errors")

_OUTCOMES: dict[type[ChatProxyError], ChatOutcome] = {
    ValidationError: "validation_error",
    RateLimitExceeded: "rate_limited",
    ConfigurationError: "configuration_error",
    UpstreamError: "upstream_error",
    UnhandledError: "unhandled_error",
}


def error_response(*, request: Request, status_code: int, message: str) -> JSONResponse:
    """Build the `{error, correlationId}` body shared by every rejection path."""

    correlation_id = get_correlation_id(request)
    body = ErrorOut(error=message, correlation_id=correlation_id)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True),
        headers={CORRELATION_ID_HEADER: correlation_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register application exception handlers."""

    @app.exception_handler(ChatProxyError)
    async def handle_chat_proxy_error(request: Request, exc: ChatProxyError) -> JSONResponse:
        # IMPORTANT: do not log request bodies, message content, or client keys.
        outcome = _OUTCOMES.get(type(exc), "unhandled_error")
        record_chat_outcome(outcome)

        extra = {
            "correlation_id": get_correlation_id(request),
            "http_method": request.method,
            "request_path": safe_route_label(request=request),
            "status_code": exc.status_code,
            "outcome": outcome,
            "error_type": type(exc).__name__,
        }
        cause = exc.__cause__
        if cause is not None:
            # Internal detail stays in logs; the caller only gets `exc.message`.
            extra["error_type"] = type(cause).__name__
            extra["upstream_status"] = getattr(cause, "status_code", None)

        if exc.status_code >= 500:
            logger.warning("Chat request failed", extra=extra)
        else:
            logger.info("Chat request rejected", extra=extra)

        return error_response(request=request, status_code=exc.status_code, message=exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Framework errors echo input values; never return or log them.
        record_chat_outcome("validation_error")
        logger.info(
            "Request body rejected",
            extra={
                "correlation_id": get_correlation_id(request),
                "http_method": request.method,
                "request_path": safe_route_label(request=request),
                "status_code": 400,
                "outcome": "validation_error",
                "error_type": "request_validation",
            },
        )
        return error_response(
            request=request,
            status_code=400,
            message="Request body is not valid JSON of the expected shape",
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        # Runs outside the middleware stack: the logging middleware has already recorded
        # the stack trace, and CORS headers must be added here.
        response = error_response(
            request=request, status_code=500, message="Internal server error"
        )
        response.headers.update(
            build_cors_headers(
                origin=request.headers.get("origin"),
                allowed_origins=getattr(request.app.state, "cors_allowed_origins", []),
            )
        )
        return response
