from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request

from app.api.schemas import ErrorOut
from app.chat.deps import get_chat_prompts, get_rate_limiter, get_request_validator
from app.chat.rate_limit import RateLimiter, client_key_from_headers
from app.chat.schemas import ChatRequest, ChatResponse
from app.chat.service import ChatPrompts, ChatService
from app.chat.validation import RequestValidator
from app.core.llm.deps import get_completion_client
from app.core.metrics import record_chat_outcome
from app.core.middleware.http_logging import get_correlation_id
from app.core.settings import get_settings
from app.domain.exceptions import ChatProxyError, RateLimitExceeded, UnhandledError

router = APIRouter(prefix="/api", tags=["chat"])
logger = logging.getLogger("app.chat")


def enforce_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    """
    Count the request against the caller's window before the body is validated.

    Rejected conversations therefore consume budget too.
    """

    # IMPORTANT: the client key may be an IP address; never log it.
    if limiter.check_and_record(client_key_from_headers(request.headers)):
        raise RateLimitExceeded()


@router.post(
    "/chat",
    response_model=ChatResponse,
    response_model_by_alias=True,
    dependencies=[Depends(enforce_rate_limit)],
    summary="Send a conversation to the clinical assistant",
    responses={
        400: {"model": ErrorOut, "description": "Invalid conversation or body."},
        429: {"model": ErrorOut, "description": "Too many requests from this client."},
        500: {"model": ErrorOut, "description": "Service misconfigured or unexpected failure."},
        503: {"model": ErrorOut, "description": "Completion service unavailable."},
    },
)
async def chat(
    payload: ChatRequest,
    request: Request,
    validator: RequestValidator = Depends(get_request_validator),
    prompts: ChatPrompts = Depends(get_chat_prompts),
    completion_client=Depends(get_completion_client),
) -> ChatResponse:
    """
    Validate, redact and forward a conversation to the completion endpoint.

    IMPORTANT (safety):
    - Identifier-shaped text is redacted before forwarding. This is a best-effort
      heuristic, not a PHI filter.
    - We do not store or log messages or completions.
    """

    correlation_id = get_correlation_id(request)
    svc = ChatService(
        validator=validator,
        completion_client=completion_client,
        prompts=prompts,
        max_tokens_ceiling=get_settings().chat_max_tokens,
    )

    try:
        messages = svc.build_messages(
            raw_messages=payload.messages,
            legacy_message=payload.message,
            action=payload.action,
        )
        reply = await svc.complete(
            messages=messages,
            max_tokens=payload.max_tokens,
            temperature=payload.temperature,
            action=payload.action,
        )
    except ChatProxyError:
        raise
    except Exception as exc:  # noqa: BLE001 - mapped to a generic structured 500
        logger.exception(
            "Chat request failed unexpectedly",
            extra={"correlation_id": correlation_id, "error_type": type(exc).__name__},
        )
        raise UnhandledError() from exc

    record_chat_outcome("success")
    logger.info(
        "Chat completion returned",
        extra={
            "correlation_id": correlation_id,
            "outcome": "success",
            "message_count": len(messages),
            "action": payload.action,
        },
    )
    return ChatResponse(
        response=reply,
        timestamp=datetime.now(UTC),
        correlation_id=correlation_id,
    )
