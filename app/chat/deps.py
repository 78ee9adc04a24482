from __future__ import annotations

from fastapi import Request

from app.chat.rate_limit import FixedWindowRateLimiter, RateLimiter
from app.chat.service import ChatPrompts
from app.chat.validation import RequestValidator
from app.core.settings import Settings, get_settings


def build_rate_limiter(settings: Settings) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        window_seconds=settings.rate_limit_window_seconds,
        max_requests=settings.rate_limit_max_requests,
    )


def get_rate_limiter(request: Request) -> RateLimiter:
    """Return the application's limiter; one instance is shared by every request."""

    return request.app.state.rate_limiter


def get_request_validator() -> RequestValidator:
    settings = get_settings()
    return RequestValidator(
        max_messages=settings.chat_max_messages,
        max_message_length=settings.chat_max_message_length,
    )


def get_chat_prompts() -> ChatPrompts:
    settings = get_settings()
    return ChatPrompts(
        chat_prompt=settings.chat_system_prompt,
        note_prompt=settings.note_system_prompt,
        patient_context=settings.chat_patient_context,
    )
