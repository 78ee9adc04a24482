from __future__ import annotations


class ChatProxyError(Exception):
    """Base error for chat proxy failures that map to a structured error response.

    `message` is the caller-facing text. It must never include upstream details,
    configuration names or message content.
    """

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        message = message or self.default_message
        super().__init__(message)
        self.message = message


class ValidationError(ChatProxyError):
    """Raised when the caller-supplied conversation is malformed or oversized."""

    status_code = 400
    default_message = "Invalid request"


class RateLimitExceeded(ChatProxyError):
    """Raised when a client exceeds its request budget for the current window."""

    status_code = 429
    default_message = "Too many requests. Please try again later."


class ConfigurationError(ChatProxyError):
    # Generic on purpose: never reveal which setting is missing.
    status_code = 500
    default_message = "Service is not configured."


class UpstreamError(ChatProxyError):
    """Raised when the completion endpoint fails or answers with a non-success status."""

    status_code = 503
    default_message = "The assistant service is temporarily unavailable."


class UnhandledError(ChatProxyError):
    status_code = 500
    default_message = "Internal server error"
