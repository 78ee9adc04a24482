from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol

from app.chat.prompt import ChatAction, build_system_message, default_user_message
from app.chat.validation import ChatMessage, RequestValidator
from app.core.llm.azure_openai_client import CompletionError
from app.domain.exceptions import ConfigurationError, UpstreamError

MIN_TEMPERATURE = 0.1
MAX_TEMPERATURE = 1.0
DEFAULT_TEMPERATURE = 0.7
DEFAULT_CHAT_MAX_TOKENS = 500
DEFAULT_NOTE_MAX_TOKENS = 800


class CompletionClient(Protocol):
    async def complete_chat(
        self, *, messages: list[dict[str, str]], max_tokens: int, temperature: float
    ) -> str: ...


@dataclass(frozen=True)
class ChatPrompts:
    chat_prompt: str
    note_prompt: str
    patient_context: str | None = None


def clamp_max_tokens(value: float | None, *, ceiling: int, default: int) -> int:
    if value is None or not math.isfinite(value):
        value = default
    return max(1, min(ceiling, int(value)))


def clamp_temperature(value: float | None, *, default: float = DEFAULT_TEMPERATURE) -> float:
    if value is None or not math.isfinite(value):
        value = default
    return float(max(MIN_TEMPERATURE, min(MAX_TEMPERATURE, value)))


class ChatService:
    """
    Turn a validated request into a completion call.

    Callers are responsible for rate limiting; this class only validates, prepends the
    system message, clamps numeric parameters and maps collaborator failures.

    A missing `completion_client` means the endpoint is not configured. That is only
    reported once the request itself has passed validation.
    """

    def __init__(
        self,
        *,
        validator: RequestValidator,
        completion_client: CompletionClient | None,
        prompts: ChatPrompts,
        max_tokens_ceiling: int,
    ):
        self._validator = validator
        self._client = completion_client
        self._prompts = prompts
        self._max_tokens_ceiling = max_tokens_ceiling

    def build_messages(
        self,
        *,
        raw_messages: object,
        legacy_message: str | None = None,
        action: ChatAction = "chat",
    ) -> list[ChatMessage]:
        if raw_messages is None:
            # Older front-ends post a single `message` string (or nothing for note generation).
            if legacy_message is not None:
                raw_messages = [{"role": "user", "content": legacy_message}]
            elif action == "generateNote":
                raw_messages = [{"role": "user", "content": default_user_message(action=action)}]

        conversation = self._validator.validate(raw_messages)
        system = build_system_message(
            action=action,
            chat_prompt=self._prompts.chat_prompt,
            note_prompt=self._prompts.note_prompt,
            patient_context=self._prompts.patient_context,
        )
        return [system, *conversation]

    async def complete(
        self,
        *,
        messages: list[ChatMessage],
        max_tokens: float | None = None,
        temperature: float | None = None,
        action: ChatAction = "chat",
    ) -> str:
        if self._client is None:
            raise ConfigurationError()

        default_tokens = (
            DEFAULT_NOTE_MAX_TOKENS if action == "generateNote" else DEFAULT_CHAT_MAX_TOKENS
        )
        try:
            return await self._client.complete_chat(
                messages=[m.as_payload() for m in messages],
                max_tokens=clamp_max_tokens(
                    max_tokens,
                    ceiling=self._max_tokens_ceiling,
                    default=min(default_tokens, self._max_tokens_ceiling),
                ),
                temperature=clamp_temperature(temperature),
            )
        except CompletionError as exc:
            raise UpstreamError() from exc
