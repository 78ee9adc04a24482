from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx


class CompletionError(Exception):
    """Base error for completion client failures (safe to map to 503)."""


class CompletionUpstreamError(CompletionError):
    """Raised when the completion API fails or returns an unexpected response.

    `status_code` is the upstream HTTP status when one was received. It is meant
    for logs only; callers never see it.
    """

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class AzureOpenAIConfig:
    endpoint: str
    api_key: str
    deployment: str
    api_version: str
    timeout_seconds: float


class AzureOpenAIClient:
    """
    Minimal Azure OpenAI chat-completions client.

    Design notes:
    - No logging in this module (messages/outputs may contain PHI).
    - Stateless requests; the caller owns the conversation.
    - `transport` exists so tests can plug in `httpx.MockTransport`.
    """

    def __init__(
        self,
        *,
        config: AzureOpenAIConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config
        self._transport = transport

    @property
    def completions_url(self) -> str:
        base = self._config.endpoint.rstrip("/")
        return f"{base}/openai/deployments/{self._config.deployment}/chat/completions"

    async def complete_chat(
        self,
        *,
        messages: list[dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> str:
        headers = {
            "api-key": self._config.api_key,
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds, transport=self._transport
            ) as client:
                resp = await client.post(
                    self.completions_url,
                    params={"api-version": self._config.api_version},
                    headers=headers,
                    json=payload,
                )
        except httpx.TimeoutException as exc:
            raise CompletionUpstreamError("Completion request timed out") from exc
        except httpx.HTTPError as exc:
            raise CompletionUpstreamError("Completion request failed") from exc

        if resp.status_code != 200:
            # Avoid leaking upstream details to callers; map to a generic 503 at the edge.
            raise CompletionUpstreamError(
                "Completion service returned an error", status_code=resp.status_code
            )

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except Exception as exc:  # noqa: BLE001
            raise CompletionUpstreamError("Completion response was malformed") from exc

        if not isinstance(content, str):
            raise CompletionUpstreamError("Completion response content must be text")

        return content
