from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.chat.prompt import ChatAction


class ChatRequest(BaseModel):
    """
    Inbound chat payload.

    `messages` is deliberately untyped here: its shape is checked by `RequestValidator`
    so callers get precise, consistent 400 reasons instead of framework errors.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    messages: Any = Field(
        default=None,
        description="Conversation turns in chronological order: [{role, content}, ...].",
        examples=[[{"role": "user", "content": "How long should elastics be worn per day?"}]],
    )
    message: str | None = Field(
        default=None,
        description="Legacy single-turn shape. Used only when `messages` is omitted.",
    )
    action: ChatAction = Field(
        default="chat",
        description="`generateNote` switches to the clinical-note prompt.",
    )
    max_tokens: float | None = Field(
        default=None,
        alias="maxTokens",
        description="Requested completion length; clamped to [1, configured ceiling].",
    )
    temperature: float | None = Field(
        default=None,
        description="Sampling temperature; clamped to [0.1, 1.0].",
    )


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    response: str = Field(description="Assistant reply text.")
    timestamp: datetime = Field(description="Response timestamp (UTC).")
    correlation_id: str = Field(alias="correlationId")
