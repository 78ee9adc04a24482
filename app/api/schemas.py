from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class HealthOut(BaseModel):
    """Health check response."""

    status: str = Field(
        description="Service status indicator. `ok` means the API process is up and responding.",
        examples=["ok"],
    )


class ErrorOut(BaseModel):
    """Structured error body returned on every rejection path."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = Field(description="Caller-safe error message.", examples=["Invalid request"])
    correlation_id: str = Field(
        alias="correlationId",
        description="Identifier to quote when reporting a problem; matches server logs.",
    )
