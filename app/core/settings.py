from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CHAT_SYSTEM_PROMPT = (
    "You are a clinical AI assistant for orthodontic practice. "
    "Provide helpful, professional responses about orthodontic treatment."
)
DEFAULT_NOTE_SYSTEM_PROMPT = (
    "You are a clinical AI assistant for orthodontic practice. "
    "Generate professional clinical notes for EHR documentation."
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "clinical-chat-proxy"
    app_env: str = Field(
        default="production",
        validation_alias=AliasChoices("APP_ENV", "app_env"),
        description="Runtime environment: development|production.",
    )

    # Completion endpoint (Azure OpenAI)
    # IMPORTANT (healthcare safety): keep configuration explicit and avoid implicit logging.
    azure_openai_endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AZURE_OPENAI_ENDPOINT", "azure_openai_endpoint"),
        description="Azure OpenAI resource URL (e.g. https://my-res.openai.azure.com/).",
    )
    azure_openai_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AZURE_OPENAI_KEY", "azure_openai_key"),
        description="Azure OpenAI API key (required for /api/chat).",
    )
    azure_openai_deployment: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AZURE_OPENAI_DEPLOYMENT", "azure_openai_deployment"),
        description="Deployment (model) identifier to call.",
    )
    azure_openai_api_version: str = Field(
        default="2024-02-15-preview",
        validation_alias=AliasChoices("AZURE_OPENAI_API_VERSION", "azure_openai_api_version"),
        description="Value of the api-version query parameter.",
    )
    azure_openai_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        validation_alias=AliasChoices(
            "AZURE_OPENAI_TIMEOUT_SECONDS", "azure_openai_timeout_seconds"
        ),
        description="Timeout for completion requests (seconds).",
    )

    # Rate limiting (in-memory, per process)
    rate_limit_window_ms: int = Field(
        default=60_000,
        ge=1,
        validation_alias=AliasChoices("RATE_LIMIT_WINDOW_MS", "rate_limit_window_ms"),
        description="Fixed rate-limit window length (milliseconds).",
    )
    rate_limit_max_requests: int = Field(
        default=30,
        ge=1,
        validation_alias=AliasChoices("RATE_LIMIT_MAX_REQUESTS", "rate_limit_max_requests"),
        description="Requests accepted per client within one window.",
    )

    # Request limits
    chat_max_messages: int = Field(
        default=10,
        ge=1,
        validation_alias=AliasChoices("CHAT_MAX_MESSAGES", "chat_max_messages"),
        description="Maximum number of messages per request.",
    )
    chat_max_message_length: int = Field(
        default=4000,
        ge=1,
        validation_alias=AliasChoices("CHAT_MAX_MESSAGE_LENGTH", "chat_max_message_length"),
        description="Maximum length of a single message content (characters).",
    )
    chat_max_tokens: int = Field(
        default=1000,
        ge=1,
        validation_alias=AliasChoices("CHAT_MAX_TOKENS", "chat_max_tokens"),
        description="Ceiling applied to the caller's maxTokens.",
    )

    # Prompts. Never put real patient data in defaults.
    chat_system_prompt: str = Field(
        default=DEFAULT_CHAT_SYSTEM_PROMPT,
        validation_alias=AliasChoices("CHAT_SYSTEM_PROMPT", "chat_system_prompt"),
    )
    note_system_prompt: str = Field(
        default=DEFAULT_NOTE_SYSTEM_PROMPT,
        validation_alias=AliasChoices("NOTE_SYSTEM_PROMPT", "note_system_prompt"),
    )
    chat_patient_context: str | None = Field(
        default=None,
        validation_alias=AliasChoices("CHAT_PATIENT_CONTEXT", "chat_patient_context"),
        description="Optional context block appended to the system prompt.",
    )

    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        validation_alias=AliasChoices("CORS_ALLOWED_ORIGINS", "cors_allowed_origins"),
        description=(
            "Origins allowed to call the API. Entries may contain one `*` wildcard "
            "(e.g. https://*.example.net). The first entry is the fallback echo value."
        ),
    )

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.rate_limit_window_ms / 1000.0

    @property
    def completion_configured(self) -> bool:
        return bool(
            self.azure_openai_endpoint and self.azure_openai_key and self.azure_openai_deployment
        )

    @property
    def is_development(self) -> bool:
        return str(self.app_env).strip().lower() == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
