from __future__ import annotations

from app.core.llm.azure_openai_client import AzureOpenAIClient, AzureOpenAIConfig
from app.core.settings import get_settings


def get_completion_client() -> AzureOpenAIClient | None:
    """
    Dependency provider for AzureOpenAIClient.

    Returns None when not configured so the route can return a generic 500 without
    raising during dependency resolution (and without naming the missing setting).
    """

    settings = get_settings()
    if not settings.completion_configured:
        return None

    config = AzureOpenAIConfig(
        endpoint=str(settings.azure_openai_endpoint),
        api_key=str(settings.azure_openai_key),
        deployment=str(settings.azure_openai_deployment),
        api_version=settings.azure_openai_api_version,
        timeout_seconds=float(settings.azure_openai_timeout_seconds),
    )
    return AzureOpenAIClient(config=config)
