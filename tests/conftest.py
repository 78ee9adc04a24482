from __future__ import annotations

import json

import pytest

TEST_ALLOWED_ORIGINS = ["https://app.example.com", "https://*.preview.example.com"]


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    # Never pick up a developer's real endpoint or key during tests.
    for name in ("AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_KEY", "AZURE_OPENAI_DEPLOYMENT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", json.dumps(TEST_ALLOWED_ORIGINS))
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "30")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_MS", "60000")

    # Settings are cached via @lru_cache; clear so each test sees its own environment.
    from app.core.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from app.main import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c
