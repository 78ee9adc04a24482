"""Integration tests: POST /api/chat through the full middleware stack."""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from app.chat.deps import get_rate_limiter
from app.chat.rate_limit import FixedWindowRateLimiter
from app.core.llm.deps import get_completion_client
from app.main import create_app
from tests.chat._helpers import (
    BrokenCompletionClient,
    FailingCompletionClient,
    FakeCompletionClient,
    user_turn,
)


@pytest.fixture
def fake_llm() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def chat_client(fake_llm: FakeCompletionClient) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_completion_client] = lambda: fake_llm
    with TestClient(app) as c:
        yield c


def _client_with(llm) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_completion_client] = lambda: llm
    return TestClient(app, raise_server_exceptions=False)


def test_chat_success_returns_reply_and_correlation_id(
    chat_client: TestClient, fake_llm: FakeCompletionClient
) -> None:
    res = chat_client.post(
        "/api/chat",
        json={
            "messages": [user_turn("My SSN is 123-45-6789, when is my next visit?")],
            "maxTokens": 5000,
            "temperature": 0.05,
        },
    )

    assert res.status_code == 200, res.text
    payload = res.json()
    assert payload["success"] is True
    assert payload["response"] == "Stub assistant reply."
    assert payload["timestamp"]
    assert payload["correlationId"] == res.headers["x-correlation-id"]

    call = fake_llm.calls[0]
    assert call["max_tokens"] == 1000
    assert call["temperature"] == pytest.approx(0.1)
    assert call["messages"][0]["role"] == "system"
    assert call["messages"][1] == {
        "role": "user",
        "content": "My SSN is [REDACTED-SSN], when is my next visit?",
    }


def test_chat_propagates_caller_correlation_id(chat_client: TestClient) -> None:
    res = chat_client.post(
        "/api/chat",
        json={"messages": [user_turn("hi")]},
        headers={"X-Correlation-ID": "trace-42"},
    )

    assert res.status_code == 200
    assert res.json()["correlationId"] == "trace-42"


def test_chat_legacy_message_shape_is_accepted(
    chat_client: TestClient, fake_llm: FakeCompletionClient
) -> None:
    res = chat_client.post("/api/chat", json={"message": "How do I clean my braces?"})

    assert res.status_code == 200, res.text
    assert fake_llm.calls[0]["messages"][1]["content"] == "How do I clean my braces?"
    assert fake_llm.calls[0]["max_tokens"] == 500


def test_generate_note_action(chat_client: TestClient, fake_llm: FakeCompletionClient) -> None:
    res = chat_client.post("/api/chat", json={"action": "generateNote"})

    assert res.status_code == 200, res.text
    assert fake_llm.calls[0]["max_tokens"] == 800


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"messages": []},
        {"messages": [user_turn(f"turn {i}") for i in range(11)]},
        {"messages": [{"role": "moderator", "content": "hi"}]},
        {"messages": [user_turn("a" * 4001)]},
        {"messages": "hello"},
    ],
)
def test_chat_invalid_conversation_returns_400(
    chat_client: TestClient, fake_llm: FakeCompletionClient, body: dict
) -> None:
    res = chat_client.post("/api/chat", json=body)

    assert res.status_code == 400
    payload = res.json()
    assert set(payload) == {"error", "correlationId"}
    assert payload["correlationId"] == res.headers["x-correlation-id"]
    assert fake_llm.calls == []


def test_chat_malformed_json_returns_400(chat_client: TestClient) -> None:
    res = chat_client.post(
        "/api/chat",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert res.status_code == 400
    assert set(res.json()) == {"error", "correlationId"}


def test_chat_non_numeric_temperature_returns_400(chat_client: TestClient) -> None:
    res = chat_client.post(
        "/api/chat", json={"messages": [user_turn("hi")], "temperature": "warm"}
    )

    assert res.status_code == 400
    # Input values are never echoed back.
    assert "warm" not in res.text


def test_chat_rate_limit_returns_429_after_budget(chat_client: TestClient) -> None:
    headers = {"X-Forwarded-For": "198.51.100.9"}
    body = {"messages": [user_turn("hi")]}

    statuses = [
        chat_client.post("/api/chat", json=body, headers=headers).status_code for _ in range(31)
    ]

    assert statuses[:30] == [200] * 30
    assert statuses[30] == 429

    limited = chat_client.post("/api/chat", json=body, headers=headers)
    assert limited.status_code == 429
    assert set(limited.json()) == {"error", "correlationId"}

    other = chat_client.post("/api/chat", json=body, headers={"X-Forwarded-For": "198.51.100.10"})
    assert other.status_code == 200


def test_rate_limit_is_checked_before_validation(fake_llm: FakeCompletionClient) -> None:
    app = create_app()
    limiter = FixedWindowRateLimiter(window_seconds=60.0, max_requests=1)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    app.dependency_overrides[get_completion_client] = lambda: fake_llm

    with TestClient(app) as client:
        assert client.post("/api/chat", json={"messages": []}).status_code == 400
        assert client.post("/api/chat", json={"messages": []}).status_code == 429


def test_chat_not_configured_returns_generic_500() -> None:
    app = create_app()
    with TestClient(app) as client:
        res = client.post("/api/chat", json={"messages": [user_turn("hi")]})

    assert res.status_code == 500
    assert res.json()["error"] == "Service is not configured."
    assert "AZURE" not in res.text


def test_chat_upstream_failure_returns_503_and_logs_detail(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="app.errors")

    with _client_with(FailingCompletionClient()) as client:
        res = client.post("/api/chat", json={"messages": [user_turn("hi")]})

    assert res.status_code == 503
    payload = res.json()
    assert payload["error"] == "The assistant service is temporarily unavailable."
    assert "upstream failed" not in res.text

    records = [r for r in caplog.records if r.name == "app.errors"]
    assert len(records) == 1
    assert records[0].__dict__["correlation_id"] == payload["correlationId"]
    assert records[0].__dict__["upstream_status"] == 500
    assert records[0].__dict__["outcome"] == "upstream_error"


def test_chat_unexpected_failure_returns_generic_500() -> None:
    with _client_with(BrokenCompletionClient()) as client:
        res = client.post(
            "/api/chat",
            json={"messages": [user_turn("hi")]},
            headers={"Origin": "https://app.example.com"},
        )

    assert res.status_code == 500
    assert res.json()["error"] == "Internal server error"
    assert "unexpected bug" not in res.text
    assert res.headers["access-control-allow-origin"] == "https://app.example.com"


def test_chat_preflight_skips_rate_limit(chat_client: TestClient) -> None:
    headers = {
        "Origin": "https://pr-7.preview.example.com",
        "Access-Control-Request-Method": "POST",
        "X-Forwarded-For": "198.51.100.77",
    }
    for _ in range(40):
        res = chat_client.options("/api/chat", headers=headers)
        assert res.status_code == 200

    assert res.headers["access-control-allow-origin"] == "https://pr-7.preview.example.com"
    assert res.headers["x-correlation-id"]

    ok = chat_client.post(
        "/api/chat",
        json={"messages": [user_turn("hi")]},
        headers={"X-Forwarded-For": "198.51.100.77"},
    )
    assert ok.status_code == 200


def test_error_responses_carry_cors_headers(chat_client: TestClient) -> None:
    res = chat_client.post(
        "/api/chat", json={"messages": []}, headers={"Origin": "https://evil.example.org"}
    )

    assert res.status_code == 400
    assert res.headers["access-control-allow-origin"] == "https://app.example.com"


def test_chat_outcomes_are_exported_as_metrics(chat_client: TestClient) -> None:
    chat_client.post("/api/chat", json={"messages": [user_turn("hi")]})

    res = chat_client.get("/metrics")

    assert res.status_code == 200
    assert 'chat_requests_total{outcome="success"}' in res.text
