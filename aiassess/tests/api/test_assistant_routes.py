import json
from unittest.mock import patch

import httpx
import pytest

from aiassess.api.deps import get_gateway_client
from aiassess.assistant.gateway import GatewayClient
from aiassess.main import app

SSE_BODY = b'data: {"choices":[{"delta":{"content":"Hello"}}]}\n\ndata: [DONE]\n\n'

CHAT = {
    "messages": [{"role": "user", "content": "Where should we start?"}],
    "context": {"overallScore": 41.5, "criticalGaps": 2, "frameworks": ["NIST AI RMF"]},
}


@pytest.fixture
def upstream():
    state = {"status": 200, "requests": []}

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(json.loads(request.content))
        if state["status"] == 200:
            return httpx.Response(200, content=SSE_BODY, headers={"content-type": "text/event-stream"})
        return httpx.Response(state["status"], json={"error": "upstream"})

    gateway = GatewayClient(
        model_name="test-model",
        base_url="http://gateway.test/v1",
        api_key="test-key",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    app.dependency_overrides[get_gateway_client] = lambda: gateway
    yield state
    app.dependency_overrides.pop(get_gateway_client, None)


def test_stream_is_relayed_verbatim(client, user_headers, upstream):
    response = client.post("/api/v1/assistant/chat", json=CHAT, headers=user_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.content == SSE_BODY

    sent = upstream["requests"][0]
    assert sent["messages"][0]["role"] == "system"
    assert "- Overall Security Score: 41.5%" in sent["messages"][0]["content"]
    assert "- Critical Gaps: 2" in sent["messages"][0]["content"]
    assert sent["messages"][1:] == CHAT["messages"]


def test_rate_limit_is_passed_through(client, user_headers, upstream):
    upstream["status"] = 429

    response = client.post("/api/v1/assistant/chat", json=CHAT, headers=user_headers)

    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded. Please try again in a moment."}
    assert len(upstream["requests"]) == 1


def test_payment_required_is_passed_through(client, user_headers, upstream):
    upstream["status"] = 402

    response = client.post("/api/v1/assistant/chat", json=CHAT, headers=user_headers)

    assert response.status_code == 402
    assert response.json() == {"error": "AI credits exhausted. Please add credits to continue."}


def test_other_upstream_errors_become_500(client, user_headers, upstream):
    upstream["status"] = 503

    response = client.post("/api/v1/assistant/chat", json=CHAT, headers=user_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "AI service temporarily unavailable"}


def test_missing_api_key_returns_500(client, user_headers):
    app.dependency_overrides[get_gateway_client] = lambda: GatewayClient(api_key="")
    try:
        response = client.post("/api/v1/assistant/chat", json=CHAT, headers=user_headers)
    finally:
        app.dependency_overrides.pop(get_gateway_client, None)

    assert response.status_code == 500
    assert response.json() == {"error": "AI_GATEWAY_API_KEY is not configured"}


def test_connection_failure_returns_500_with_message(client, user_headers):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    gateway = GatewayClient(
        api_key="test-key",
        base_url="http://gateway.test/v1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    app.dependency_overrides[get_gateway_client] = lambda: gateway
    try:
        response = client.post("/api/v1/assistant/chat", json=CHAT, headers=user_headers)
    finally:
        app.dependency_overrides.pop(get_gateway_client, None)

    assert response.status_code == 500
    assert response.json()["error"]


def test_chat_requires_authentication(client):
    assert client.post("/api/v1/assistant/chat", json=CHAT).status_code == 401


def test_unconfigured_gateway_from_settings_returns_error_json(client, user_headers):
    get_gateway_client.cache_clear()
    try:
        with patch("aiassess.assistant.gateway.settings.AI_GATEWAY_API_KEY", ""):
            anonymous = client.post("/api/v1/assistant/chat", json=CHAT)
            response = client.post("/api/v1/assistant/chat", json=CHAT, headers=user_headers)
    finally:
        get_gateway_client.cache_clear()

    assert anonymous.status_code == 401
    assert response.status_code == 500
    assert response.json() == {"error": "AI_GATEWAY_API_KEY is not configured"}


def test_invalid_token_is_rejected_before_the_gateway(client, upstream):
    response = client.post("/api/v1/assistant/chat", json=CHAT, headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 403
    assert response.json() == {"detail": "Could not validate credentials"}
    assert upstream["requests"] == []
