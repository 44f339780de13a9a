"""
Tests for the chat endpoint.

Tests cover:
- Authentication
- Agent type validation before metering
- AI message quota (402)
- SSE framing of the agent stream
"""

import json
from unittest.mock import patch

import pytest

from compilestrength.agents.routine_agent import RoutineAgent


class ScriptedExecutor:
    """Replays a fixed list of LangGraph events."""

    def __init__(self, events):
        self.events = events

    async def astream_events(self, inputs, config=None, version=None):
        for event in self.events:
            yield event


@pytest.fixture
def agent():
    output = json.dumps({"explanation": {"topic": "split", "reasoning": "recovery"}})
    return RoutineAgent(
        max_tool_steps=5,
        agent_executor=ScriptedExecutor([
            {"event": "on_tool_start", "name": "explainChoice", "run_id": "r1", "data": {}},
            {"event": "on_tool_end", "name": "explainChoice", "run_id": "r1",
             "data": {"output": output}},
        ]),
    )


@pytest.fixture
def scripted_agent(agent):
    with patch("compilestrength.api.deps.get_routine_agent", return_value=agent):
        yield agent


def _body(**overrides):
    body = {"messages": [{"role": "user", "content": "I want bigger arms"}]}
    body.update(overrides)
    return body


def _events(response):
    return [
        line[len("data: "):]
        for line in response.text.split("\n")
        if line.startswith("data: ")
    ]


class TestChatAuth:
    """Authentication on /chat."""

    def test_requires_token(self, api_client):
        response = api_client.post("/api/v1/chat", json=_body())

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_rejects_bad_token(self, api_client):
        response = api_client.post(
            "/api/v1/chat",
            json=_body(),
            headers={"Authorization": "Bearer nope"},
        )
        assert response.status_code == 401


class TestChatValidation:
    """Request validation on /chat."""

    def test_unknown_agent_type_does_not_meter(
        self, api_client, auth_headers, subscription, usage_service
    ):
        response = api_client.post(
            "/api/v1/chat",
            json=_body(agentType="powerlifting"),
            headers=auth_headers(),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Agent not available yet"
        assert usage_service.check_user_quota("ai_message", subscription.user_id).used == 0

    def test_empty_messages(self, api_client, auth_headers):
        response = api_client.post("/api/v1/chat", json={"messages": []}, headers=auth_headers())

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestChatQuota:
    """AI message metering on /chat."""

    def test_no_subscription(self, api_client, auth_headers, scripted_agent):
        response = api_client.post(
            "/api/v1/chat",
            json=_body(),
            headers=auth_headers(user_id="free-user"),
        )

        assert response.status_code == 402
        error = response.json()["error"]
        assert error["code"] == "QUOTA_EXCEEDED"
        assert error["details"]["kind"] == "ai_message"

    def test_limit_reached(self, api_client, auth_headers, subscription, scripted_agent):
        for _ in range(3):
            assert api_client.post(
                "/api/v1/chat", json=_body(), headers=auth_headers()
            ).status_code == 200

        response = api_client.post("/api/v1/chat", json=_body(), headers=auth_headers())

        assert response.status_code == 402
        details = response.json()["error"]["details"]
        assert details["used"] == 3
        assert details["limit"] == 3
        assert details["resetsAt"].startswith("2025-01-13T09:30:00")


class TestChatStream:
    """SSE output of /chat."""

    def test_streams_events_then_done_sentinel(
        self, api_client, auth_headers, subscription, scripted_agent, usage_service
    ):
        response = api_client.post("/api/v1/chat", json=_body(), headers=auth_headers())

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"

        events = _events(response)
        assert events[-1] == "[DONE]"
        parsed = [json.loads(e) for e in events[:-1]]
        assert [e["type"] for e in parsed] == ["tool_start", "tool_result", "done"]
        assert parsed[1]["result"]["explanation"]["topic"] == "split"
        assert parsed[2]["toolsUsed"] == ["explainChoice"]

        assert usage_service.check_user_quota("ai_message", subscription.user_id).used == 1

    def test_unmetered_when_disabled(self, api_client, auth_headers, scripted_agent):
        with patch("compilestrength.api.routes.chat.get_settings") as mock_settings:
            mock_settings.return_value.meter_ai_messages = False
            response = api_client.post(
                "/api/v1/chat",
                json=_body(),
                headers=auth_headers(user_id="free-user"),
            )

        assert response.status_code == 200
        assert _events(response)[-1] == "[DONE]"
