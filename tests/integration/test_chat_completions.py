"""End-to-end tests for POST /v1/chat/completions."""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from agentproxy.api.app import create_app
from agentproxy.config.settings import Settings
from agentproxy.models.engine import (
    Completed,
    Failed,
    TextDelta,
    ToolCallArgumentDelta,
    ToolCallCompleted,
    ToolCallStarted,
)
from tests.fixtures.engine import ScriptedEngine


pytestmark = pytest.mark.integration

CHAT_URL = "/v1/chat/completions"


def chat_body(**kwargs: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": "m1",
        "messages": [{"role": "user", "content": "hi"}],
    }
    body.update(kwargs)
    return body


def sse_payloads(text: str) -> list[Any]:
    payloads: list[Any] = []
    for line in text.splitlines():
        if not line.startswith("data: "):
            continue
        data = line[len("data: ") :]
        payloads.append(data if data == "[DONE]" else json.loads(data))
    return payloads


class TestNonStreaming:
    def test_hello(self, client: TestClient) -> None:
        response = client.post(CHAT_URL, json=chat_body())

        assert response.status_code == 200
        data = response.json()
        assert data["object"] == "chat.completion"
        assert data["id"].startswith("chatcmpl-")
        assert data["choices"][0]["message"] == {
            "role": "assistant",
            "content": "hello",
        }
        assert data["choices"][0]["finish_reason"] == "stop"
        assert data["usage"] == {
            "prompt_tokens": 3,
            "completion_tokens": 1,
            "total_tokens": 4,
        }
        assert response.headers["x-request-id"]

    def test_request_id_echoed(self, client: TestClient) -> None:
        response = client.post(
            CHAT_URL, json=chat_body(), headers={"X-Request-ID": "req-42"}
        )
        assert response.headers["x-request-id"] == "req-42"

    def test_tool_call(self, app_factory: Callable[..., FastAPI]) -> None:
        engine = ScriptedEngine(
            [
                ToolCallStarted(call_id="call_1", name="get_weather"),
                ToolCallArgumentDelta(call_id="call_1", delta='{"city":"Oslo"}'),
                ToolCallCompleted(call_id="call_1"),
                Completed(stop_reason="tool_use"),
            ]
        )
        client = TestClient(app_factory(engine))

        response = client.post(
            CHAT_URL,
            json=chat_body(
                tools=[
                    {
                        "type": "function",
                        "function": {
                            "name": "get_weather",
                            "parameters": {
                                "type": "object",
                                "properties": {"city": {"type": "string"}},
                            },
                        },
                    }
                ]
            ),
        )

        assert response.status_code == 200
        choice = response.json()["choices"][0]
        assert choice["finish_reason"] == "tool_calls"
        assert choice["message"]["tool_calls"] == [
            {
                "id": "call_1",
                "type": "function",
                "function": {"name": "get_weather", "arguments": '{"city":"Oslo"}'},
            }
        ]
        assert engine.submissions[0].tools[0].name == "get_weather"

    def test_length_cutoff_mid_tool_call(
        self, app_factory: Callable[..., FastAPI]
    ) -> None:
        engine = ScriptedEngine(
            [
                TextDelta(text="Checking"),
                ToolCallStarted(call_id="call_1", name="get_weather"),
                ToolCallArgumentDelta(call_id="call_1", delta='{"city":'),
                Completed(stop_reason="max_output_tokens"),
            ]
        )
        client = TestClient(app_factory(engine))

        response = client.post(CHAT_URL, json=chat_body())

        assert response.status_code == 200
        choice = response.json()["choices"][0]
        assert choice["finish_reason"] == "length"
        assert choice["message"] == {"role": "assistant", "content": "Checking"}

    def test_engine_failure(self, app_factory: Callable[..., FastAPI]) -> None:
        engine = ScriptedEngine([Failed(reason="quota exhausted", code="quota")])
        client = TestClient(app_factory(engine))

        response = client.post(CHAT_URL, json=chat_body())

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["type"] == "engine_error"
        assert error["code"] == "quota"
        assert "quota exhausted" not in error["message"]


class TestStreaming:
    def test_hello_stream(self, client: TestClient) -> None:
        response = client.post(CHAT_URL, json=chat_body(stream=True))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"

        payloads = sse_payloads(response.text)
        assert payloads[-1] == "[DONE]"
        chunks = payloads[:-1]
        assert all(chunk["object"] == "chat.completion.chunk" for chunk in chunks)
        assert "".join(
            chunk["choices"][0]["delta"].get("content", "") for chunk in chunks
        ) == "hello"
        assert chunks[-1]["choices"][0]["finish_reason"] == "stop"
        assert chunks[-1]["usage"]["total_tokens"] == 4

    def test_failure_before_content_is_json(
        self, app_factory: Callable[..., FastAPI]
    ) -> None:
        engine = ScriptedEngine([Failed(reason="overloaded")])
        client = TestClient(app_factory(engine))

        response = client.post(CHAT_URL, json=chat_body(stream=True))

        assert response.status_code == 502
        assert response.headers["content-type"].startswith("application/json")
        assert response.json()["error"]["type"] == "engine_error"
        assert "data:" not in response.text

    def test_failure_after_content_is_error_frame(
        self, app_factory: Callable[..., FastAPI]
    ) -> None:
        engine = ScriptedEngine([TextDelta(text="par"), Failed(reason="overloaded")])
        client = TestClient(app_factory(engine))

        response = client.post(CHAT_URL, json=chat_body(stream=True))

        assert response.status_code == 200
        payloads = sse_payloads(response.text)
        assert payloads[0]["choices"][0]["delta"]["content"] == "par"
        assert payloads[1]["error"]["type"] == "engine_error"
        assert payloads[2] == "[DONE]"


class TestRequestErrors:
    def test_not_authenticated(self, app_factory: Callable[..., FastAPI]) -> None:
        engine = ScriptedEngine()
        client = TestClient(app_factory(engine, authenticated=False))

        response = client.post(CHAT_URL, json=chat_body())

        assert response.status_code == 401
        assert response.json()["error"]["type"] == "authentication_error"
        assert engine.submissions == []

    def test_orphan_tool_message(self, client: TestClient) -> None:
        response = client.post(
            CHAT_URL,
            json=chat_body(
                messages=[
                    {"role": "user", "content": "hi"},
                    {"role": "tool", "tool_call_id": "call_x", "content": "42"},
                ]
            ),
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "invalid_request_error"
        assert error["code"] == "structure"

    def test_unknown_tool_choice(self, client: TestClient) -> None:
        response = client.post(
            CHAT_URL,
            json=chat_body(
                tool_choice={"type": "function", "function": {"name": "missing"}}
            ),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "unknown_tool"

    def test_unknown_model(self, client: TestClient) -> None:
        response = client.post(CHAT_URL, json=chat_body(model="not-a-model"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "model_not_found"

    def test_hidden_variant_model(self, client: TestClient) -> None:
        response = client.post(CHAT_URL, json=chat_body(model="gpt-5-high"))
        assert response.status_code == 404

    def test_schema_violation(self, client: TestClient) -> None:
        response = client.post(CHAT_URL, json=chat_body(temperature=5))

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "invalid_request_error"
        assert error["message"].startswith("Invalid request: temperature")

    def test_malformed_json(self, client: TestClient) -> None:
        response = client.post(
            CHAT_URL,
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400

    def test_method_not_allowed(self, client: TestClient) -> None:
        response = client.get(CHAT_URL)

        assert response.status_code == 405
        assert response.json()["error"]["type"] == "invalid_request_error"


@pytest.mark.usefixtures("isolated_environment")
class TestBypassMode:
    async def test_echo_reply(self) -> None:
        settings = Settings.from_config(server={"bypass_mode": True})
        app = create_app(settings=settings)
        transport = httpx.ASGITransport(app=app)

        async with httpx.AsyncClient(
            transport=transport, base_url="http://test"
        ) as client:
            response = await client.post(
                CHAT_URL,
                json=chat_body(
                    model="gpt-5", messages=[{"role": "user", "content": "ping"}]
                ),
            )

        assert response.status_code == 200
        assert response.json()["choices"][0]["message"]["content"] == (
            "Hi there! You said: ping"
        )
