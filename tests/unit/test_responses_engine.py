"""Tests for the Responses API execution engine."""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from agentproxy.adapters.openai.accumulator import EventAccumulator
from agentproxy.auth.session import EngineCredentials, StaticSession
from agentproxy.config.adapter import EngineSettings
from agentproxy.core.errors import AuthUnavailableError, EngineFailureError
from agentproxy.engine.responses import (
    ResponsesEngine,
    ResponsesStreamParser,
    usage_report_from_response,
)
from agentproxy.models.engine import (
    Completed,
    EngineEvent,
    Failed,
    FunctionTool,
    InputText,
    MessageItem,
    NamedToolChoice,
    NativePrompt,
    ReasoningDelta,
    SamplingParameters,
    TextDelta,
    ToolCallArgumentDelta,
    ToolCallCompleted,
    ToolCallStarted,
    UsageReport,
)
from agentproxy.models.types import TerminalStatus


pytestmark = pytest.mark.unit

PROMPT = NativePrompt(
    model="gpt-5",
    input=(MessageItem(role="user", content=(InputText(text="hi"),)),),
)

CREDENTIALS = EngineCredentials(access_token="tok-123", account_id="acct-9")


def sse_body(*payloads: dict[str, Any]) -> bytes:
    frames = [f"event: {p['type']}\ndata: {json.dumps(p)}\n\n" for p in payloads]
    return "".join(frames).encode()


HELLO_STREAM = sse_body(
    {"type": "response.created", "response": {"id": "resp_1"}},
    {"type": "response.output_text.delta", "delta": "hel"},
    {"type": "response.output_text.delta", "delta": "lo"},
    {
        "type": "response.completed",
        "response": {
            "usage": {
                "input_tokens": 10,
                "input_tokens_details": {"cached_tokens": 4},
                "output_tokens": 6,
                "output_tokens_details": {"reasoning_tokens": 2},
                "total_tokens": 16,
            }
        },
    },
)


def make_engine(
    handler: Callable[[httpx.Request], httpx.Response],
    session: StaticSession | None = None,
    **settings: Any,
) -> ResponsesEngine:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ResponsesEngine(
        EngineSettings(base_url="https://engine.test/codex", **settings),
        session or StaticSession(credentials=CREDENTIALS),
        client=client,
    )


async def drain(engine: ResponsesEngine, prompt: NativePrompt = PROMPT) -> list[EngineEvent]:
    async with await engine.submit(prompt) as events:
        return [event async for event in events]


class TestResponsesEngine:
    async def test_streams_text_and_usage(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=HELLO_STREAM,
            )

        events = await drain(make_engine(handler))

        assert events == [
            TextDelta(text="hel"),
            TextDelta(text="lo"),
            UsageReport(
                input_tokens=6,
                cached_input_tokens=4,
                output_tokens=4,
                reasoning_output_tokens=2,
                total_tokens=16,
            ),
            Completed(stop_reason=None),
        ]
        request = requests[0]
        assert str(request.url) == "https://engine.test/codex/responses"
        assert request.headers["authorization"] == "Bearer tok-123"
        assert request.headers["chatgpt-account-id"] == "acct-9"
        assert request.headers["accept"] == "text/event-stream"
        body = json.loads(request.content)
        assert body["model"] == "gpt-5"
        assert body["stream"] is True
        assert body["store"] is False

    async def test_missing_credentials(self) -> None:
        engine = make_engine(
            lambda request: httpx.Response(200), session=StaticSession(authenticated=False)
        )
        with pytest.raises(AuthUnavailableError):
            await engine.submit(PROMPT)

    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_rejected(self, status: int) -> None:
        engine = make_engine(lambda request: httpx.Response(status, text="denied"))
        with pytest.raises(AuthUnavailableError):
            await engine.submit(PROMPT)

    async def test_server_error(self) -> None:
        engine = make_engine(lambda request: httpx.Response(503, text="busy"))

        with pytest.raises(EngineFailureError) as exc_info:
            await engine.submit(PROMPT)

        assert exc_info.value.code == "http_503"
        assert "busy" in (exc_info.value.reason or "")

    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(EngineFailureError):
            await make_engine(handler).submit(PROMPT)

    async def test_owned_client_closed(self) -> None:
        engine = ResponsesEngine(EngineSettings(), StaticSession())
        await engine.aclose()
        assert engine._client.is_closed

    async def test_shared_client_left_open(self) -> None:
        engine = make_engine(lambda request: httpx.Response(200))
        await engine.aclose()
        assert not engine._client.is_closed


class TestBuildPayload:
    def test_full_prompt(self) -> None:
        engine = make_engine(lambda request: httpx.Response(200), instructions="Be terse")
        prompt = PROMPT.model_copy(
            update={
                "tools": (FunctionTool(name="lookup"),),
                "tool_choice": NamedToolChoice(name="lookup"),
                "parallel_tool_calls": True,
                "reasoning_effort": "high",
                "sampling": SamplingParameters(temperature=0.2, max_output_tokens=50),
            }
        )

        payload = engine.build_payload(prompt)

        assert payload["instructions"] == "Be terse"
        assert payload["tool_choice"] == {"type": "function", "name": "lookup"}
        assert payload["parallel_tool_calls"] is True
        assert payload["reasoning"] == {"effort": "high", "summary": "auto"}
        assert payload["temperature"] == 0.2
        assert payload["max_output_tokens"] == 50
        assert "top_p" not in payload
        assert payload["tools"][0]["name"] == "lookup"
        assert payload["input"][0]["content"] == [{"type": "input_text", "text": "hi"}]

    def test_minimal_prompt(self) -> None:
        payload = make_engine(lambda request: httpx.Response(200)).build_payload(PROMPT)

        assert payload["tool_choice"] == "auto"
        assert payload["parallel_tool_calls"] is False
        assert "reasoning" not in payload
        assert "instructions" not in payload

    def test_headers_without_account(self) -> None:
        engine = make_engine(lambda request: httpx.Response(200))
        headers = engine.build_headers(EngineCredentials(access_token="sk-test"))

        assert headers["Authorization"] == "Bearer sk-test"
        assert "chatgpt-account-id" not in headers
        assert headers["originator"] == "codex_cli_rs"


class TestResponsesStreamParser:
    def test_function_call_lifecycle(self) -> None:
        parser = ResponsesStreamParser()
        item = {"type": "function_call", "id": "fc_1", "call_id": "call_1", "name": "ping"}

        events = [
            *parser.feed({"type": "response.output_item.added", "item": item}),
            *parser.feed(
                {
                    "type": "response.function_call_arguments.delta",
                    "item_id": "fc_1",
                    "delta": '{"a":',
                }
            ),
            *parser.feed(
                {
                    "type": "response.output_item.done",
                    "item": {**item, "arguments": '{"a":1}'},
                }
            ),
        ]

        assert events == [
            ToolCallStarted(call_id="call_1", name="ping"),
            ToolCallArgumentDelta(call_id="call_1", delta='{"a":'),
            ToolCallArgumentDelta(call_id="call_1", delta="1}"),
            ToolCallCompleted(call_id="call_1"),
        ]

    def test_function_call_only_on_done(self) -> None:
        parser = ResponsesStreamParser()
        events = parser.feed(
            {
                "type": "response.output_item.done",
                "item": {
                    "type": "function_call",
                    "call_id": "call_2",
                    "name": "ping",
                    "arguments": "{}",
                },
            }
        )

        assert events == [
            ToolCallStarted(call_id="call_2", name="ping"),
            ToolCallArgumentDelta(call_id="call_2", delta="{}"),
            ToolCallCompleted(call_id="call_2"),
        ]

    def test_message_text_not_repeated(self) -> None:
        parser = ResponsesStreamParser()
        parser.feed({"type": "response.output_text.delta", "delta": "hi"})
        done = parser.feed(
            {
                "type": "response.output_item.done",
                "item": {
                    "type": "message",
                    "content": [{"type": "output_text", "text": "hi"}],
                },
            }
        )
        assert done == []

    def test_message_text_without_deltas(self) -> None:
        parser = ResponsesStreamParser()
        done = parser.feed(
            {
                "type": "response.output_item.done",
                "item": {
                    "type": "message",
                    "content": [{"type": "output_text", "text": "whole"}],
                },
            }
        )
        assert done == [TextDelta(text="whole")]

    def test_reasoning_deltas(self) -> None:
        parser = ResponsesStreamParser()

        assert parser.feed(
            {"type": "response.reasoning_summary_text.delta", "delta": "plan"}
        ) == [ReasoningDelta(text="plan", kind="summary")]
        assert parser.feed({"type": "response.reasoning_text.delta", "delta": "raw"}) == [
            ReasoningDelta(text="raw", kind="content")
        ]

    def test_incomplete_response(self) -> None:
        parser = ResponsesStreamParser()
        events = parser.feed(
            {
                "type": "response.incomplete",
                "response": {"incomplete_details": {"reason": "max_output_tokens"}},
            }
        )

        assert events == [Completed(stop_reason="max_output_tokens")]
        assert parser.terminal

    def test_incomplete_mid_function_call(self) -> None:
        parser = ResponsesStreamParser()
        accumulator = EventAccumulator()
        payloads = [
            {"type": "response.output_text.delta", "delta": "Let me check"},
            {
                "type": "response.output_item.added",
                "item": {
                    "type": "function_call",
                    "id": "fc_1",
                    "call_id": "call_1",
                    "name": "ping",
                },
            },
            {
                "type": "response.function_call_arguments.delta",
                "item_id": "fc_1",
                "delta": '{"a":',
            },
            {
                "type": "response.incomplete",
                "response": {"incomplete_details": {"reason": "max_output_tokens"}},
            },
        ]

        for payload in payloads:
            for event in parser.feed(payload):
                accumulator.apply(event)
        accumulator.finish()

        state = accumulator.state
        assert state.status is TerminalStatus.LENGTH
        assert state.status.finish_reason == "length"
        assert state.message_text == "Let me check"
        assert state.finalized_tool_calls() == []

    def test_failed_response(self) -> None:
        parser = ResponsesStreamParser()
        events = parser.feed(
            {
                "type": "response.failed",
                "response": {"error": {"message": "overloaded", "code": "server_busy"}},
            }
        )

        assert events == [Failed(reason="overloaded", code="server_busy")]
        assert parser.terminal

    def test_unknown_events_ignored(self) -> None:
        assert ResponsesStreamParser().feed({"type": "response.in_progress"}) == []


class TestUsageReport:
    def test_missing_details(self) -> None:
        report = usage_report_from_response({"input_tokens": 3, "output_tokens": 2})

        assert report == UsageReport(input_tokens=3, output_tokens=2, total_tokens=5)
