"""Execution engine backed by the Codex Responses API.

Submits a native prompt as a streaming ``/responses`` request and converts the
server-sent events into the adapter's typed ``EngineEvent`` values.
"""

import json
from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx

from agentproxy.auth.session import EngineCredentials, SessionProvider
from agentproxy.config.adapter import EngineSettings
from agentproxy.core.errors import AuthUnavailableError, EngineFailureError
from agentproxy.core.logging import LogCategory, get_logger
from agentproxy.engine.base import EngineStream
from agentproxy.engine.presets import DEFAULT_MODEL_PRESETS
from agentproxy.models.engine import (
    Completed,
    EngineEvent,
    Failed,
    ModelPreset,
    NamedToolChoice,
    NativePrompt,
    ReasoningDelta,
    TextDelta,
    ToolCallArgumentDelta,
    ToolCallCompleted,
    ToolCallStarted,
    UsageReport,
)


logger = get_logger(__name__)


class ResponsesStreamParser:
    """Stateful conversion of Responses API stream events into engine events.

    One parser handles one response. It remembers which output items are
    function calls so argument deltas can be attributed to a call id, and
    whether text was streamed so a finished message item is not repeated.
    """

    def __init__(self) -> None:
        self._call_ids: dict[str, str] = {}
        self._arguments: dict[str, str] = {}
        self._completed_calls: set[str] = set()
        self._text_streamed = False
        self.terminal = False

    def feed(self, payload: dict[str, Any]) -> list[EngineEvent]:
        event_type = payload.get("type", "")
        if event_type == "response.output_text.delta":
            delta = payload.get("delta") or ""
            if not delta:
                return []
            self._text_streamed = True
            return [TextDelta(text=delta)]
        if event_type == "response.reasoning_summary_text.delta":
            delta = payload.get("delta") or ""
            return [ReasoningDelta(text=delta, kind="summary")] if delta else []
        if event_type == "response.reasoning_text.delta":
            delta = payload.get("delta") or ""
            return [ReasoningDelta(text=delta, kind="content")] if delta else []
        if event_type == "response.output_item.added":
            return self._item_added(payload.get("item") or {})
        if event_type == "response.function_call_arguments.delta":
            return self._arguments_delta(payload)
        if event_type == "response.output_item.done":
            return self._item_done(payload.get("item") or {})
        if event_type in ("response.completed", "response.incomplete"):
            return self._completed(payload.get("response") or {})
        if event_type == "response.failed":
            response = payload.get("response") or {}
            return self._failed(response.get("error") or {})
        if event_type == "error":
            return self._failed(payload.get("error") or payload)
        return []

    def _item_added(self, item: dict[str, Any]) -> list[EngineEvent]:
        if item.get("type") != "function_call":
            return []
        call_id = self._register_call(item)
        return [ToolCallStarted(call_id=call_id, name=item.get("name") or "")]

    def _register_call(self, item: dict[str, Any]) -> str:
        call_id = item.get("call_id") or item.get("id") or ""
        item_id = item.get("id")
        if item_id:
            self._call_ids[item_id] = call_id
        self._arguments.setdefault(call_id, "")
        return call_id

    def _arguments_delta(self, payload: dict[str, Any]) -> list[EngineEvent]:
        item_id = payload.get("item_id") or ""
        call_id = self._call_ids.get(item_id, item_id)
        delta = payload.get("delta") or ""
        if not delta:
            return []
        self._arguments[call_id] = self._arguments.get(call_id, "") + delta
        return [ToolCallArgumentDelta(call_id=call_id, delta=delta)]

    def _item_done(self, item: dict[str, Any]) -> list[EngineEvent]:
        item_type = item.get("type")
        if item_type == "function_call":
            return self._function_call_done(item)
        if item_type == "message" and not self._text_streamed:
            text = "".join(
                part.get("text", "")
                for part in item.get("content") or []
                if part.get("type") == "output_text"
            )
            if text:
                self._text_streamed = True
                return [TextDelta(text=text)]
        return []

    def _function_call_done(self, item: dict[str, Any]) -> list[EngineEvent]:
        events: list[EngineEvent] = []
        item_id = item.get("id")
        call_id = self._call_ids.get(item_id or "") or item.get("call_id") or item_id
        if not call_id:
            return []
        if call_id in self._completed_calls:
            return []
        if call_id not in self._arguments:
            call_id = self._register_call(item)
            events.append(ToolCallStarted(call_id=call_id, name=item.get("name") or ""))

        streamed = self._arguments.get(call_id, "")
        final = item.get("arguments")
        if isinstance(final, str) and final != streamed:
            remainder = final[len(streamed) :] if final.startswith(streamed) else ""
            if remainder:
                self._arguments[call_id] = final
                events.append(ToolCallArgumentDelta(call_id=call_id, delta=remainder))
            elif streamed:
                logger.warning(
                    "function_call_arguments_mismatch",
                    call_id=call_id,
                    category=LogCategory.ENGINE,
                )

        self._completed_calls.add(call_id)
        events.append(ToolCallCompleted(call_id=call_id))
        return events

    def _completed(self, response: dict[str, Any]) -> list[EngineEvent]:
        self.terminal = True
        events: list[EngineEvent] = []
        usage = response.get("usage")
        if isinstance(usage, dict):
            events.append(usage_report_from_response(usage))

        stop_reason = None
        incomplete = response.get("incomplete_details")
        if isinstance(incomplete, dict):
            stop_reason = incomplete.get("reason")
        events.append(Completed(stop_reason=stop_reason))
        return events

    def _failed(self, error: dict[str, Any]) -> list[EngineEvent]:
        self.terminal = True
        reason = error.get("message") or "The engine reported a failure"
        code = error.get("code") or error.get("type")
        return [Failed(reason=reason, code=code)]


def usage_report_from_response(usage: dict[str, Any]) -> UsageReport:
    """Split Responses API usage into disjoint counters.

    The API reports cached input inside ``input_tokens`` and reasoning output
    inside ``output_tokens``; the engine contract wants them separate.
    """
    input_tokens = int(usage.get("input_tokens") or 0)
    output_tokens = int(usage.get("output_tokens") or 0)
    cached = int((usage.get("input_tokens_details") or {}).get("cached_tokens") or 0)
    reasoning = int(
        (usage.get("output_tokens_details") or {}).get("reasoning_tokens") or 0
    )
    return UsageReport(
        input_tokens=max(input_tokens - cached, 0),
        cached_input_tokens=cached,
        output_tokens=max(output_tokens - reasoning, 0),
        reasoning_output_tokens=reasoning,
        total_tokens=int(usage.get("total_tokens") or input_tokens + output_tokens),
    )


async def iter_sse_payloads(response: httpx.Response) -> AsyncIterator[dict[str, Any]]:
    """Yield the JSON ``data`` payload of each server-sent event."""
    data_lines: list[str] = []
    async for line in response.aiter_lines():
        if line.startswith("data:"):
            data_lines.append(line[5:].lstrip())
            continue
        if line.strip() or not data_lines:
            continue
        payload = _decode_event_data(data_lines)
        data_lines = []
        if payload is not None:
            yield payload
    if data_lines:
        payload = _decode_event_data(data_lines)
        if payload is not None:
            yield payload


def _decode_event_data(data_lines: list[str]) -> dict[str, Any] | None:
    data = "\n".join(data_lines).strip()
    if not data or data == "[DONE]":
        return None
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        logger.warning("sse_parse_failed", data=data[:200], category=LogCategory.ENGINE)
        return None
    return payload if isinstance(payload, dict) else None


class ResponsesEngine:
    """Engine that forwards prompts to the Codex Responses endpoint."""

    name = "responses"

    def __init__(
        self,
        settings: EngineSettings,
        session: SessionProvider,
        client: httpx.AsyncClient | None = None,
        presets: Sequence[ModelPreset] = DEFAULT_MODEL_PRESETS,
    ) -> None:
        self.settings = settings
        self.session = session
        self._presets = tuple(presets)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout, connect=30.0)
        )

    @property
    def responses_url(self) -> str:
        return f"{self.settings.base_url}/responses"

    def model_presets(self) -> Sequence[ModelPreset]:
        return self._presets

    def build_payload(self, prompt: NativePrompt) -> dict[str, Any]:
        """Build the Responses API request body for a prompt."""
        payload: dict[str, Any] = {
            "model": prompt.model,
            "input": [item.model_dump(mode="json") for item in prompt.input],
            "tools": [tool.model_dump(mode="json") for tool in prompt.tools],
            "parallel_tool_calls": bool(prompt.parallel_tool_calls),
            "store": False,
            "stream": True,
        }
        if self.settings.instructions:
            payload["instructions"] = self.settings.instructions
        if isinstance(prompt.tool_choice, NamedToolChoice):
            payload["tool_choice"] = prompt.tool_choice.model_dump()
        else:
            payload["tool_choice"] = prompt.tool_choice
        if prompt.reasoning_effort is not None:
            payload["reasoning"] = {
                "effort": prompt.reasoning_effort,
                "summary": "auto",
            }
        sampling = prompt.sampling
        if sampling.temperature is not None:
            payload["temperature"] = sampling.temperature
        if sampling.top_p is not None:
            payload["top_p"] = sampling.top_p
        if sampling.max_output_tokens is not None:
            payload["max_output_tokens"] = sampling.max_output_tokens
        return payload

    def build_headers(self, credentials: EngineCredentials) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {credentials.access_token}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "OpenAI-Beta": "responses=experimental",
            "originator": self.settings.originator,
        }
        if credentials.account_id:
            headers["chatgpt-account-id"] = credentials.account_id
        return headers

    async def submit(self, prompt: NativePrompt) -> EngineStream:
        credentials = self.session.load_credentials()
        if credentials is None:
            raise AuthUnavailableError()

        request = self._client.build_request(
            "POST",
            self.responses_url,
            headers=self.build_headers(credentials),
            json=self.build_payload(prompt),
        )
        logger.debug(
            "engine_request_sent",
            url=self.responses_url,
            model=prompt.model,
            category=LogCategory.ENGINE,
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error(
                "engine_connection_failed",
                url=self.responses_url,
                error=str(e),
                category=LogCategory.ENGINE,
            )
            raise EngineFailureError(reason=str(e) or type(e).__name__) from e

        if response.status_code >= 400:
            await self._raise_for_status(response)

        return EngineStream(self._events(response), on_close=response.aclose)

    async def _raise_for_status(self, response: httpx.Response) -> None:
        try:
            body = (await response.aread()).decode("utf-8", errors="replace")
        finally:
            await response.aclose()
        logger.warning(
            "engine_http_error",
            status_code=response.status_code,
            body=body[:500],
            category=LogCategory.ENGINE,
        )
        if response.status_code in (401, 403):
            raise AuthUnavailableError()
        raise EngineFailureError(
            reason=f"HTTP {response.status_code}: {body[:500]}",
            code=f"http_{response.status_code}",
        )

    async def _events(self, response: httpx.Response) -> AsyncIterator[EngineEvent]:
        parser = ResponsesStreamParser()
        try:
            async for payload in iter_sse_payloads(response):
                for event in parser.feed(payload):
                    yield event
                if parser.terminal:
                    break
        except httpx.HTTPError as e:
            logger.error(
                "engine_stream_interrupted",
                error=str(e),
                category=LogCategory.ENGINE,
            )
            raise EngineFailureError(reason=str(e) or type(e).__name__) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = [
    "ResponsesEngine",
    "ResponsesStreamParser",
    "iter_sse_payloads",
    "usage_report_from_response",
]
