"""Per-request accumulation of engine events.

``EventAccumulator.apply`` consumes one ``EngineEvent`` at a time, mutates the
request's ``TranslationState`` and returns the ``TranslationUpdate`` values the
chunk encoder renders. The accumulator enforces the engine's ordering contract
and raises ``EngineProtocolError`` when it is broken.
"""

import json
from dataclasses import dataclass, field
from typing import assert_never

from agentproxy.core.errors import EngineFailureError, EngineProtocolError
from agentproxy.core.logging import LogCategory, get_logger
from agentproxy.models.engine import (
    Completed,
    EngineEvent,
    Failed,
    ReasoningDelta,
    TextDelta,
    ToolCallArgumentDelta,
    ToolCallCompleted,
    ToolCallStarted,
    UsageReport,
)
from agentproxy.models.types import OpenAIFinishReason, ReasoningKind, TerminalStatus


logger = get_logger(__name__)


# Stop reasons are matched case-insensitively. ``None`` means a natural stop.
_NATURAL_STOP_REASONS = frozenset(
    {"stop", "end_turn", "completed", "complete", "stop_sequence"}
)
_LENGTH_STOP_REASONS = frozenset(
    {"length", "max_tokens", "max_output_tokens", "token_limit"}
)
_TOOL_STOP_REASONS = frozenset({"tool_calls", "tool_use", "function_call"})


# Translation updates


@dataclass(frozen=True)
class TextAppended:
    text: str


@dataclass(frozen=True)
class ReasoningAppended:
    text: str
    kind: ReasoningKind


@dataclass(frozen=True)
class ToolCallOpened:
    index: int
    call_id: str
    name: str


@dataclass(frozen=True)
class ToolCallArgumentsAppended:
    index: int
    call_id: str
    delta: str


@dataclass(frozen=True)
class ToolCallFinalized:
    index: int
    call_id: str
    name: str
    arguments: str


@dataclass(frozen=True)
class UsageUpdated:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class TerminalStatusReached:
    status: TerminalStatus
    finish_reason: OpenAIFinishReason


TranslationUpdate = (
    TextAppended
    | ReasoningAppended
    | ToolCallOpened
    | ToolCallArgumentsAppended
    | ToolCallFinalized
    | UsageUpdated
    | TerminalStatusReached
)


# Translation state


@dataclass
class ToolCallBuffer:
    index: int
    call_id: str
    name: str
    arguments: list[str] = field(default_factory=list)
    completed: bool = False

    @property
    def argument_text(self) -> str:
        return "".join(self.arguments)


@dataclass
class TranslationState:
    """Mutable translation state for exactly one request."""

    text: list[str] = field(default_factory=list)
    reasoning_summary: list[str] = field(default_factory=list)
    reasoning_content: list[str] = field(default_factory=list)
    # Insertion order is first-seen order
    tool_calls: dict[str, ToolCallBuffer] = field(default_factory=dict)
    output_index: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    status: TerminalStatus = TerminalStatus.IN_PROGRESS
    raw_stop_reason: str | None = None
    failure_reason: str | None = None

    @property
    def message_text(self) -> str:
        return "".join(self.text)

    @property
    def is_terminal(self) -> bool:
        return self.status is not TerminalStatus.IN_PROGRESS

    def finalized_tool_calls(self) -> list[ToolCallBuffer]:
        return [call for call in self.tool_calls.values() if call.completed]

    def discard_content(self) -> None:
        self.text.clear()
        self.reasoning_summary.clear()
        self.reasoning_content.clear()
        self.tool_calls.clear()


def _non_negative(value: int) -> int:
    return value if value > 0 else 0


class EventAccumulator:
    """Single-pass consumer of one response's engine events."""

    def __init__(self) -> None:
        self.state = TranslationState()

    def apply(self, event: EngineEvent) -> list[TranslationUpdate]:
        """Apply one engine event and return the derived updates.

        Raises:
            EngineFailureError: On a ``failed`` event; the state is left in
                ``error`` with all partial content discarded
            EngineProtocolError: When the event breaks the ordering contract
        """
        state = self.state
        if state.is_terminal:
            raise EngineProtocolError(
                "Execution engine sent events after the response ended",
                diagnostic=f"event={event.type} status={state.status.value}",
            )

        match event:
            case TextDelta(text=text):
                if not text:
                    return []
                state.text.append(text)
                return [TextAppended(text=text)]

            case ReasoningDelta(text=text, kind=kind):
                if not text:
                    return []
                if kind == "summary":
                    state.reasoning_summary.append(text)
                else:
                    state.reasoning_content.append(text)
                return [ReasoningAppended(text=text, kind=kind)]

            case ToolCallStarted(call_id=call_id, name=name):
                if call_id in state.tool_calls:
                    raise self._protocol_error(
                        "duplicate tool call start", call_id=call_id
                    )
                buffer = ToolCallBuffer(
                    index=state.output_index, call_id=call_id, name=name
                )
                state.output_index += 1
                state.tool_calls[call_id] = buffer
                return [ToolCallOpened(index=buffer.index, call_id=call_id, name=name)]

            case ToolCallArgumentDelta(call_id=call_id, delta=delta):
                buffer = self._open_tool_call(call_id, "argument delta")
                if not delta:
                    return []
                buffer.arguments.append(delta)
                return [
                    ToolCallArgumentsAppended(
                        index=buffer.index, call_id=call_id, delta=delta
                    )
                ]

            case ToolCallCompleted(call_id=call_id):
                buffer = self._open_tool_call(call_id, "completion")
                arguments = buffer.argument_text or "{}"
                try:
                    json.loads(arguments)
                except ValueError:
                    raise self._protocol_error(
                        "tool call arguments are not valid JSON", call_id=call_id
                    ) from None
                buffer.completed = True
                return [
                    ToolCallFinalized(
                        index=buffer.index,
                        call_id=call_id,
                        name=buffer.name,
                        arguments=arguments,
                    )
                ]

            case UsageReport():
                state.prompt_tokens += _non_negative(
                    event.input_tokens
                ) + _non_negative(event.cached_input_tokens)
                state.completion_tokens += _non_negative(
                    event.output_tokens
                ) + _non_negative(event.reasoning_output_tokens)
                state.total_tokens += _non_negative(event.total_tokens)
                return [
                    UsageUpdated(
                        prompt_tokens=state.prompt_tokens,
                        completion_tokens=state.completion_tokens,
                        total_tokens=state.total_tokens,
                    )
                ]

            case Completed(stop_reason=stop_reason):
                status = self._map_stop_reason(stop_reason)
                open_calls = [
                    call.call_id
                    for call in state.tool_calls.values()
                    if not call.completed
                ]
                if open_calls and status is not TerminalStatus.LENGTH:
                    raise self._protocol_error(
                        "response completed with unfinished tool calls",
                        call_id=",".join(open_calls),
                    )
                if open_calls:
                    # Truncated arguments are not valid JSON and never finalize
                    for call_id in open_calls:
                        del state.tool_calls[call_id]
                    logger.info(
                        "truncated_tool_calls_dropped",
                        call_ids=open_calls,
                        raw_stop_reason=stop_reason,
                        category=LogCategory.STREAMING,
                    )
                state.raw_stop_reason = stop_reason
                state.status = status
                finish_reason = state.status.finish_reason
                assert finish_reason is not None
                return [TerminalStatusReached(status=state.status, finish_reason=finish_reason)]

            case Failed(reason=reason, code=code):
                state.status = TerminalStatus.ERROR
                state.failure_reason = reason
                state.discard_content()
                logger.warning(
                    "engine_reported_failure",
                    reason=reason,
                    code=code,
                    category=LogCategory.ENGINE,
                )
                raise EngineFailureError(reason=reason, code=code)

            case _:
                assert_never(event)

    def finish(self) -> None:
        """Check that the stream ended on a terminal event.

        Raises:
            EngineProtocolError: If the engine stream ended mid-response
        """
        if not self.state.is_terminal:
            self.state.status = TerminalStatus.ERROR
            raise EngineProtocolError(
                "Execution engine stream ended before the response completed",
                diagnostic="stream closed without a completed or failed event",
            )

    def _open_tool_call(self, call_id: str, what: str) -> ToolCallBuffer:
        buffer = self.state.tool_calls.get(call_id)
        if buffer is None:
            raise self._protocol_error(f"{what} for unknown tool call", call_id=call_id)
        if buffer.completed:
            raise self._protocol_error(
                f"{what} for already completed tool call", call_id=call_id
            )
        return buffer

    def _protocol_error(self, detail: str, call_id: str) -> EngineProtocolError:
        self.state.status = TerminalStatus.ERROR
        logger.error(
            "engine_protocol_violation",
            detail=detail,
            call_id=call_id,
            category=LogCategory.ENGINE,
        )
        return EngineProtocolError(
            "Execution engine violated the event ordering contract",
            diagnostic=f"{detail}: {call_id}",
        )

    def _map_stop_reason(self, stop_reason: str | None) -> TerminalStatus:
        has_tool_calls = bool(self.state.finalized_tool_calls())
        if stop_reason is None:
            return TerminalStatus.TOOL_CALLS if has_tool_calls else TerminalStatus.STOPPED

        normalized = stop_reason.strip().lower()
        if normalized in _LENGTH_STOP_REASONS:
            return TerminalStatus.LENGTH
        if normalized in _TOOL_STOP_REASONS:
            return TerminalStatus.TOOL_CALLS
        if normalized in _NATURAL_STOP_REASONS:
            return TerminalStatus.TOOL_CALLS if has_tool_calls else TerminalStatus.STOPPED

        logger.warning(
            "unrecognized_stop_reason",
            raw_stop_reason=stop_reason,
            mapped_to="stop",
            category=LogCategory.STREAMING,
        )
        return TerminalStatus.STOPPED


__all__ = [
    "EventAccumulator",
    "ReasoningAppended",
    "TerminalStatusReached",
    "TextAppended",
    "ToolCallArgumentsAppended",
    "ToolCallBuffer",
    "ToolCallFinalized",
    "ToolCallOpened",
    "TranslationState",
    "TranslationUpdate",
    "UsageUpdated",
]
