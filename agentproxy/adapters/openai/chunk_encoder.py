"""Render translation updates as OpenAI chunks or a single completion."""

import json
from typing import Any, assert_never

from agentproxy.adapters.openai.accumulator import (
    ReasoningAppended,
    TerminalStatusReached,
    TextAppended,
    ToolCallArgumentsAppended,
    ToolCallFinalized,
    ToolCallOpened,
    TranslationState,
    TranslationUpdate,
    UsageUpdated,
)
from agentproxy.core.errors import EngineProtocolError
from agentproxy.models.openai import (
    OpenAIChatCompletionResponse,
    OpenAIChoice,
    OpenAIErrorResponse,
    OpenAIFunctionCall,
    OpenAIReasoning,
    OpenAIReasoningPart,
    OpenAIResponseMessage,
    OpenAIStreamingChatCompletionResponse,
    OpenAIStreamingChoice,
    OpenAIStreamingDelta,
    OpenAIStreamingFunctionCall,
    OpenAIStreamingToolCall,
    OpenAIToolCall,
    OpenAIUsage,
    current_timestamp,
    generate_completion_id,
)
from agentproxy.models.types import TerminalStatus


class OpenAIStreamingFormatter:
    """Formats streaming responses to match OpenAI's SSE format."""

    @staticmethod
    def format_data_event(data: dict[str, Any]) -> str:
        """Format a data event for OpenAI-compatible Server-Sent Events."""
        json_data = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
        return f"data: {json_data}\n\n"

    @staticmethod
    def format_chunk(chunk: OpenAIStreamingChatCompletionResponse) -> str:
        return OpenAIStreamingFormatter.format_data_event(chunk.to_wire())

    @staticmethod
    def format_error(error: OpenAIErrorResponse) -> str:
        """Format an error event sent after chunks were already delivered."""
        return OpenAIStreamingFormatter.format_data_event(error.to_wire())

    @staticmethod
    def format_done() -> str:
        """Format the final DONE event."""
        return "data: [DONE]\n\n"


class ChunkEncoder:
    """Projects accumulator updates into one response's OpenAI output.

    In streaming mode ``encode`` turns each update into zero or more chunks,
    all sharing one response id with increasing sequence numbers, and emits
    exactly one terminal chunk. In non-streaming mode ``build_completion``
    assembles the final completion from the drained state.
    """

    def __init__(
        self,
        model: str,
        response_id: str | None = None,
        created: int | None = None,
    ) -> None:
        self.model = model
        self.response_id = response_id or generate_completion_id()
        self.created = created if created is not None else current_timestamp()
        self._sequence = 0
        self._role_sent = False
        self._terminal_emitted = False
        self._usage = OpenAIUsage()

    @property
    def terminal_emitted(self) -> bool:
        return self._terminal_emitted

    @property
    def chunks_emitted(self) -> int:
        return self._sequence

    def encode(
        self, update: TranslationUpdate
    ) -> list[OpenAIStreamingChatCompletionResponse]:
        """Encode one update as streaming chunks.

        Raises:
            RuntimeError: If called after the terminal chunk was emitted
        """
        if self._terminal_emitted:
            raise RuntimeError("terminal chunk already emitted for this response")

        match update:
            case TextAppended(text=text):
                return [self._content_chunk(OpenAIStreamingDelta(content=text))]

            case ReasoningAppended(text=text, kind=kind):
                part = [OpenAIReasoningPart(text=text)]
                reasoning = (
                    OpenAIReasoning(summary=part)
                    if kind == "summary"
                    else OpenAIReasoning(content=part)
                )
                return [self._content_chunk(OpenAIStreamingDelta(reasoning=reasoning))]

            case ToolCallOpened(index=index, call_id=call_id, name=name):
                tool_call = OpenAIStreamingToolCall(
                    index=index,
                    id=call_id,
                    type="function",
                    function=OpenAIStreamingFunctionCall(name=name, arguments=""),
                )
                return [
                    self._content_chunk(OpenAIStreamingDelta(tool_calls=[tool_call]))
                ]

            case ToolCallArgumentsAppended(index=index, call_id=call_id, delta=delta):
                tool_call = OpenAIStreamingToolCall(
                    index=index,
                    id=call_id,
                    function=OpenAIStreamingFunctionCall(arguments=delta),
                )
                return [
                    self._content_chunk(OpenAIStreamingDelta(tool_calls=[tool_call]))
                ]

            case ToolCallFinalized():
                # Arguments were already streamed as deltas
                return []

            case UsageUpdated():
                self._usage = OpenAIUsage(
                    prompt_tokens=update.prompt_tokens,
                    completion_tokens=update.completion_tokens,
                    total_tokens=update.total_tokens,
                )
                return []

            case TerminalStatusReached(finish_reason=finish_reason):
                self._terminal_emitted = True
                delta = OpenAIStreamingDelta()
                if not self._role_sent:
                    delta.role = "assistant"
                    self._role_sent = True
                chunk = self._chunk(
                    OpenAIStreamingChoice(delta=delta, finish_reason=finish_reason)
                )
                chunk.usage = self._usage
                return [chunk]

            case _:
                assert_never(update)

    def build_completion(self, state: TranslationState) -> OpenAIChatCompletionResponse:
        """Assemble the completion for a drained, successfully finished state.

        Raises:
            EngineProtocolError: If the state never reached a success status
        """
        finish_reason = state.status.finish_reason
        if finish_reason is None or state.status is TerminalStatus.ERROR:
            raise EngineProtocolError(
                "Execution engine did not complete the response",
                diagnostic=f"status={state.status.value}",
            )
        self._terminal_emitted = True

        tool_calls = [
            OpenAIToolCall(
                id=call.call_id,
                function=OpenAIFunctionCall(
                    name=call.name, arguments=call.argument_text or "{}"
                ),
            )
            for call in state.finalized_tool_calls()
        ]

        reasoning = None
        if state.reasoning_summary or state.reasoning_content:
            reasoning = OpenAIReasoning(
                summary=[OpenAIReasoningPart(text="".join(state.reasoning_summary))]
                if state.reasoning_summary
                else None,
                content=[OpenAIReasoningPart(text="".join(state.reasoning_content))]
                if state.reasoning_content
                else None,
            )

        return OpenAIChatCompletionResponse(
            id=self.response_id,
            created=self.created,
            model=self.model,
            choices=[
                OpenAIChoice(
                    index=0,
                    message=OpenAIResponseMessage(
                        content=state.message_text or None,
                        tool_calls=tool_calls or None,
                        reasoning=reasoning,
                    ),
                    finish_reason=finish_reason,
                )
            ],
            usage=OpenAIUsage(
                prompt_tokens=state.prompt_tokens,
                completion_tokens=state.completion_tokens,
                total_tokens=state.total_tokens,
            ),
        )

    def _content_chunk(
        self, delta: OpenAIStreamingDelta
    ) -> OpenAIStreamingChatCompletionResponse:
        if not self._role_sent:
            delta.role = "assistant"
            self._role_sent = True
        return self._chunk(OpenAIStreamingChoice(delta=delta))

    def _chunk(
        self, choice: OpenAIStreamingChoice
    ) -> OpenAIStreamingChatCompletionResponse:
        chunk = OpenAIStreamingChatCompletionResponse(
            id=self.response_id,
            created=self.created,
            model=self.model,
            choices=[choice],
            sequence=self._sequence,
        )
        self._sequence += 1
        return chunk


__all__ = ["ChunkEncoder", "OpenAIStreamingFormatter"]
