"""OpenAI-compatible Pydantic models for the agent proxy.

Request models are deliberately lenient: message content and tool definitions
are validated by the request translator so that malformed conversations come
back as OpenAI-style ``invalid_request_error`` bodies with a precise message.
Response models follow the Chat Completions wire format.
"""

import time
import uuid
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from agentproxy.models.types import OpenAIFinishReason, ReasoningEffort


# OpenAI Request Models
class OpenAIRequestFunctionCall(BaseModel):
    """Function call details on an assistant message in the conversation history."""

    name: str = Field(..., description="Function name")
    arguments: str | None = Field(
        None, description="JSON-encoded arguments"
    )

    model_config = ConfigDict(extra="allow")


class OpenAIRequestToolCall(BaseModel):
    """A tool call previously made by the assistant."""

    id: str | None = Field(None, description="Tool call id")
    type: str = Field("function", description="Tool call kind")
    function: OpenAIRequestFunctionCall = Field(
        ..., description="Called function and its arguments"
    )

    model_config = ConfigDict(extra="allow")


class OpenAIMessage(BaseModel):
    """OpenAI-compatible message model."""

    role: Annotated[str, Field(description="Message role")] = ""
    content: Annotated[
        Any,
        Field(description="String, list of content parts, single part, or null"),
    ] = None
    name: Annotated[
        str | None, Field(description="Participant name, ignored")
    ] = None
    tool_calls: Annotated[
        list[OpenAIRequestToolCall] | None,
        Field(
            description="Tool calls made by the assistant (only for assistant messages)"
        ),
    ] = None
    tool_call_id: str | None = Field(
        None,
        description="Tool call this message is responding to (only for tool messages)",
    )

    model_config = ConfigDict(extra="allow")


# OpenAI Tool Models
class OpenAIFunction(BaseModel):
    """OpenAI function definition."""

    name: str = Field(..., description="Function name")
    description: str | None = Field(
        None, description="What the function does"
    )
    parameters: dict[str, Any] | None = Field(
        None,
        description="JSON Schema for the arguments, sanitized before it reaches the engine",
    )
    strict: bool | None = Field(
        None, description="Whether to enforce the schema exactly"
    )

    model_config = ConfigDict(extra="allow")


class OpenAITool(BaseModel):
    """OpenAI tool definition."""

    type: str = Field("function", description="Tool kind; only function tools reach the engine")
    function: OpenAIFunction | None = Field(None, description="Function declaration")

    model_config = ConfigDict(extra="allow")


class OpenAIToolChoiceFunction(BaseModel):
    name: str = Field(..., description="The function name to call")


class OpenAIToolChoice(BaseModel):
    """OpenAI tool choice specification."""

    type: str = Field("function", description="Tool kind; only function tools reach the engine")
    function: OpenAIToolChoiceFunction = Field(
        ..., description="Function the model must call"
    )

    model_config = ConfigDict(extra="allow")


class OpenAIStreamOptions(BaseModel):
    """OpenAI streaming options."""

    include_usage: bool | None = Field(
        None, description="Ignored; the terminal chunk always carries usage"
    )


class OpenAIChatCompletionRequest(BaseModel):
    """OpenAI-compatible chat completion request model.

    Unknown OpenAI parameters are accepted and ignored.
    """

    model: str = Field("", description="Model id or reasoning variant id")
    messages: list[OpenAIMessage] = Field(
        default_factory=list,
        description="Conversation so far, oldest first",
    )
    max_tokens: int | None = Field(
        None, description="Legacy cap on generated tokens", ge=1
    )
    max_completion_tokens: int | None = Field(
        None, description="Upper bound on generated tokens, including reasoning", ge=1
    )
    temperature: float | None = Field(
        None, description="Sampling temperature in [0, 2]", ge=0.0, le=2.0
    )
    top_p: float | None = Field(
        None, description="Nucleus sampling mass in [0, 1]", ge=0.0, le=1.0
    )
    stream: bool | None = Field(
        False, description="Stream chunks as server-sent events"
    )
    stream_options: OpenAIStreamOptions | None = Field(
        None, description="Accepted for compatibility; usage is always sent"
    )
    tools: list[OpenAITool] | None = Field(
        None, description="Tools the model may call"
    )
    tool_choice: Literal["none", "auto", "required"] | OpenAIToolChoice | None = Field(
        None, description="none, auto, required or a named function"
    )
    parallel_tool_calls: bool | None = Field(
        None, description="Allow several tool calls in one turn"
    )
    reasoning_effort: ReasoningEffort | None = Field(
        None, description="How much effort reasoning models spend thinking"
    )
    user: str | None = Field(
        None, description="Caller-supplied end-user id, ignored"
    )

    model_config = ConfigDict(extra="allow")


# OpenAI Response Models
class OpenAIUsage(BaseModel):
    """OpenAI usage statistics."""

    prompt_tokens: int = Field(0, description="Input tokens, cached input included")
    completion_tokens: int = Field(
        0, description="Output tokens, reasoning included"
    )
    total_tokens: int = Field(
        0, description="Total tokens as reported by the engine"
    )

    model_config = ConfigDict(extra="forbid")


class OpenAIFunctionCall(BaseModel):
    """OpenAI function call details."""

    name: str = Field(..., description="Function name")
    arguments: str = Field(
        ..., description="JSON-encoded arguments"
    )

    model_config = ConfigDict(extra="forbid")


class OpenAIToolCall(BaseModel):
    """OpenAI tool call in response."""

    id: str = Field(..., description="Tool call id")
    type: Literal["function"] = Field("function", description="Tool call kind")
    function: OpenAIFunctionCall = Field(
        ..., description="Called function and its arguments"
    )

    model_config = ConfigDict(extra="forbid")


class OpenAIReasoningPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class OpenAIReasoning(BaseModel):
    """Reasoning text surfaced alongside the assistant message."""

    summary: list[OpenAIReasoningPart] | None = None
    content: list[OpenAIReasoningPart] | None = None


class OpenAIResponseMessage(BaseModel):
    """OpenAI response message model."""

    role: Literal["assistant"] = Field(
        "assistant", description="Message role"
    )
    content: str | None = Field(None, description="Assistant text, or null when only tools were called")
    tool_calls: list[OpenAIToolCall] | None = Field(
        None, description="Finalized tool calls in first-seen order"
    )
    reasoning: OpenAIReasoning | None = Field(
        None, description="Reasoning text produced before the answer"
    )

    model_config = ConfigDict(extra="forbid")


class OpenAIChoice(BaseModel):
    """OpenAI choice in response."""

    index: int = Field(0, description="Choice position, always 0")
    message: OpenAIResponseMessage = Field(
        ..., description="Assistant message assembled from the engine events"
    )
    finish_reason: OpenAIFinishReason = Field(
        ..., description="Why generation stopped"
    )

    model_config = ConfigDict(extra="forbid")


class OpenAIChatCompletionResponse(BaseModel):
    """OpenAI-compatible chat completion response model."""

    id: str = Field(..., description="Completion id shared by every chunk of one response")
    object: Literal["chat.completion"] = Field(
        "chat.completion", description="Wire object tag"
    )
    created: int = Field(
        ..., description="Creation time in Unix seconds"
    )
    model: str = Field(..., description="Model id echoed from the request")
    choices: list[OpenAIChoice] = Field(
        ..., description="Always exactly one choice"
    )
    usage: OpenAIUsage = Field(
        ..., description="Token usage for the whole response"
    )

    model_config = ConfigDict(extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        """Serialize without null message fields."""
        return self.model_dump(mode="json", exclude_none=True)


# OpenAI Streaming Response Models
class OpenAIStreamingFunctionCall(BaseModel):
    name: str | None = None
    arguments: str | None = None


class OpenAIStreamingToolCall(BaseModel):
    """Tool call fragment keyed by its position in the message."""

    index: int = Field(..., description="Position of the tool call in the message")
    id: str = Field(..., description="Tool call id")
    type: Literal["function"] | None = None
    function: OpenAIStreamingFunctionCall = Field(
        default_factory=OpenAIStreamingFunctionCall
    )


class OpenAIStreamingDelta(BaseModel):
    """OpenAI streaming delta message."""

    role: Literal["assistant"] | None = Field(
        None, description="Message role"
    )
    content: str | None = Field(None, description="Text appended since the previous chunk")
    tool_calls: list[OpenAIStreamingToolCall] | None = Field(
        None, description="Tool call fragments keyed by index"
    )
    reasoning: OpenAIReasoning | None = Field(None, description="Reasoning delta")

    model_config = ConfigDict(extra="forbid")


class OpenAIStreamingChoice(BaseModel):
    """OpenAI streaming choice."""

    index: int = Field(0, description="Choice position, always 0")
    delta: OpenAIStreamingDelta = Field(
        default_factory=OpenAIStreamingDelta, description="Incremental message fields"
    )
    finish_reason: OpenAIFinishReason | None = Field(
        None, description="Why generation stopped"
    )

    model_config = ConfigDict(extra="forbid")


class OpenAIStreamingChatCompletionResponse(BaseModel):
    """OpenAI-compatible streaming chat completion chunk."""

    id: str = Field(..., description="Completion id shared by every chunk of one response")
    object: Literal["chat.completion.chunk"] = Field(
        "chat.completion.chunk", description="Wire object tag"
    )
    created: int = Field(
        ..., description="Creation time in Unix seconds"
    )
    model: str = Field(..., description="Model id echoed from the request")
    choices: list[OpenAIStreamingChoice] = Field(
        ..., description="Always exactly one choice"
    )
    usage: OpenAIUsage | None = Field(
        None,
        description="Usage statistics for the completion request (only in last chunk)",
    )
    sequence: int = Field(
        0, exclude=True, description="Position of this chunk within its response"
    )

    model_config = ConfigDict(extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        """Serialize with empty delta fields dropped and ``finish_reason`` kept."""
        data = self.model_dump(mode="json", exclude_none=True)
        for choice, dumped in zip(self.choices, data["choices"], strict=True):
            dumped["finish_reason"] = choice.finish_reason
        return data


# OpenAI Models List Response
class OpenAIModelInfo(BaseModel):
    """OpenAI model information."""

    id: str = Field(..., description="Advertised model id")
    object: Literal["model"] = Field("model", description="Wire object tag")
    created: int = Field(
        ..., description="Preset creation time in Unix seconds"
    )
    owned_by: str = Field(..., description="Owner reported for the preset")

    model_config = ConfigDict(extra="forbid")


class OpenAIModelsResponse(BaseModel):
    """OpenAI models list response."""

    object: Literal["list"] = Field("list", description="Wire object tag")
    data: list[OpenAIModelInfo] = Field(..., description="Models sorted by id")

    model_config = ConfigDict(extra="forbid")


# OpenAI Error Response Models
class OpenAIErrorDetail(BaseModel):
    """OpenAI error detail."""

    message: str = Field(..., description="Message safe to show the caller")
    type: str = Field(..., description="Error category, e.g. invalid_request_error")
    param: str | None = Field(None, description="Offending request parameter, if known")
    code: str | None = Field(None, description="Machine-readable error code")

    model_config = ConfigDict(extra="forbid")


class OpenAIErrorResponse(BaseModel):
    """OpenAI error response."""

    error: OpenAIErrorDetail = Field(..., description="Error body")

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def create(
        cls,
        message: str,
        error_type: str,
        param: str | None = None,
        code: str | None = None,
    ) -> "OpenAIErrorResponse":
        """Create an error response."""
        return cls(
            error=OpenAIErrorDetail(
                message=message,
                type=error_type,
                param=param,
                code=code,
            )
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


def generate_completion_id() -> str:
    """Generate an OpenAI-style chat completion id."""
    return f"chatcmpl-{uuid.uuid4().hex[:29]}"


def current_timestamp() -> int:
    return int(time.time())


# Export all models
__all__ = [
    # Request models
    "OpenAIMessage",
    "OpenAIRequestFunctionCall",
    "OpenAIRequestToolCall",
    "OpenAIFunction",
    "OpenAITool",
    "OpenAIToolChoice",
    "OpenAIToolChoiceFunction",
    "OpenAIStreamOptions",
    "OpenAIChatCompletionRequest",
    # Response models
    "OpenAIUsage",
    "OpenAIFunctionCall",
    "OpenAIToolCall",
    "OpenAIReasoning",
    "OpenAIReasoningPart",
    "OpenAIResponseMessage",
    "OpenAIChoice",
    "OpenAIChatCompletionResponse",
    # Streaming models
    "OpenAIStreamingFunctionCall",
    "OpenAIStreamingToolCall",
    "OpenAIStreamingDelta",
    "OpenAIStreamingChoice",
    "OpenAIStreamingChatCompletionResponse",
    # Models list
    "OpenAIModelInfo",
    "OpenAIModelsResponse",
    # Error models
    "OpenAIErrorDetail",
    "OpenAIErrorResponse",
    # Helpers
    "current_timestamp",
    "generate_completion_id",
]
