"""Engine-native prompt, event and preset models.

The prompt is built once per request and frozen. Engine events form a closed
tagged union discriminated by ``type``; consumers switch over it exhaustively.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from agentproxy.models.types import (
    EngineRole,
    ReasoningEffort,
    ReasoningKind,
    ToolChoiceMode,
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# Prompt content


class InputText(_Frozen):
    type: Literal["input_text"] = "input_text"
    text: str


class OutputText(_Frozen):
    type: Literal["output_text"] = "output_text"
    text: str


class InputImage(_Frozen):
    type: Literal["input_image"] = "input_image"
    image_url: str


ContentItem = Annotated[
    InputText | OutputText | InputImage, Field(discriminator="type")
]


class MessageItem(_Frozen):
    """A role-tagged message in the engine conversation."""

    type: Literal["message"] = "message"
    role: EngineRole
    content: tuple[ContentItem, ...] = ()

    def text(self) -> str:
        return "".join(
            part.text for part in self.content if not isinstance(part, InputImage)
        )


class FunctionCallItem(_Frozen):
    """A tool call the assistant made earlier in the conversation."""

    type: Literal["function_call"] = "function_call"
    call_id: str
    name: str
    arguments: str = "{}"


class FunctionCallOutputItem(_Frozen):
    """The caller's result for an earlier tool call."""

    type: Literal["function_call_output"] = "function_call_output"
    call_id: str
    output: str


InputItem = Annotated[
    MessageItem | FunctionCallItem | FunctionCallOutputItem,
    Field(discriminator="type"),
]


# Tools


class FunctionTool(_Frozen):
    type: Literal["function"] = "function"
    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    strict: bool = False


class WebSearchTool(_Frozen):
    type: Literal["web_search"] = "web_search"


EngineTool = Annotated[FunctionTool | WebSearchTool, Field(discriminator="type")]


class NamedToolChoice(_Frozen):
    """Force the model to call one specific function."""

    type: Literal["function"] = "function"
    name: str


class SamplingParameters(_Frozen):
    temperature: float | None = None
    top_p: float | None = None
    max_output_tokens: int | None = None


class NativePrompt(_Frozen):
    """Engine-native representation of one chat completion request."""

    model: str
    input: tuple[InputItem, ...]
    tools: tuple[EngineTool, ...] = ()
    tool_choice: ToolChoiceMode | NamedToolChoice = "auto"
    parallel_tool_calls: bool | None = None
    reasoning_effort: ReasoningEffort | None = None
    sampling: SamplingParameters = Field(default_factory=SamplingParameters)
    first_user_message: str | None = None

    def resolved(
        self, model: str, reasoning_effort: ReasoningEffort | None
    ) -> "NativePrompt":
        """Return a copy addressed at a catalog-resolved model."""
        return self.model_copy(
            update={
                "model": model,
                "reasoning_effort": reasoning_effort or self.reasoning_effort,
            }
        )


# Engine events


class TextDelta(_Frozen):
    type: Literal["text_delta"] = "text_delta"
    text: str


class ToolCallStarted(_Frozen):
    type: Literal["tool_call_started"] = "tool_call_started"
    call_id: str
    name: str


class ToolCallArgumentDelta(_Frozen):
    type: Literal["tool_call_argument_delta"] = "tool_call_argument_delta"
    call_id: str
    delta: str


class ToolCallCompleted(_Frozen):
    type: Literal["tool_call_completed"] = "tool_call_completed"
    call_id: str


class ReasoningDelta(_Frozen):
    type: Literal["reasoning_delta"] = "reasoning_delta"
    text: str
    kind: ReasoningKind = "summary"


class UsageReport(_Frozen):
    """Token counts exactly as the engine reports them."""

    type: Literal["usage_report"] = "usage_report"
    input_tokens: int = 0
    cached_input_tokens: int = 0
    output_tokens: int = 0
    reasoning_output_tokens: int = 0
    total_tokens: int = 0


class Completed(_Frozen):
    type: Literal["completed"] = "completed"
    stop_reason: str | None = None


class Failed(_Frozen):
    type: Literal["failed"] = "failed"
    reason: str
    code: str | None = None


EngineEvent = Annotated[
    TextDelta
    | ToolCallStarted
    | ToolCallArgumentDelta
    | ToolCallCompleted
    | ReasoningDelta
    | UsageReport
    | Completed
    | Failed,
    Field(discriminator="type"),
]


# Model presets


class ModelPreset(_Frozen):
    """A model the engine can run, as advertised by the engine collaborator."""

    id: str
    display_name: str = ""
    description: str = ""
    context_window: int | None = None
    max_output_tokens: int | None = None
    reasoning_efforts: tuple[ReasoningEffort, ...] = ()
    default_reasoning_effort: ReasoningEffort | None = None
    reasoning_tier: bool = False
    owned_by: str = "openai"
    created: int = 1_754_438_400


__all__ = [
    "Completed",
    "ContentItem",
    "EngineEvent",
    "EngineTool",
    "Failed",
    "FunctionCallItem",
    "FunctionCallOutputItem",
    "FunctionTool",
    "InputImage",
    "InputItem",
    "InputText",
    "MessageItem",
    "ModelPreset",
    "NamedToolChoice",
    "NativePrompt",
    "OutputText",
    "ReasoningDelta",
    "SamplingParameters",
    "TextDelta",
    "ToolCallArgumentDelta",
    "ToolCallCompleted",
    "ToolCallStarted",
    "UsageReport",
    "WebSearchTool",
]
