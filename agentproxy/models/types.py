"""Shared Literal aliases and enums used by the wire and engine models."""

from enum import StrEnum
from typing import Literal


MessageRole = Literal["system", "developer", "user", "assistant", "tool"]

EngineRole = Literal["developer", "user", "assistant"]

OpenAIFinishReason = Literal["stop", "length", "tool_calls"]

ToolChoiceMode = Literal["none", "auto", "required"]

ReasoningEffort = Literal["none", "minimal", "low", "medium", "high", "xhigh"]

ReasoningKind = Literal["summary", "content"]


class DeveloperPromptMode(StrEnum):
    """Policy for injecting the adapter-authored developer prompt."""

    NONE = "none"
    DEFAULT = "default"
    OVERRIDE = "override"

    @classmethod
    def parse(cls, value: "str | DeveloperPromptMode") -> "DeveloperPromptMode":
        if isinstance(value, DeveloperPromptMode):
            return value
        normalized = value.strip().lower()
        if normalized in ("none", "disabled", "off"):
            return cls.NONE
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Invalid developer prompt mode '{value}'. "
                "Must be one of: none, default, override"
            ) from None


class TerminalStatus(StrEnum):
    """Where a single response's translation ended up."""

    IN_PROGRESS = "in_progress"
    STOPPED = "stopped"
    TOOL_CALLS = "tool_calls"
    LENGTH = "length"
    ERROR = "error"

    @property
    def finish_reason(self) -> OpenAIFinishReason | None:
        return _FINISH_REASONS.get(self)


_FINISH_REASONS: dict[TerminalStatus, OpenAIFinishReason] = {
    TerminalStatus.STOPPED: "stop",
    TerminalStatus.TOOL_CALLS: "tool_calls",
    TerminalStatus.LENGTH: "length",
}


__all__ = [
    "DeveloperPromptMode",
    "EngineRole",
    "MessageRole",
    "OpenAIFinishReason",
    "ReasoningEffort",
    "ReasoningKind",
    "TerminalStatus",
    "ToolChoiceMode",
]
