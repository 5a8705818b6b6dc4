"""Developer prompt policy for translated conversations.

The engine is an agent that expects to run shells and edit files. Behind an
OpenAI surface it can do neither, so the adapter may prepend a developer
message saying so. The result depends only on the input items, the mode and
the available tools, and injecting twice is a no-op.
"""

from collections.abc import Sequence

from agentproxy.models.engine import (
    EngineTool,
    FunctionTool,
    InputItem,
    InputText,
    MessageItem,
    WebSearchTool,
)
from agentproxy.models.types import DeveloperPromptMode


DEVELOPER_PROMPT_MARKER = "Agent Proxy compatibility mode"

_BASE_LINES = (
    "This compatibility shim cannot run shells, edit files, or inspect your workspace.",
    "Never claim you executed commands or edits. Describe what the user should "
    "run instead and wait for their results.",
)

_WEB_SEARCH_LINE = (
    "You may invoke the `web_search` tool when you truly need new information."
)
_FUNCTION_TOOLS_LINE = (
    "Only the functions declared in this request are available; call them "
    "instead of describing their results."
)
_NO_TOOLS_LINE = "No tools are available for this conversation."


def ensure_web_search_tool(
    tools: Sequence[EngineTool], allow_web_search: bool
) -> tuple[EngineTool, ...]:
    """Add the web_search tool when allowed, never duplicating it."""
    has_web_search = any(isinstance(tool, WebSearchTool) for tool in tools)
    if allow_web_search and not has_web_search:
        return (*tools, WebSearchTool())
    return tuple(tools)


def build_developer_prompt(
    tools: Sequence[EngineTool], original_system: str | None = None
) -> str:
    lines = list(_BASE_LINES)
    if any(isinstance(tool, WebSearchTool) for tool in tools):
        lines.append(_WEB_SEARCH_LINE)
    if any(isinstance(tool, FunctionTool) for tool in tools):
        lines.append(_FUNCTION_TOOLS_LINE)
    if not tools:
        lines.append(_NO_TOOLS_LINE)

    text = f"{DEVELOPER_PROMPT_MARKER}:\n" + "\n".join(f"- {line}" for line in lines)
    if original_system:
        text += "\n\nThe original system message follows:\n" + original_system
    return text


def has_developer_prompt(items: Sequence[InputItem]) -> bool:
    return any(
        isinstance(item, MessageItem)
        and item.role == "developer"
        and any(
            isinstance(part, InputText) and DEVELOPER_PROMPT_MARKER in part.text
            for part in item.content
        )
        for item in items
    )


def apply_developer_prompt(
    items: Sequence[InputItem],
    tools: Sequence[EngineTool],
    mode: DeveloperPromptMode,
    system_prompt: str | None,
) -> tuple[InputItem, ...]:
    """Return the input items with the developer prompt applied per ``mode``.

    Args:
        items: Translated conversation items
        tools: Tools the engine will see, including web_search when enabled
        mode: Injection policy
        system_prompt: Combined text of the caller's system messages, if any

    Returns:
        The items, with the developer message first when one was injected
    """
    if mode is DeveloperPromptMode.NONE:
        return tuple(items)
    if mode is DeveloperPromptMode.DEFAULT and system_prompt is not None:
        return tuple(items)
    if has_developer_prompt(items):
        return tuple(items)

    original = None
    if mode is DeveloperPromptMode.OVERRIDE and system_prompt is not None:
        original = system_prompt.strip() or None

    message = MessageItem(
        role="developer",
        content=(InputText(text=build_developer_prompt(tools, original)),),
    )
    return (message, *items)


__all__ = [
    "DEVELOPER_PROMPT_MARKER",
    "apply_developer_prompt",
    "build_developer_prompt",
    "ensure_web_search_tool",
    "has_developer_prompt",
]
