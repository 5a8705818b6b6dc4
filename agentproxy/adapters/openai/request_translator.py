"""Translate OpenAI Chat Completions requests into the engine's native prompt."""

from typing import Any

from agentproxy.adapters.openai.developer_prompt import (
    apply_developer_prompt,
    ensure_web_search_tool,
)
from agentproxy.adapters.openai.schema import normalize_tool_schema
from agentproxy.config.adapter import AdapterSettings
from agentproxy.core.errors import ValidationError, ValidationErrorKind
from agentproxy.core.logging import LogCategory, get_logger
from agentproxy.models.engine import (
    ContentItem,
    FunctionCallItem,
    FunctionCallOutputItem,
    FunctionTool,
    InputImage,
    InputItem,
    InputText,
    MessageItem,
    NamedToolChoice,
    NativePrompt,
    OutputText,
    SamplingParameters,
)
from agentproxy.models.openai import (
    OpenAIChatCompletionRequest,
    OpenAIMessage,
    OpenAITool,
    OpenAIToolChoice,
)
from agentproxy.models.types import ToolChoiceMode


logger = get_logger(__name__)

_ENGINE_ROLES = ("developer", "user", "assistant")


def normalize_role(role: str) -> str:
    """Lower-case a role; empty means user and system becomes developer."""
    normalized = role.strip().lower()
    if not normalized:
        return "user"
    if normalized == "system":
        return "developer"
    return normalized


class RequestTranslator:
    """Builds a ``NativePrompt`` from an OpenAI chat completion request.

    Translation is a pure function of the request and the adapter settings:
    translating the same request twice yields equal prompts.
    """

    def __init__(self, settings: AdapterSettings) -> None:
        self.settings = settings

    def translate(self, request: OpenAIChatCompletionRequest) -> NativePrompt:
        """Translate a request.

        Args:
            request: Parsed chat completion request

        Returns:
            The frozen engine prompt

        Raises:
            ValidationError: If the conversation, content or tools are malformed
        """
        if not request.messages:
            raise ValidationError(
                "Request must include at least one message in `messages`",
                kind=ValidationErrorKind.STRUCTURE,
            )

        function_tools = self._convert_tools(request.tools)
        tool_choice = self._convert_tool_choice(
            request.tool_choice, {tool.name for tool in function_tools}
        )

        items: list[InputItem] = []
        system_texts: list[str] = []
        first_user_message: str | None = None
        answerable_calls: set[str] = set()

        for index, message in enumerate(request.messages):
            role = normalize_role(message.role)

            if role == "tool":
                items.append(self._convert_tool_output(message, index, answerable_calls))
                continue

            if role not in _ENGINE_ROLES:
                raise ValidationError(
                    f"Unsupported role `{message.role}` in messages[{index}]",
                    kind=ValidationErrorKind.STRUCTURE,
                )

            if role == "assistant" and message.tool_calls:
                calls = self._convert_assistant_tool_calls(message)
                answerable_calls.update(call.call_id for call in calls)
                items.extend(calls)

            content = convert_content(role, message.content, index)

            if role == "developer":
                system_texts.append(
                    "".join(
                        part.text for part in content if isinstance(part, InputText)
                    )
                )
            if first_user_message is None and role == "user":
                first_user_message = next(
                    (part.text for part in content if isinstance(part, InputText)),
                    None,
                )

            if content:
                items.append(MessageItem(role=role, content=tuple(content)))

        tools = ensure_web_search_tool(
            function_tools, self.settings.web_search_request
        )
        system_prompt = "\n\n".join(system_texts) if system_texts else None
        input_items = apply_developer_prompt(
            items, tools, self.settings.developer_prompt_mode, system_prompt
        )

        prompt = NativePrompt(
            model=request.model or self.settings.default_model,
            input=input_items,
            tools=tools,
            tool_choice=tool_choice,
            parallel_tool_calls=request.parallel_tool_calls,
            reasoning_effort=request.reasoning_effort,
            sampling=SamplingParameters(
                temperature=request.temperature,
                top_p=request.top_p,
                max_output_tokens=request.max_completion_tokens or request.max_tokens,
            ),
            first_user_message=first_user_message,
        )

        logger.debug(
            "request_translated",
            model=prompt.model,
            input_items=len(prompt.input),
            tools=len(prompt.tools),
            developer_prompt_mode=self.settings.developer_prompt_mode.value,
            category=LogCategory.TRANSFORM,
        )
        return prompt

    def _convert_tools(
        self, tools: list[OpenAITool] | None
    ) -> tuple[FunctionTool, ...]:
        converted: list[FunctionTool] = []
        seen: set[str] = set()
        for index, tool in enumerate(tools or []):
            if tool.type.lower() != "function":
                logger.debug(
                    "tool_type_skipped",
                    tool_type=tool.type,
                    index=index,
                    category=LogCategory.TRANSFORM,
                )
                continue
            if tool.function is None:
                raise ValidationError(
                    f"tools[{index}] of type `function` must include `function`",
                    kind=ValidationErrorKind.CONTENT,
                )
            name = tool.function.name.strip()
            if not name:
                raise ValidationError(
                    f"tools[{index}].function.name must not be empty",
                    kind=ValidationErrorKind.CONTENT,
                )
            if name in seen:
                raise ValidationError(
                    f"Duplicate tool name `{name}` in tools",
                    kind=ValidationErrorKind.STRUCTURE,
                )
            seen.add(name)
            converted.append(
                FunctionTool(
                    name=name,
                    description=(tool.function.description or "").strip(),
                    parameters=normalize_tool_schema(tool.function.parameters),
                    strict=bool(tool.function.strict),
                )
            )
        return tuple(converted)

    def _convert_tool_choice(
        self,
        tool_choice: ToolChoiceMode | OpenAIToolChoice | None,
        tool_names: set[str],
    ) -> ToolChoiceMode | NamedToolChoice:
        if tool_choice is None:
            return "auto"
        if isinstance(tool_choice, str):
            if tool_choice == "required" and not tool_names:
                raise ValidationError(
                    "`tool_choice` is `required` but no function tools were provided",
                    kind=ValidationErrorKind.STRUCTURE,
                )
            return tool_choice

        name = tool_choice.function.name.strip()
        if name not in tool_names:
            raise ValidationError(
                f"`tool_choice` names tool `{name}` which is not defined in `tools`",
                kind=ValidationErrorKind.UNKNOWN_TOOL,
            )
        return NamedToolChoice(name=name)

    def _convert_assistant_tool_calls(
        self, message: OpenAIMessage
    ) -> list[FunctionCallItem]:
        calls: list[FunctionCallItem] = []
        for tool_call in message.tool_calls or []:
            if tool_call.type.lower() != "function":
                continue
            name = tool_call.function.name.strip()
            if not name:
                continue
            call_id = (tool_call.id or "").strip() or f"call_{len(calls)}"
            calls.append(
                FunctionCallItem(
                    call_id=call_id,
                    name=name,
                    arguments=tool_call.function.arguments or "{}",
                )
            )
        return calls

    def _convert_tool_output(
        self, message: OpenAIMessage, index: int, answerable_calls: set[str]
    ) -> FunctionCallOutputItem:
        call_id = (message.tool_call_id or "").strip()
        if not call_id:
            raise ValidationError(
                f"messages[{index}] has role `tool` but no `tool_call_id`",
                kind=ValidationErrorKind.STRUCTURE,
            )
        if call_id not in answerable_calls:
            raise ValidationError(
                f"messages[{index}] answers tool call `{call_id}`, but no earlier "
                "assistant message made that call",
                kind=ValidationErrorKind.STRUCTURE,
            )
        return FunctionCallOutputItem(
            call_id=call_id, output=tool_output_text(message.content, index)
        )


def convert_content(role: str, content: Any, index: int) -> list[ContentItem]:
    """Convert OpenAI message content into engine content items.

    Assistant text becomes ``output_text``; every other role uses ``input_text``.

    Raises:
        ValidationError: For content shapes the engine cannot represent
    """
    if content is None:
        return []
    if isinstance(content, str):
        return [_text_item(role, content)]
    if isinstance(content, list):
        return [_convert_part(role, part, index) for part in content]
    if isinstance(content, dict):
        # Single part object; a bare {"text": ...} is accepted as text
        if isinstance(content.get("text"), str) and "type" not in content:
            return [_text_item(role, content["text"])]
        if "type" not in content:
            raise ValidationError(
                f"messages[{index}].content object must include `type`",
                kind=ValidationErrorKind.CONTENT,
            )
        return [_convert_part(role, content, index)]
    raise ValidationError(
        f"messages[{index}].content must be text or a structured content array",
        kind=ValidationErrorKind.CONTENT,
    )


def _convert_part(role: str, part: Any, index: int) -> ContentItem:
    if isinstance(part, str):
        return _text_item(role, part)
    if not isinstance(part, dict):
        raise ValidationError(
            f"messages[{index}].content items must be strings or objects",
            kind=ValidationErrorKind.CONTENT,
        )

    part_type = part.get("type")
    if part_type in ("text", "input_text", "output_text"):
        text = part.get("text")
        if not isinstance(text, str):
            raise ValidationError(
                f"messages[{index}] text block is missing `text`",
                kind=ValidationErrorKind.CONTENT,
            )
        return _text_item(role, text)
    if part_type in ("image_url", "input_image"):
        return InputImage(image_url=_extract_image_url(part, index))
    if part_type is None:
        raise ValidationError(
            f"messages[{index}] content item is missing `type`",
            kind=ValidationErrorKind.CONTENT,
        )
    raise ValidationError(
        f"Unsupported content type `{part_type}` in messages[{index}]",
        kind=ValidationErrorKind.CONTENT,
    )


def _text_item(role: str, text: str) -> ContentItem:
    if role == "assistant":
        return OutputText(text=text)
    return InputText(text=text)


def _extract_image_url(part: dict[str, Any], index: int) -> str:
    image_url = part.get("image_url")
    if isinstance(image_url, str):
        return image_url
    if isinstance(image_url, dict) and isinstance(image_url.get("url"), str):
        return image_url["url"]
    raise ValidationError(
        f"messages[{index}] image content requires `image_url`",
        kind=ValidationErrorKind.CONTENT,
    )


def tool_output_text(content: Any, index: int) -> str:
    """Flatten a tool message's content into the output string."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            part["text"]
            for part in content
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
    raise ValidationError(
        f"messages[{index}] tool content must be a string or a list of text parts",
        kind=ValidationErrorKind.CONTENT,
    )


__all__ = ["RequestTranslator", "convert_content", "normalize_role", "tool_output_text"]
