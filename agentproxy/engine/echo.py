"""In-process echo engine used in bypass mode.

It never leaves the process: replies quote the first user message back, so
clients can be wired up and tested without an engine session.
"""

import asyncio
import re
from collections.abc import AsyncIterator, Sequence

from agentproxy.core.logging import LogCategory, get_logger
from agentproxy.engine.base import EngineStream
from agentproxy.engine.presets import DEFAULT_MODEL_PRESETS
from agentproxy.models.engine import (
    Completed,
    EngineEvent,
    InputText,
    MessageItem,
    ModelPreset,
    NativePrompt,
    TextDelta,
    UsageReport,
)


logger = get_logger(__name__)

_TOKEN_PATTERN = re.compile(r"\S+\s*|\s+")


def _split_text_for_streaming(text: str) -> list[str]:
    """Split text into word-sized pieces, keeping trailing whitespace."""
    return _TOKEN_PATTERN.findall(text) or [text]


def build_echo_reply(first_user_message: str | None) -> str:
    text = (first_user_message or "").strip()
    if not text:
        return "Hi there! How can I help you today?"
    return f"Hi there! You said: {text}"


def _count_words(prompt: NativePrompt) -> int:
    words = 0
    for item in prompt.input:
        if isinstance(item, MessageItem):
            for part in item.content:
                if isinstance(part, InputText):
                    words += len(part.text.split())
    return words


class EchoEngine:
    """Engine that streams a canned reply word by word."""

    name = "echo"

    def __init__(
        self,
        presets: Sequence[ModelPreset] = DEFAULT_MODEL_PRESETS,
        delay: float = 0.0,
    ) -> None:
        self._presets = tuple(presets)
        self._delay = delay

    def model_presets(self) -> Sequence[ModelPreset]:
        return self._presets

    async def submit(self, prompt: NativePrompt) -> EngineStream:
        logger.debug(
            "echo_engine_submit",
            model=prompt.model,
            category=LogCategory.ENGINE,
        )
        return EngineStream(self._events(prompt))

    async def aclose(self) -> None:
        return None

    async def _events(self, prompt: NativePrompt) -> AsyncIterator[EngineEvent]:
        reply = build_echo_reply(prompt.first_user_message)
        pieces = _split_text_for_streaming(reply)
        for piece in pieces:
            yield TextDelta(text=piece)
            await asyncio.sleep(self._delay)

        input_tokens = _count_words(prompt)
        output_tokens = len(pieces)
        yield UsageReport(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
        )
        yield Completed(stop_reason="stop")


__all__ = ["EchoEngine", "build_echo_reply"]
