"""Per-request chat completion orchestration.

Each call owns its prompt, accumulator and encoder; nothing here is shared
between requests apart from the read-only ``AppContext``.
"""

import time
from collections.abc import AsyncIterator
from dataclasses import dataclass

from agentproxy.adapters.openai.accumulator import EventAccumulator
from agentproxy.adapters.openai.chunk_encoder import (
    ChunkEncoder,
    OpenAIStreamingFormatter,
)
from agentproxy.core.errors import AuthUnavailableError, EngineProtocolError
from agentproxy.core.logging import LogCategory, get_logger, log_verbose_payload
from agentproxy.engine.base import EngineStream
from agentproxy.models.engine import NativePrompt
from agentproxy.models.openai import (
    OpenAIChatCompletionRequest,
    OpenAIChatCompletionResponse,
    OpenAIStreamingChatCompletionResponse,
)
from agentproxy.services.context import AppContext


logger = get_logger(__name__)


@dataclass(frozen=True)
class PreparedRequest:
    """A validated request ready for engine submission."""

    prompt: NativePrompt
    response_model: str


class ChatCompletionService:
    """Runs one chat completion request against the execution engine."""

    def __init__(self, context: AppContext) -> None:
        self.context = context
        self.formatter = OpenAIStreamingFormatter()

    @property
    def verbose(self) -> bool:
        return self.context.settings.adapter.verbose

    def prepare(self, request: OpenAIChatCompletionRequest) -> PreparedRequest:
        """Check the session, translate the request and resolve its model.

        Raises:
            AuthUnavailableError: No usable engine session
            ValidationError: The request cannot be translated
            UnknownModelError: The model is unknown or not exposed
        """
        if not self.context.session.has_usable_session():
            logger.info("auth_session_unavailable", category=LogCategory.AUTH)
            raise AuthUnavailableError()

        if self.verbose:
            log_verbose_payload(
                logger,
                "chat_request_received",
                request.model_dump(exclude_none=True),
            )

        prompt = self.context.translator.translate(request)
        resolved = self.context.catalog.resolve(
            prompt.model, self.context.expose_reasoning_models
        )
        prompt = prompt.resolved(resolved.model, resolved.reasoning_effort)

        if self.verbose:
            log_verbose_payload(logger, "native_prompt_built", prompt.model_dump())

        return PreparedRequest(
            prompt=prompt, response_model=request.model or prompt.model
        )

    async def complete(
        self, request: OpenAIChatCompletionRequest
    ) -> OpenAIChatCompletionResponse:
        """Drain the engine and return a single completion object."""
        prepared = self.prepare(request)
        start_time = time.perf_counter()
        logger.info(
            "chat_completion_started",
            model=prepared.prompt.model,
            stream=False,
            category=LogCategory.REQUEST,
        )

        accumulator = EventAccumulator()
        encoder = ChunkEncoder(model=prepared.response_model)
        async with await self.context.engine.submit(prepared.prompt) as events:
            async for event in events:
                accumulator.apply(event)
                if accumulator.state.is_terminal:
                    break
        accumulator.finish()

        completion = encoder.build_completion(accumulator.state)
        logger.info(
            "chat_completion_completed",
            model=prepared.prompt.model,
            stream=False,
            finish_reason=accumulator.state.status.finish_reason,
            tool_calls=len(accumulator.state.finalized_tool_calls()),
            raw_stop_reason=accumulator.state.raw_stop_reason,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            category=LogCategory.REQUEST,
        )
        return completion

    async def stream(self, request: OpenAIChatCompletionRequest) -> AsyncIterator[str]:
        """Start a streaming completion and return its SSE frames.

        The engine stream is primed before this returns: events are pulled
        until the first chunk exists or the response ends, so failures that
        happen before any content still surface as exceptions and become a
        plain JSON error response. Failures after that point are delivered as
        an SSE error frame followed by ``[DONE]``.
        """
        prepared = self.prepare(request)
        logger.info(
            "chat_completion_started",
            model=prepared.prompt.model,
            stream=True,
            category=LogCategory.REQUEST,
        )

        accumulator = EventAccumulator()
        encoder = ChunkEncoder(model=prepared.response_model)
        events = await self.context.engine.submit(prepared.prompt)
        try:
            first_chunks = await self._next_chunks(events, accumulator, encoder)
        except BaseException:
            await events.aclose()
            raise

        return self._frames(
            events, accumulator, encoder, first_chunks, prepared.prompt.model
        )

    async def _next_chunks(
        self,
        events: EngineStream,
        accumulator: EventAccumulator,
        encoder: ChunkEncoder,
    ) -> list[OpenAIStreamingChatCompletionResponse]:
        """Pull events until at least one chunk is produced."""
        while True:
            try:
                event = await events.__anext__()
            except StopAsyncIteration:
                accumulator.finish()
                raise EngineProtocolError(
                    "Execution engine stream ended before the response completed",
                    diagnostic="stream exhausted after the terminal event",
                ) from None
            chunks: list[OpenAIStreamingChatCompletionResponse] = []
            for update in accumulator.apply(event):
                chunks.extend(encoder.encode(update))
            if chunks:
                return chunks

    async def _frames(
        self,
        events: EngineStream,
        accumulator: EventAccumulator,
        encoder: ChunkEncoder,
        first_chunks: list[OpenAIStreamingChatCompletionResponse],
        model: str,
    ) -> AsyncIterator[str]:
        start_time = time.perf_counter()
        chunks = first_chunks
        try:
            while True:
                for chunk in chunks:
                    yield self.formatter.format_chunk(chunk)
                if encoder.terminal_emitted:
                    break
                chunks = await self._next_chunks(events, accumulator, encoder)
        except Exception as e:
            _, error = self.context.error_mapper.map(e)
            logger.warning(
                "stream_failed_after_first_chunk",
                model=model,
                chunks_emitted=encoder.chunks_emitted,
                error_type=error.error.type,
                error=str(e),
                category=LogCategory.STREAMING,
            )
            yield self.formatter.format_error(error)
        else:
            logger.info(
                "chat_completion_completed",
                model=model,
                stream=True,
                finish_reason=accumulator.state.status.finish_reason,
                tool_calls=len(accumulator.state.finalized_tool_calls()),
                raw_stop_reason=accumulator.state.raw_stop_reason,
                chunks=encoder.chunks_emitted,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                category=LogCategory.REQUEST,
            )
        finally:
            if not encoder.terminal_emitted:
                logger.debug(
                    "engine_stream_cancelled",
                    model=model,
                    chunks_emitted=encoder.chunks_emitted,
                    category=LogCategory.STREAMING,
                )
            await events.aclose()
        yield self.formatter.format_done()


__all__ = ["ChatCompletionService", "PreparedRequest"]
