"""Contract between the adapter and an execution engine."""

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from types import TracebackType
from typing import Protocol, runtime_checkable

from agentproxy.models.engine import EngineEvent, ModelPreset, NativePrompt


__all__ = ["EngineStream", "ExecutionEngine"]


class EngineStream:
    """A cancellable, lazily consumed sequence of engine events.

    Iteration suspends until the producer yields the next event. ``aclose``
    closes the underlying async generator (so its ``finally`` blocks run on
    the producer side) and then runs the optional ``on_close`` callback, which
    engines use to release transport resources.
    """

    def __init__(
        self,
        events: AsyncIterator[EngineEvent],
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._events = events
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "EngineStream":
        return self

    async def __anext__(self) -> EngineEvent:
        if self._closed:
            raise StopAsyncIteration
        return await self._events.__anext__()

    async def aclose(self) -> None:
        """Cancel the subscription. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            aclose = getattr(self._events, "aclose", None)
            if aclose is not None:
                await aclose()
        finally:
            if self._on_close is not None:
                await self._on_close()

    async def __aenter__(self) -> "EngineStream":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


@runtime_checkable
class ExecutionEngine(Protocol):
    """An engine that runs native prompts and reports typed events.

    Implementations guarantee that events for one tool call arrive in the
    order started, argument deltas, completed; that each submission ends with
    exactly one ``completed`` or ``failed`` event; and that usage is reported
    at or before that terminal event.
    """

    name: str

    def model_presets(self) -> Sequence[ModelPreset]:
        """Static list of models this engine can run."""
        ...

    async def submit(self, prompt: NativePrompt) -> EngineStream:
        """Start executing ``prompt`` and return its event stream."""
        ...

    async def aclose(self) -> None:
        """Release engine-wide resources at shutdown."""
        ...
