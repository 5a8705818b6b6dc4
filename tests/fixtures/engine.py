"""Fake engine and session fixtures.

``ScriptedEngine`` replays a fixed list of engine events for every submission
and records what it was given and whether the stream was closed, so tests can
assert on cancellation as well as output.
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from agentproxy.adapters.openai.error_mapper import ErrorMapper
from agentproxy.adapters.openai.request_translator import RequestTranslator
from agentproxy.api.app import create_app
from agentproxy.auth.session import StaticSession
from agentproxy.config.settings import Settings
from agentproxy.engine.base import EngineStream
from agentproxy.engine.presets import DEFAULT_MODEL_PRESETS
from agentproxy.models.engine import (
    Completed,
    EngineEvent,
    ModelPreset,
    NativePrompt,
    TextDelta,
    UsageReport,
)
from agentproxy.services.context import AppContext
from agentproxy.services.model_catalog import ModelCatalog


TEST_PRESETS: tuple[ModelPreset, ...] = (
    ModelPreset(id="m1", display_name="Model one", context_window=1000),
    *DEFAULT_MODEL_PRESETS,
)


class ScriptedEngine:
    """Engine that replays scripted events and records submissions."""

    name = "scripted"

    def __init__(
        self,
        events: Sequence[EngineEvent] = (),
        presets: Sequence[ModelPreset] = TEST_PRESETS,
        error: BaseException | None = None,
        block_after_events: bool = False,
    ) -> None:
        self.events = list(events)
        self.presets = tuple(presets)
        self.error = error
        self.block_after_events = block_after_events
        self.submissions: list[NativePrompt] = []
        self.streams: list[EngineStream] = []
        self.producer_closed = 0
        self.closed = False

    def model_presets(self) -> Sequence[ModelPreset]:
        return self.presets

    async def submit(self, prompt: NativePrompt) -> EngineStream:
        self.submissions.append(prompt)
        stream = EngineStream(self._events())
        self.streams.append(stream)
        return stream

    async def _events(self) -> AsyncIterator[EngineEvent]:
        try:
            for event in self.events:
                yield event
                await asyncio.sleep(0)
            if self.error is not None:
                raise self.error
            if self.block_after_events:
                await asyncio.Event().wait()
        finally:
            self.producer_closed += 1

    async def aclose(self) -> None:
        self.closed = True


def hello_events(text: str = "hello", stop_reason: str | None = "stop") -> list[Any]:
    return [
        TextDelta(text=text),
        UsageReport(input_tokens=3, output_tokens=1, total_tokens=4),
        Completed(stop_reason=stop_reason),
    ]


def build_context(
    engine: ScriptedEngine,
    settings: Settings | None = None,
    authenticated: bool = True,
) -> AppContext:
    settings = settings or Settings()
    return AppContext(
        settings=settings,
        engine=engine,
        session=StaticSession(authenticated=authenticated),
        catalog=ModelCatalog(engine.model_presets()),
        translator=RequestTranslator(settings.adapter),
        error_mapper=ErrorMapper(verbose=settings.adapter.verbose),
    )


@pytest.fixture
def scripted_engine() -> ScriptedEngine:
    return ScriptedEngine(hello_events())


@pytest.fixture
def test_settings() -> Settings:
    return Settings()


@pytest.fixture
def app_factory(
    test_settings: Settings,
) -> Callable[..., FastAPI]:
    """Build an app around a given engine, settings and session state."""

    def _factory(
        engine: ScriptedEngine,
        settings: Settings | None = None,
        authenticated: bool = True,
    ) -> FastAPI:
        context = build_context(
            engine, settings=settings or test_settings, authenticated=authenticated
        )
        return create_app(context=context)

    return _factory


@pytest.fixture
def client(
    app_factory: Callable[..., FastAPI], scripted_engine: ScriptedEngine
) -> TestClient:
    return TestClient(app_factory(scripted_engine))
