"""Execution engine contract and bundled engines."""

from .base import EngineStream, ExecutionEngine
from .echo import EchoEngine
from .presets import DEFAULT_MODEL_PRESETS
from .responses import ResponsesEngine


__all__ = [
    "DEFAULT_MODEL_PRESETS",
    "EchoEngine",
    "EngineStream",
    "ExecutionEngine",
    "ResponsesEngine",
]
