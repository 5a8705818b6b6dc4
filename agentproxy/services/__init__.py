"""Request orchestration and read-only application context."""

from .chat import ChatCompletionService
from .context import AppContext
from .model_catalog import ModelCatalog, ModelDescriptor, ResolvedModel


__all__ = [
    "AppContext",
    "ChatCompletionService",
    "ModelCatalog",
    "ModelDescriptor",
    "ResolvedModel",
]
