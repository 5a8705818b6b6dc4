"""OpenAI Chat Completions adapter."""

from .accumulator import EventAccumulator, TranslationState, TranslationUpdate
from .chunk_encoder import ChunkEncoder, OpenAIStreamingFormatter
from .error_mapper import ErrorMapper
from .request_translator import RequestTranslator


__all__ = [
    "ChunkEncoder",
    "ErrorMapper",
    "EventAccumulator",
    "OpenAIStreamingFormatter",
    "RequestTranslator",
    "TranslationState",
    "TranslationUpdate",
]
