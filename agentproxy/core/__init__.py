"""Core building blocks shared by every layer: errors and logging."""

from .errors import (
    AdapterError,
    AuthUnavailableError,
    EngineFailureError,
    EngineProtocolError,
    UnknownModelError,
    ValidationError,
    ValidationErrorKind,
)
from .logging import LogCategory, get_logger, setup_logging


__all__ = [
    "AdapterError",
    "AuthUnavailableError",
    "EngineFailureError",
    "EngineProtocolError",
    "LogCategory",
    "UnknownModelError",
    "ValidationError",
    "ValidationErrorKind",
    "get_logger",
    "setup_logging",
]
