"""Structured logging setup built on structlog."""

import json
import logging
import sys
from enum import Enum
from typing import Any

import structlog


class LogCategory(str, Enum):
    """Log categories attached to events as ``category=...``."""

    LIFECYCLE = "lifecycle"  # Startup, shutdown
    REQUEST = "request"  # Request processing and handling
    ACCESS = "access"  # Access logging and request tracking
    STREAMING = "streaming"  # SSE chunks and engine events
    TRANSFORM = "transform"  # Request/response translation
    ENGINE = "engine"  # Calls to the execution engine
    AUTH = "auth"  # Session detection
    CONFIG = "config"  # Configuration loading and validation
    DEFAULT = "general"


_NOISY_LOGGERS = ("httpx", "httpcore")
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def setup_logging(json_logs: bool = False, log_level_name: str = "INFO") -> Any:
    """Configure structlog and route stdlib logging through the same renderer.

    Args:
        json_logs: Render JSON lines instead of the colored console format
        log_level_name: Root log level name

    Returns:
        A logger bound to this module
    """
    level = getattr(logging, log_level_name.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    renderer: Any
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
        final_processors = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ]
    else:
        renderer = structlog.dev.ConsoleRenderer()
        final_processors = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=final_processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # uvicorn installs its own handlers; let records propagate to ours instead
    for name in _UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True
    # Access lines duplicate the request logging middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return get_logger(__name__)


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, optionally named."""
    return structlog.get_logger(name)


def log_verbose_payload(
    logger: Any, event: str, payload: Any, **context: Any
) -> None:
    """Log a full JSON payload at info level.

    Only call this when verbose diagnostics are enabled: payloads contain the
    caller's conversation content.
    """
    try:
        rendered = json.dumps(payload, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        rendered = repr(payload)
    logger.info(event, payload=rendered, category=LogCategory.TRANSFORM, **context)


__all__ = ["LogCategory", "get_logger", "log_verbose_payload", "setup_logging"]
