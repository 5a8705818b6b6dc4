"""HTTP middleware and exception handlers."""

from .cors import setup_cors_middleware
from .errors import setup_error_handlers
from .request_logging import RequestLoggingMiddleware


__all__ = ["RequestLoggingMiddleware", "setup_cors_middleware", "setup_error_handlers"]
