"""Exception taxonomy for the agent proxy.

Every failure that can reach a client is an ``AdapterError`` subclass. The
error mapper turns these into OpenAI-shaped error bodies; anything that is not
an ``AdapterError`` is treated as an unexpected internal fault.
"""

from enum import StrEnum
from typing import Any


class AdapterError(Exception):
    """Base exception for all client-visible adapter errors.

    ``message`` is always safe to return to the caller. ``diagnostic`` holds raw
    internal detail (engine reasons, exception text) that may echo request
    payload content and is only exposed when verbose diagnostics are on.
    """

    def __init__(
        self,
        message: str,
        error_type: str = "internal_error",
        status_code: int = 500,
        diagnostic: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.diagnostic = diagnostic
        self.code = code
        self.details = details or {}


class ValidationErrorKind(StrEnum):
    """What part of the request failed validation."""

    STRUCTURE = "structure"
    UNKNOWN_TOOL = "unknown_tool"
    CONTENT = "content"


class ValidationError(AdapterError):
    """Malformed or inconsistent request (400)."""

    def __init__(
        self,
        message: str,
        kind: ValidationErrorKind = ValidationErrorKind.STRUCTURE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_type="invalid_request_error",
            status_code=400,
            code=kind.value,
            details=details,
        )
        self.kind = kind


class AuthUnavailableError(AdapterError):
    """No usable engine session (401)."""

    def __init__(
        self,
        message: str = (
            "agentproxy requires an active Codex login. "
            "Run `codex login` and retry."
        ),
    ) -> None:
        super().__init__(
            message=message,
            error_type="authentication_error",
            status_code=401,
            code="not_logged_in",
        )


class UnknownModelError(AdapterError):
    """Unknown or disallowed model (404)."""

    def __init__(self, model: str) -> None:
        super().__init__(
            message=f"The model '{model}' does not exist or is not available",
            error_type="invalid_request_error",
            status_code=404,
            code="model_not_found",
        )
        self.model = model


class EngineProtocolError(AdapterError):
    """The engine violated its event ordering contract (502)."""

    def __init__(self, message: str, diagnostic: str | None = None) -> None:
        super().__init__(
            message=message,
            error_type="engine_protocol_error",
            status_code=502,
            diagnostic=diagnostic,
        )


class EngineFailureError(AdapterError):
    """The engine reported a failure for the prompt (502)."""

    def __init__(
        self,
        reason: str | None = None,
        message: str = "The execution engine failed to complete the request",
        code: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_type="engine_error",
            status_code=502,
            diagnostic=reason,
            code=code,
        )
        self.reason = reason


__all__ = [
    "AdapterError",
    "AuthUnavailableError",
    "EngineFailureError",
    "EngineProtocolError",
    "UnknownModelError",
    "ValidationError",
    "ValidationErrorKind",
]
