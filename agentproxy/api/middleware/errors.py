"""Error handlers that render every failure as an OpenAI error body."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from agentproxy.adapters.openai.error_mapper import ErrorMapper
from agentproxy.core.errors import AdapterError, ValidationError, ValidationErrorKind
from agentproxy.core.logging import LogCategory, get_logger
from agentproxy.models.openai import OpenAIErrorResponse


logger = get_logger(__name__)

_HTTP_ERROR_TYPES = {
    401: "authentication_error",
    404: "not_found_error",
    405: "invalid_request_error",
}


def _error_mapper(request: Request) -> ErrorMapper:
    context = getattr(request.app.state, "context", None)
    if context is None:
        return ErrorMapper()
    mapper: ErrorMapper = context.error_mapper
    return mapper


def _error_response(status_code: int, body: OpenAIErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.to_wire())


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Request body is invalid"


def setup_error_handlers(app: FastAPI) -> None:
    """Setup error handlers for the FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(AdapterError)
    async def adapter_error_handler(request: Request, exc: AdapterError) -> JSONResponse:
        status_code, body = _error_mapper(request).map(exc)
        log = logger.warning if status_code < 500 else logger.error
        log(
            "adapter_error",
            error_type=exc.error_type,
            error_message=exc.message,
            diagnostic=exc.diagnostic,
            status_code=status_code,
            request_method=request.method,
            request_url=str(request.url.path),
            category=LogCategory.REQUEST,
        )
        return _error_response(status_code, body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError(
            f"Invalid request: {_describe_validation_errors(exc)}",
            kind=ValidationErrorKind.STRUCTURE,
        )
        logger.warning(
            "request_validation_failed",
            error_message=error.message,
            request_method=request.method,
            request_url=str(request.url.path),
            category=LogCategory.REQUEST,
        )
        status_code, body = _error_mapper(request).map(error)
        return _error_response(status_code, body)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        # Don't log 404s above debug
        log = logger.debug if exc.status_code == 404 else logger.warning
        log(
            "http_error",
            error_message=exc.detail,
            status_code=exc.status_code,
            request_method=request.method,
            request_url=str(request.url.path),
            category=LogCategory.REQUEST,
        )
        error_type = _HTTP_ERROR_TYPES.get(
            exc.status_code,
            "invalid_request_error" if exc.status_code < 500 else "internal_error",
        )
        body = OpenAIErrorResponse.create(message=str(exc.detail), error_type=error_type)
        return JSONResponse(
            status_code=exc.status_code,
            content=body.to_wire(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            request_method=request.method,
            request_url=str(request.url.path),
            exc_info=exc,
            category=LogCategory.REQUEST,
        )
        status_code, body = _error_mapper(request).map(exc)
        return _error_response(status_code, body)

    logger.debug("error_handlers_setup_completed", category=LogCategory.LIFECYCLE)


__all__ = ["setup_error_handlers"]
