"""Request ID and access logging middleware."""

import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from agentproxy.core.logging import LogCategory, get_logger


logger = get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id into structlog context and logs each request."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                category=LogCategory.ACCESS,
            )
            raise

        log = logger.info if response.status_code < 400 else logger.warning
        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            category=LogCategory.ACCESS,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


__all__ = ["REQUEST_ID_HEADER", "RequestLoggingMiddleware"]
