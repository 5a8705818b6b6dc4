"""CORS middleware setup."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agentproxy.config.core import CORSSettings
from agentproxy.core.logging import LogCategory, get_logger


logger = get_logger(__name__)


def setup_cors_middleware(app: FastAPI, cors: CORSSettings) -> None:
    """Add Starlette's CORS middleware configured from settings."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.origins,
        allow_credentials=cors.credentials,
        allow_methods=cors.methods,
        allow_headers=cors.headers,
    )
    logger.debug(
        "cors_middleware_configured",
        origins=cors.origins,
        category=LogCategory.CONFIG,
    )


__all__ = ["setup_cors_middleware"]
