"""FastAPI application factory for the agent proxy."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from agentproxy import __version__
from agentproxy.api.middleware.cors import setup_cors_middleware
from agentproxy.api.middleware.errors import setup_error_handlers
from agentproxy.api.middleware.request_logging import RequestLoggingMiddleware
from agentproxy.api.routes.chat import router as chat_router
from agentproxy.api.routes.health import router as health_router
from agentproxy.api.routes.models import router as models_router
from agentproxy.config.settings import Settings, get_settings
from agentproxy.core.logging import LogCategory, get_logger, setup_logging
from agentproxy.services.context import AppContext


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup and release engine resources at shutdown."""
    context: AppContext = app.state.context
    settings = context.settings
    logger.info(
        "server_start",
        host=settings.server.host,
        port=settings.server.port,
        url=settings.server_url,
        engine=context.engine.name,
        authenticated=context.session.has_usable_session(),
        category=LogCategory.LIFECYCLE,
    )

    yield

    logger.debug("server_stop", category=LogCategory.LIFECYCLE)
    try:
        await context.engine.aclose()
    except Exception as e:
        logger.error(
            "engine_shutdown_failed",
            error=str(e),
            exc_info=e,
            category=LogCategory.LIFECYCLE,
        )


def create_app(
    settings: Settings | None = None, context: AppContext | None = None
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override. If None, uses the context's
            settings or ``get_settings()``.
        context: Optional pre-built application context, used by tests to
            inject fake engines and sessions.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = context.settings if context is not None else get_settings()
    if context is None:
        context = AppContext.from_settings(settings)

    if not structlog.is_configured():
        setup_logging(
            json_logs=settings.logging.json_logs,
            log_level_name=settings.logging.level,
        )

    app = FastAPI(
        title="Agent Proxy",
        description="OpenAI Chat Completions compatible API backed by an agent execution engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    setup_cors_middleware(app, settings.cors)
    app.add_middleware(RequestLoggingMiddleware)
    setup_error_handlers(app)

    app.include_router(chat_router)
    app.include_router(models_router)
    app.include_router(health_router)

    logger.debug(
        "app_created",
        engine=context.engine.name,
        bypass_mode=settings.server.bypass_mode,
        category=LogCategory.LIFECYCLE,
    )
    return app


__all__ = ["create_app", "lifespan"]
