"""Shared dependencies for the API routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from agentproxy.core.logging import LogCategory, get_logger
from agentproxy.services.chat import ChatCompletionService
from agentproxy.services.context import AppContext


logger = get_logger(__name__)


def get_app_context(request: Request) -> AppContext:
    """Get the read-only application context from app state."""
    context: AppContext | None = getattr(request.app.state, "context", None)
    if context is None:
        logger.error("app_context_missing_on_app_state", category=LogCategory.LIFECYCLE)
        raise HTTPException(status_code=503, detail="Application context not initialized")
    return context


def get_chat_service(
    context: Annotated[AppContext, Depends(get_app_context)],
) -> ChatCompletionService:
    """Create the per-request chat completion service."""
    return ChatCompletionService(context)


AppContextDep = Annotated[AppContext, Depends(get_app_context)]
ChatServiceDep = Annotated[ChatCompletionService, Depends(get_chat_service)]


__all__ = [
    "AppContextDep",
    "ChatServiceDep",
    "get_app_context",
    "get_chat_service",
]
