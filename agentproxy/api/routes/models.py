"""Model listing endpoint."""

from typing import Any

from fastapi import APIRouter

from agentproxy.api.dependencies import AppContextDep


router = APIRouter(tags=["openai"])


@router.get("/v1/models")
async def list_models(context: AppContextDep) -> dict[str, Any]:
    """List advertised models in stable identifier order."""
    models = context.catalog.to_openai(context.expose_reasoning_models)
    return models.model_dump(mode="json")
