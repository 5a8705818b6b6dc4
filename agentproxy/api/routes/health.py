"""Health check and Ollama compatibility endpoints.

``/healthz`` reports readiness plus whether the auth collaborator sees a usable
session. The ``/api/*`` endpoints answer the subset of the Ollama API that
Ollama-aware clients probe before switching to the OpenAI surface.
"""

from typing import Any

from fastapi import APIRouter, Response
from pydantic import BaseModel, ConfigDict

from agentproxy.api.dependencies import AppContextDep
from agentproxy.core.errors import ValidationError
from agentproxy.core.logging import get_logger


router = APIRouter(tags=["health"])
logger = get_logger(__name__)

OLLAMA_COMPAT_VERSION = "0.12.10"

_OLLAMA_DETAILS: dict[str, Any] = {
    "parent_model": "",
    "format": "gguf",
    "family": "llama",
    "families": ["llama"],
    "parameter_size": "8.0B",
    "quantization_level": "Q4_0",
}
_OLLAMA_MODIFIED_AT = "2023-10-01T00:00:00Z"
_OLLAMA_SIZE = 815_319_791
_OLLAMA_DIGEST = "8648f39daa8fbf5b18c7b4e6a8fb4990c692751d49917417b8842ca5758e7ffc"
_OLLAMA_CAPABILITIES = ["completion", "vision", "tools", "thinking"]
_OLLAMA_TEMPLATE = (
    "{{ if .System }}<|start_header_id|>system<|end_header_id|>\n\n"
    "{{ .System }}<|eot_id|>{{ end }}{{ if .Prompt }}"
    "<|start_header_id|>user<|end_header_id|>\n\n"
    "{{ .Prompt }}<|eot_id|>{{ end }}<|start_header_id|>assistant<|end_header_id|>\n\n"
    "{{ .Response }}<|eot_id|>"
)
_OLLAMA_PARAMETERS = (
    'num_keep 24\nstop "<|start_header_id|>"\nstop "<|end_header_id|>"\nstop "<|eot_id|>"'
)
# Clients only check that a context length exists
_DEFAULT_CONTEXT_LENGTH = 2_000_000


class OllamaShowRequest(BaseModel):
    model: str | None = None
    name: str | None = None

    model_config = ConfigDict(extra="allow")


@router.get("/healthz")
async def healthz(response: Response, context: AppContextDep) -> dict[str, Any]:
    """Readiness plus a pass-through of the session check."""
    response.headers["Cache-Control"] = "no-cache"

    authenticated = context.session.has_usable_session()
    logger.debug("healthz_request", authenticated=authenticated)

    adapter = context.settings.adapter
    return {
        "ok": True,
        "authenticated": authenticated,
        "message": "Codex auth detected"
        if authenticated
        else "Codex auth missing; run `codex login`",
        "config": {
            "expose_reasoning_models": adapter.expose_reasoning_models,
            "web_search_request": adapter.web_search_request,
            "developer_prompt_mode": adapter.developer_prompt_mode.value,
            "models": context.catalog.model_ids(adapter.expose_reasoning_models),
        },
    }


@router.get("/api/version")
async def api_version() -> dict[str, str]:
    return {"version": OLLAMA_COMPAT_VERSION}


@router.get("/api/tags")
async def api_tags(context: AppContextDep) -> dict[str, Any]:
    """List catalog models in Ollama's tag format."""
    model_ids = context.catalog.model_ids(context.expose_reasoning_models)
    return {
        "models": [
            {
                "name": model_id,
                "model": model_id,
                "modified_at": _OLLAMA_MODIFIED_AT,
                "size": _OLLAMA_SIZE,
                "digest": _OLLAMA_DIGEST,
                "details": _OLLAMA_DETAILS,
            }
            for model_id in model_ids
        ]
    }


@router.post("/api/show")
async def api_show(request: OllamaShowRequest, context: AppContextDep) -> dict[str, Any]:
    """Describe one catalog model in Ollama's show format."""
    model_id = (request.model or request.name or "").strip()
    if not model_id:
        raise ValidationError("Model not found: the 'model' field is required")

    resolved = context.catalog.resolve(model_id, context.expose_reasoning_models)
    context_length = resolved.preset.context_window or _DEFAULT_CONTEXT_LENGTH
    return {
        "modelfile": (
            '# Modelfile generated by "ollama show"\n'
            f"FROM {resolved.model}\n"
            f'TEMPLATE """{_OLLAMA_TEMPLATE}"""\n'
        ),
        "parameters": _OLLAMA_PARAMETERS,
        "template": _OLLAMA_TEMPLATE,
        "details": _OLLAMA_DETAILS,
        "model_info": {
            "general.architecture": "llama",
            "general.file_type": 2,
            "llama.context_length": context_length,
        },
        "capabilities": _OLLAMA_CAPABILITIES,
    }
