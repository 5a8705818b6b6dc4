"""OpenAI-compatible chat completion endpoint."""

from typing import Any

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from agentproxy.api.dependencies import ChatServiceDep
from agentproxy.models.openai import OpenAIChatCompletionRequest


router = APIRouter(tags=["openai"])

STREAMING_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.post("/v1/chat/completions", response_model=None)
async def create_chat_completion(
    request: OpenAIChatCompletionRequest,
    service: ChatServiceDep,
) -> StreamingResponse | dict[str, Any]:
    """Create a chat completion, streamed as SSE when ``stream`` is set.

    Failures raised here, including streaming failures before the first
    chunk, are rendered by the error handlers as a JSON error body.
    """
    if request.stream:
        frames = await service.stream(request)
        return StreamingResponse(
            frames, media_type="text/event-stream", headers=STREAMING_HEADERS
        )

    completion = await service.complete(request)
    return completion.to_wire()
