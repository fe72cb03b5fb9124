import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse

from aiassess.api.deps import CurrentUser, GatewayDep
from aiassess.assistant.gateway import GatewayError
from aiassess.assistant.prompts import ChatRequest, build_system_prompt

router = APIRouter()
logger = logging.getLogger(__name__)


async def _relay(chunks: AsyncIterator[bytes], stack: AsyncExitStack) -> AsyncIterator[bytes]:
    try:
        async for chunk in chunks:
            yield chunk
    finally:
        await stack.aclose()


@router.post("/chat")
async def chat(payload: ChatRequest, current_user: CurrentUser, gateway: GatewayDep) -> Any:
    """
    Forward a chat conversation to the AI gateway with the assessment context
    folded into the system prompt. The upstream SSE body is relayed byte for byte.
    """
    stack = AsyncExitStack()
    try:
        upstream = await gateway.open_stream(
            stack,
            system_prompt=build_system_prompt(payload.context),
            messages=[message.model_dump() for message in payload.messages],
        )
    except GatewayError as exc:
        await stack.aclose()
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
    except Exception as exc:
        logger.error("AI assistant error: %s", exc)
        await stack.aclose()
        return JSONResponse(status_code=500, content={"error": str(exc)})

    return StreamingResponse(_relay(upstream.iter_bytes(), stack), media_type="text/event-stream")
