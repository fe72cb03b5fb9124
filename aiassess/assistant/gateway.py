import logging
from contextlib import AsyncExitStack
from typing import Any

import httpx
from openai import APIStatusError, AsyncOpenAI

from aiassess.core.config import settings

logger = logging.getLogger(__name__)

# Upstream statuses relayed to the caller as-is; anything else becomes a 500.
UPSTREAM_ERROR_MESSAGES: dict[int, str] = {
    429: "Rate limit exceeded. Please try again in a moment.",
    402: "AI credits exhausted. Please add credits to continue.",
}
GENERIC_UPSTREAM_ERROR = "AI service temporarily unavailable"


class GatewayError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class GatewayClient:
    """Streaming chat completions against the hosted OpenAI-compatible AI gateway."""

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.model_name = model_name or settings.AI_GATEWAY_MODEL
        self.api_key = api_key if api_key is not None else settings.AI_GATEWAY_API_KEY

        # The openai client rejects an empty key; open_stream reports it instead.
        self.client: AsyncOpenAI | None = None
        if self.api_key:
            # Each chat request is forwarded exactly once.
            self.client = AsyncOpenAI(
                base_url=base_url or settings.AI_GATEWAY_URL,
                api_key=self.api_key,
                max_retries=0,
                timeout=settings.AI_GATEWAY_TIMEOUT_SECONDS,
                http_client=http_client,
            )

    async def open_stream(
        self,
        stack: AsyncExitStack,
        *,
        system_prompt: str,
        messages: list[dict[str, Any]],
    ) -> Any:
        """
        Start a streaming completion and register its cleanup on `stack`.

        Returns the raw upstream response; its `iter_bytes()` yields the
        gateway's SSE body untouched. Non-2xx upstream statuses raise
        GatewayError with the status the caller should answer with.
        """
        if self.client is None:
            raise GatewayError(500, "AI_GATEWAY_API_KEY is not configured")

        try:
            return await stack.enter_async_context(
                self.client.chat.completions.with_streaming_response.create(
                    model=self.model_name,
                    messages=[{"role": "system", "content": system_prompt}, *messages],
                    stream=True,
                )
            )
        except APIStatusError as exc:
            logger.error("AI gateway error: %s %s", exc.status_code, exc.message)
            if exc.status_code in UPSTREAM_ERROR_MESSAGES:
                raise GatewayError(exc.status_code, UPSTREAM_ERROR_MESSAGES[exc.status_code]) from exc
            raise GatewayError(500, GENERIC_UPSTREAM_ERROR) from exc
