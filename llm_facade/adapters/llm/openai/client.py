"""OpenAI-compatible backend.

Speaks the chat completions protocol used by OpenAI and by routers that
mirror it (OpenRouter, Requesty, xAI, local servers).
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from llm_facade.adapters.llm.openai.request_builder import (
    PROVIDER_NAME,
    OpenAIRequestBuilder,
    extract_error_message,
    parse_chunk,
    parse_models,
)
from llm_facade.adapters.llm.sse import ResponseStream, iter_sse
from llm_facade.config._validators import validate_base_url
from llm_facade.core.http_utils import decode_json, raise_for_provider_status
from llm_facade.core.logging_utils import get_logger
from llm_facade.domain.exceptions import EmptyResponseError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

    from llm_facade.config import ProviderConfig
    from llm_facade.domain.models import ChatCompletionMessage, Context, Model, ModelId

logger = get_logger(__name__)


class OpenAIClient:
    """Chat completions backend implementing BackendProtocol.

    The HTTP client is shared and owned by the caller; this backend never
    closes it.
    """

    _provider_name: str = PROVIDER_NAME

    def __init__(
        self,
        provider: ProviderConfig,
        http_client: httpx.AsyncClient,
        *,
        version: str,
        debug_payloads: bool = False,
    ) -> None:
        """Initialize the backend.

        Raises:
            ValueError: If the provider is not OpenAI-compatible or its base URL is malformed.
        """
        if not provider.is_openai_family():
            msg = f"OpenAIClient cannot serve provider kind {provider.kind.value!r}"
            raise ValueError(msg)

        self._base_url = validate_base_url(provider.url, name="OpenAI")
        self._http = http_client
        self._debug_payloads = debug_payloads
        self._request_builder = OpenAIRequestBuilder(provider, version=version)

    @property
    def provider_name(self) -> str:
        return self._provider_name

    @property
    def base_url(self) -> str:
        return self._base_url

    async def list_models(self) -> list[Model]:
        started = time.perf_counter()
        response = await self._http.get(
            f"{self._base_url}models", headers=self._request_builder.build_headers()
        )
        await raise_for_provider_status(response, PROVIDER_NAME, extract_error_message)

        models = parse_models(decode_json(response, PROVIDER_NAME))
        logger.debug(
            "openai_models_listed",
            extra={
                "model_count": len(models),
                "latency_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return models

    async def chat(self, model_id: ModelId, context: Context) -> AsyncIterator[ChatCompletionMessage]:
        headers = self._request_builder.build_headers()
        body = self._request_builder.build_request_body(model_id, context)

        if self._debug_payloads:
            logger.debug(
                "openai_request",
                extra={
                    "model": model_id,
                    "message_count": len(context.messages),
                    "headers": self._request_builder.get_redacted_headers(headers),
                },
            )

        request = self._http.build_request(
            "POST", f"{self._base_url}chat/completions", headers=headers, json=body
        )
        response = await self._http.send(request, stream=True)
        await raise_for_provider_status(response, PROVIDER_NAME, extract_error_message)
        return ResponseStream(response, self._iter_messages(response, model_id))

    async def _iter_messages(
        self, response: httpx.Response, model_id: ModelId
    ) -> AsyncIterator[ChatCompletionMessage]:
        delivered = 0
        try:
            async for event in iter_sse(response):
                if event.is_done:
                    break
                message = parse_chunk(event.json(PROVIDER_NAME))
                if message.is_empty():
                    continue
                delivered += 1
                yield message

            if delivered == 0:
                msg = f"{PROVIDER_NAME} stream for {model_id} ended without any message"
                raise EmptyResponseError(msg, provider=PROVIDER_NAME)
        finally:
            await response.aclose()
