"""Anthropic Messages API backend."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from llm_facade.adapters.llm.anthropic.request_builder import (
    PROVIDER_NAME,
    AnthropicRequestBuilder,
    AnthropicStreamParser,
    extract_error_message,
    parse_models_page,
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

# Largest page size the models endpoint accepts
MODELS_PAGE_LIMIT = 1000


class AnthropicClient:
    """Messages API backend implementing BackendProtocol.

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
            ValueError: If the provider is not Anthropic, has no key, or its base URL is malformed.
        """
        if not provider.is_anthropic():
            msg = f"AnthropicClient cannot serve provider kind {provider.kind.value!r}"
            raise ValueError(msg)
        if not provider.key:
            msg = "Anthropic API key is required"
            raise ValueError(msg)

        self._base_url = validate_base_url(provider.url, name="Anthropic")
        self._http = http_client
        self._debug_payloads = debug_payloads
        self._request_builder = AnthropicRequestBuilder(provider, version=version)

    @property
    def provider_name(self) -> str:
        return self._provider_name

    @property
    def base_url(self) -> str:
        return self._base_url

    async def list_models(self) -> list[Model]:
        """List every model, following ``has_more`` pagination."""
        started = time.perf_counter()
        headers = self._request_builder.build_headers()
        models: list[Model] = []
        cursor: str | None = None
        pages = 0

        while True:
            params: dict[str, str | int] = {"limit": MODELS_PAGE_LIMIT}
            if cursor:
                params["after_id"] = cursor
            response = await self._http.get(
                f"{self._base_url}models", headers=headers, params=params
            )
            await raise_for_provider_status(response, PROVIDER_NAME, extract_error_message)

            page, cursor = parse_models_page(decode_json(response, PROVIDER_NAME))
            models.extend(page)
            pages += 1
            if not cursor:
                break

        logger.debug(
            "anthropic_models_listed",
            extra={
                "model_count": len(models),
                "pages": pages,
                "latency_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return models

    async def chat(self, model_id: ModelId, context: Context) -> AsyncIterator[ChatCompletionMessage]:
        headers = self._request_builder.build_headers()
        body = self._request_builder.build_request_body(model_id, context)

        if self._debug_payloads:
            logger.debug(
                "anthropic_request",
                extra={
                    "model": model_id,
                    "message_count": len(context.messages),
                    "has_system": "system" in body,
                    "headers": self._request_builder.get_redacted_headers(headers),
                },
            )

        request = self._http.build_request(
            "POST", f"{self._base_url}messages", headers=headers, json=body
        )
        response = await self._http.send(request, stream=True)
        await raise_for_provider_status(response, PROVIDER_NAME, extract_error_message)
        return ResponseStream(response, self._iter_messages(response, model_id))

    async def _iter_messages(
        self, response: httpx.Response, model_id: ModelId
    ) -> AsyncIterator[ChatCompletionMessage]:
        parser = AnthropicStreamParser()
        delivered = 0
        try:
            async for event in iter_sse(response):
                message = parser.feed(event.event, event.json(PROVIDER_NAME))
                if parser.finished:
                    break
                if message is None or message.is_empty():
                    continue
                delivered += 1
                yield message

            if delivered == 0:
                msg = f"{PROVIDER_NAME} stream for {model_id} ended without any message"
                raise EmptyResponseError(msg, provider=PROVIDER_NAME)
        finally:
            await response.aclose()
