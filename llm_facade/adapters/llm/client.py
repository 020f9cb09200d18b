"""Provider-agnostic LLM client.

``LLMClient`` selects a backend from a ``ProviderConfig``, keeps a shared
model cache, and passes every failure through the retry classifier so
callers handle one error type regardless of provider.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from llm_facade.adapters.llm.factory import BackendFactory, BackendKind
from llm_facade.adapters.llm.model_cache import ModelCache
from llm_facade.adapters.llm.retry import into_retry
from llm_facade.adapters.llm.transport import build_http_client
from llm_facade.config import HttpConfig, RetryConfig
from llm_facade.core.async_utils import aclose_if_supported, raise_if_cancelled
from llm_facade.core.logging_utils import generate_correlation_id, get_logger
from llm_facade.domain.exceptions import ConstructionError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

    from llm_facade.adapters.llm.protocol import BackendProtocol
    from llm_facade.config import FacadeSettings, ProviderConfig
    from llm_facade.domain.models import ChatCompletionMessage, Context, Model, ModelId

logger = get_logger(__name__)

DEFAULT_CLIENT_VERSION = "dev"


class LLMClient:
    """Facade over the OpenAI-compatible and Anthropic backends.

    Construction performs no network I/O. Handles made with ``copy.copy``
    share the backend, the model cache and the HTTP transport, so a refresh
    through one handle is visible through all of them.

    The client never retries. Failures from ``models()``, ``model()``,
    ``refresh_models()``, ``chat()`` and from each streamed item are raised
    as ``RetryableError``; callers read ``is_retryable`` and
    ``suggested_delay()`` to drive their own policy.

    Usage:
        async with LLMClient(ProviderConfig.openai(key)) as client:
            stream = await client.chat(ModelId("gpt-4o"), context)
            async with stream:
                async for message in stream:
                    ...
    """

    def __init__(
        self,
        provider: ProviderConfig,
        retry_config: RetryConfig | None = None,
        version: str = DEFAULT_CLIENT_VERSION,
        http_config: HttpConfig | None = None,
        *,
        backend: BackendProtocol | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        debug_payloads: bool = False,
    ) -> None:
        """Initialize the client.

        Args:
            provider: Provider to talk to; its kind selects the backend.
            retry_config: Classification inputs and retry hints.
            version: Client version forwarded to providers.
            http_config: Transport timeouts, pool and redirect settings.
            backend: Pre-built backend used instead of the factory's choice.
            transport: Optional httpx transport override.
            debug_payloads: Log redacted request metadata at debug level.

        Raises:
            ConstructionError: If the backend rejects the provider settings.
        """
        self._provider = provider
        self._retry_config = retry_config or RetryConfig()
        self._backend_kind = BackendKind.for_provider(provider)
        self._http = build_http_client(http_config or HttpConfig(), transport=transport)

        if backend is None:
            try:
                backend = BackendFactory.create(
                    provider, self._http, version, debug_payloads=debug_payloads
                )
            except ValueError as e:
                # self._http has sent no request, so its pool holds no connections to release.
                logger.error(
                    "llm_client_init_failed",
                    extra={"url": provider.url, "backend_kind": self._backend_kind.value, "error": str(e)},
                )
                msg = f"Failed to initialize: {provider.url}"
                raise ConstructionError(msg, url=provider.url, details={"reason": str(e)}) from e

        self._backend = backend
        self._cache = ModelCache()

        logger.info(
            "llm_client_initialized",
            extra={
                "backend_kind": self._backend_kind.value,
                "provider": backend.provider_name,
                "url": provider.url,
                "version": version,
            },
        )

    @classmethod
    def from_settings(
        cls,
        settings: FacadeSettings,
        provider: ProviderConfig | None = None,
        **kwargs: Any,
    ) -> LLMClient:
        """Build a client from loaded settings.

        The provider is detected from the environment when not given.
        """
        return cls(
            provider or settings.provider(),
            settings.retry,
            settings.client_version,
            settings.http,
            **kwargs,
        )

    @property
    def backend_kind(self) -> BackendKind:
        return self._backend_kind

    @property
    def provider(self) -> ProviderConfig:
        return self._provider

    @property
    def retry_config(self) -> RetryConfig:
        return self._retry_config

    @property
    def cache(self) -> ModelCache:
        return self._cache

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    async def refresh_models(self) -> list[Model]:
        """Fetch the catalog and replace the cache with it.

        On failure the cache is left untouched.

        Raises:
            RetryableError: If listing fails.
        """
        started = time.perf_counter()
        try:
            models = await self._backend.list_models()
        except Exception as e:
            raise_if_cancelled(e)
            error = into_retry(e, self._retry_config)
            logger.warning(
                "model_refresh_failed",
                extra={
                    "backend_kind": self._backend_kind.value,
                    "category": error.category.value,
                    "is_retryable": error.is_retryable,
                    "status_code": error.status_code,
                    "error": str(e),
                },
            )
            raise error from e

        await self._cache.replace_all(models)
        logger.info(
            "model_refresh_completed",
            extra={
                "backend_kind": self._backend_kind.value,
                "model_count": len(models),
                "latency_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return models

    async def models(self) -> list[Model]:
        """Return the provider's current catalog. Always refreshes."""
        return await self.refresh_models()

    async def model(self, model_id: ModelId) -> Model | None:
        """Look up one model, refreshing the cache once on a miss.

        Returns:
            The model, or None if the provider does not offer it.

        Raises:
            RetryableError: If the refresh triggered by a miss fails.
        """
        cached = await self._cache.get(model_id)
        if cached is not None:
            logger.debug("model_cache_hit", extra={"model": model_id})
            return cached

        logger.debug("model_cache_miss", extra={"model": model_id})
        models = await self.refresh_models()
        return next((model for model in models if model.id == model_id), None)

    async def chat(self, model_id: ModelId, context: Context) -> RetryingStream:
        """Open a streamed chat completion.

        The returned stream holds an open HTTP response until it is
        exhausted or closed; use it with ``async with`` or call ``aclose()``.

        Raises:
            RetryableError: If the request cannot be set up.
        """
        correlation_id = generate_correlation_id()
        try:
            stream = await self._backend.chat(model_id, context)
        except Exception as e:
            raise_if_cancelled(e)
            error = into_retry(e, self._retry_config)
            logger.warning(
                "chat_setup_failed",
                extra={
                    "model": model_id,
                    "correlation_id": correlation_id,
                    "backend_kind": self._backend_kind.value,
                    "category": error.category.value,
                    "is_retryable": error.is_retryable,
                    "status_code": error.status_code,
                    "error": str(e),
                },
            )
            raise error from e

        logger.debug(
            "chat_stream_opened",
            extra={
                "model": model_id,
                "backend_kind": self._backend_kind.value,
                "correlation_id": correlation_id,
            },
        )
        return RetryingStream(
            stream, self._retry_config, model_id=model_id, correlation_id=correlation_id
        )

    async def __aenter__(self) -> LLMClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the shared transport. Closes it for every copied handle too."""
        if self._http.is_closed:
            return
        await self._http.aclose()
        logger.debug("llm_client_closed", extra={"backend_kind": self._backend_kind.value})


class RetryingStream:
    """Async iterator that classifies each failing pull.

    A failure on one pull is raised as ``RetryableError`` and the
    underlying iterator is left open, so the caller may keep pulling when
    the backend can continue.

    Callers must close the stream, with ``async with`` or ``aclose()``, unless
    they iterate it to the end. A stream dropped unclosed keeps its HTTP
    response, and the pooled connection, open until garbage collection.
    """

    def __init__(
        self,
        stream: AsyncIterator[ChatCompletionMessage],
        retry_config: RetryConfig,
        *,
        model_id: ModelId | None = None,
        correlation_id: str | None = None,
    ) -> None:
        self._stream = stream
        self._iterator = stream.__aiter__()
        self._retry_config = retry_config
        self._model_id = model_id
        self.correlation_id = correlation_id or generate_correlation_id()
        self._closed = False
        self.delivered = 0
        self.failures = 0

    def __aiter__(self) -> RetryingStream:
        return self

    async def __anext__(self) -> ChatCompletionMessage:
        if self._closed:
            raise StopAsyncIteration
        try:
            message = await self._iterator.__anext__()
        except StopAsyncIteration:
            raise
        except Exception as e:
            raise_if_cancelled(e)
            self.failures += 1
            error = into_retry(e, self._retry_config)
            logger.warning(
                "chat_stream_item_failed",
                extra={
                    "model": self._model_id,
                    "correlation_id": self.correlation_id,
                    "delivered": self.delivered,
                    "category": error.category.value,
                    "is_retryable": error.is_retryable,
                    "error": str(e),
                },
            )
            raise error from e

        self.delivered += 1
        return message

    @property
    def closed(self) -> bool:
        return self._closed

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await aclose_if_supported(self._iterator)
        logger.debug(
            "chat_stream_closed",
            extra={
                "model": self._model_id,
                "correlation_id": self.correlation_id,
                "delivered": self.delivered,
                "failures": self.failures,
            },
        )

    async def __aenter__(self) -> RetryingStream:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()
