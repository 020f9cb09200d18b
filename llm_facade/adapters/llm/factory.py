"""Backend factory for creating provider-specific backends.

This module picks the backend variant from a ``ProviderConfig``: every
OpenAI-compatible provider (OpenAI, OpenRouter, Requesty, xAI, custom URLs)
is served by ``OpenAIClient``; Anthropic by ``AnthropicClient``.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from llm_facade.config import ProviderKind
from llm_facade.core.logging_utils import get_logger

if TYPE_CHECKING:
    import httpx

    from llm_facade.adapters.llm.protocol import BackendProtocol
    from llm_facade.config import ProviderConfig

logger = get_logger(__name__)


class BackendKind(str, Enum):
    """Backend variant serving a provider."""

    OPENAI_COMPAT = "openai_compat"
    ANTHROPIC = "anthropic"

    @classmethod
    def for_provider(cls, provider: ProviderConfig) -> BackendKind:
        if provider.kind is ProviderKind.ANTHROPIC:
            return cls.ANTHROPIC
        return cls.OPENAI_COMPAT


class BackendFactory:
    """Factory for creating backends based on provider configuration.

    Usage:
        backend = BackendFactory.create(provider, http_client, version="1.0")
        models = await backend.list_models()
    """

    @staticmethod
    def create(
        provider: ProviderConfig,
        http_client: httpx.AsyncClient,
        version: str,
        *,
        debug_payloads: bool = False,
    ) -> BackendProtocol:
        """Create the backend for ``provider``.

        Args:
            provider: Provider connection parameters.
            http_client: Shared transport; the backend does not own it.
            version: Client version forwarded to the provider.
            debug_payloads: Log redacted request headers at debug level.

        Returns:
            Backend implementing BackendProtocol.

        Raises:
            ValueError: If the backend rejects the provider (bad URL, missing key).
        """
        kind = BackendKind.for_provider(provider)

        logger.info(
            "backend_factory_creating",
            extra={"backend_kind": kind.value, "url": provider.url},
        )

        if kind is BackendKind.ANTHROPIC:
            return BackendFactory._create_anthropic(provider, http_client, version, debug_payloads)
        return BackendFactory._create_openai(provider, http_client, version, debug_payloads)

    @staticmethod
    def _create_openai(
        provider: ProviderConfig,
        http_client: httpx.AsyncClient,
        version: str,
        debug_payloads: bool,
    ) -> BackendProtocol:
        """Create an OpenAI-compatible backend."""
        from llm_facade.adapters.llm.openai import OpenAIClient

        return OpenAIClient(
            provider, http_client, version=version, debug_payloads=debug_payloads
        )

    @staticmethod
    def _create_anthropic(
        provider: ProviderConfig,
        http_client: httpx.AsyncClient,
        version: str,
        debug_payloads: bool,
    ) -> BackendProtocol:
        """Create an Anthropic backend."""
        from llm_facade.adapters.llm.anthropic import AnthropicClient

        return AnthropicClient(
            provider, http_client, version=version, debug_payloads=debug_payloads
        )
