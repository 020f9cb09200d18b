"""Backend protocol shared by every provider integration.

The facade only needs two capabilities from a backend: list the models it
offers and open a streamed chat completion.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from llm_facade.domain.models import ChatCompletionMessage, Context, Model, ModelId


@runtime_checkable
class BackendProtocol(Protocol):
    """Protocol defining the interface for provider backends.

    Implementations must tolerate concurrent ``list_models`` calls, including
    while a ``chat`` stream is open.
    """

    @property
    def provider_name(self) -> str:
        """Return the name of the provider protocol (e.g. "openai", "anthropic")."""
        ...

    async def list_models(self) -> list[Model]:
        """Fetch every model the provider offers.

        Raises:
            ProviderResponseError: On a non-success HTTP status.
            ResponseDecodeError: If the listing cannot be parsed.
            httpx.TransportError: On network failures.
        """
        ...

    async def chat(self, model_id: ModelId, context: Context) -> AsyncIterator[ChatCompletionMessage]:
        """Open a streamed chat completion.

        The request is sent, and its status checked, before this coroutine
        returns; setup failures raise here. The returned iterator is lazy and
        may raise on any pull. Closing it releases the connection.
        """
        ...
