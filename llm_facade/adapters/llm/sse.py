"""Minimal server-sent events reader over an httpx streaming response."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from llm_facade.domain.exceptions import ResponseDecodeError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator

    import httpx

DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class ServerSentEvent:
    event: str | None
    data: str

    @property
    def is_done(self) -> bool:
        return self.data.strip() == DONE_SENTINEL

    def json(self, provider: str) -> dict[str, Any]:
        try:
            payload = json.loads(self.data)
        except json.JSONDecodeError as e:
            msg = f"Invalid JSON in {provider} stream event: {e}"
            raise ResponseDecodeError(msg, provider=provider, payload=self.data) from e
        if not isinstance(payload, dict):
            msg = f"Unexpected {provider} stream event payload type: {type(payload).__name__}"
            raise ResponseDecodeError(msg, provider=provider, payload=self.data)
        return payload


async def iter_sse(response: httpx.Response) -> AsyncIterator[ServerSentEvent]:
    """Yield events from a ``text/event-stream`` body.

    Multi-line ``data:`` fields are joined with newlines; comments and
    ``id``/``retry`` fields are ignored.
    """
    event: str | None = None
    data_lines: list[str] = []

    async for line in response.aiter_lines():
        if not line:
            if data_lines:
                yield ServerSentEvent(event=event, data="\n".join(data_lines))
            event = None
            data_lines = []
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event = value
        elif field == "data":
            data_lines.append(value)

    if data_lines:
        yield ServerSentEvent(event=event, data="\n".join(data_lines))


class ResponseStream:
    """Message iterator that owns its streaming HTTP response.

    Closing releases the connection even when no item was ever pulled; an
    unstarted async generator would skip its own cleanup. A stream that is
    dropped without ``aclose()`` leaves the response open.
    """

    def __init__(self, response: httpx.Response, messages: AsyncGenerator[Any, None]) -> None:
        self._response = response
        self._messages = messages

    def __aiter__(self) -> ResponseStream:
        return self

    async def __anext__(self) -> Any:
        return await self._messages.__anext__()

    async def aclose(self) -> None:
        try:
            await self._messages.aclose()
        finally:
            await self._response.aclose()
