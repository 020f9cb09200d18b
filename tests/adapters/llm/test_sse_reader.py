"""Tests for the server-sent events reader."""

from __future__ import annotations

import httpx
import pytest

from llm_facade.adapters.llm.sse import ServerSentEvent, iter_sse
from llm_facade.domain.exceptions import ResponseDecodeError


async def _collect(body: bytes) -> list[ServerSentEvent]:
    response = httpx.Response(200, content=body)
    return [event async for event in iter_sse(response)]


@pytest.mark.asyncio
async def test_events_split_on_blank_lines() -> None:
    events = await _collect(b'data: {"a": 1}\n\ndata: {"a": 2}\n\n')

    assert [event.json("test") for event in events] == [{"a": 1}, {"a": 2}]


@pytest.mark.asyncio
async def test_event_names_comments_and_multiline_data() -> None:
    body = b": keep-alive\n\nevent: ping\ndata: line one\ndata: line two\nid: 7\n\n"

    events = await _collect(body)

    assert events == [ServerSentEvent(event="ping", data="line one\nline two")]


@pytest.mark.asyncio
async def test_trailing_event_without_blank_line() -> None:
    events = await _collect(b"data: [DONE]")

    assert len(events) == 1
    assert events[0].is_done


def test_invalid_json_raises_decode_error() -> None:
    event = ServerSentEvent(event=None, data="{not json")

    with pytest.raises(ResponseDecodeError, match="Invalid JSON in openai stream event"):
        event.json("openai")


def test_non_object_payload_rejected() -> None:
    with pytest.raises(ResponseDecodeError, match="payload type: list"):
        ServerSentEvent(event=None, data="[1, 2]").json("openai")
