"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from typing import Any

import httpx
import pytest

from llm_facade.config import HttpConfig, ProviderConfig, RetryConfig

OPENAI_TEST_KEY = "sk-test-valid-api-key-123456789"
ANTHROPIC_TEST_KEY = "sk-ant-REDACTED"


def sse_body(events: Iterable[dict[str, Any] | str], *, named: bool = False) -> bytes:
    """Encode payloads as a ``text/event-stream`` body.

    With ``named`` the payload's ``type`` is also sent as the ``event:`` field,
    as Anthropic does.
    """
    chunks: list[str] = []
    for event in events:
        data = event if isinstance(event, str) else json.dumps(event)
        prefix = f"event: {event['type']}\n" if named and isinstance(event, dict) else ""
        chunks.append(f"{prefix}data: {data}\n\n")
    return "".join(chunks).encode()


def sse_response(events: Iterable[dict[str, Any] | str], *, named: bool = False) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        content=sse_body(events, named=named),
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig()


@pytest.fixture
def http_config() -> HttpConfig:
    return HttpConfig()


@pytest.fixture
def openai_provider() -> ProviderConfig:
    return ProviderConfig.openai(OPENAI_TEST_KEY)


@pytest.fixture
def anthropic_provider() -> ProviderConfig:
    return ProviderConfig.anthropic(ANTHROPIC_TEST_KEY)


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def mock_http(
    recorded_requests: list[httpx.Request],
) -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an ``httpx.AsyncClient`` whose requests are answered by ``handler``."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        def recording_handler(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            return handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))

    return factory
