"""Shared HTTP transport construction.

One ``httpx.AsyncClient`` is built per facade and handed to whichever
backend is selected, so every request shares one connection pool.
"""

from __future__ import annotations

import logging
from importlib.util import find_spec
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from llm_facade.config import HttpConfig

logger = logging.getLogger(__name__)

# Check for HTTP/2 support
HTTP2_AVAILABLE = find_spec("h2") is not None


def build_timeout(http_config: HttpConfig) -> httpx.Timeout:
    # Writes and pool acquisition are left unbounded; streams are governed by read.
    return httpx.Timeout(
        None,
        connect=http_config.connect_timeout,
        read=http_config.read_timeout,
    )


def build_limits(http_config: HttpConfig) -> httpx.Limits:
    return httpx.Limits(
        max_connections=None,
        max_keepalive_connections=http_config.pool_max_idle_per_host,
        keepalive_expiry=http_config.pool_idle_timeout,
    )


def build_http_client(
    http_config: HttpConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the shared async HTTP client from ``http_config``.

    Redirects are followed up to ``max_redirects``; one more raises
    ``httpx.TooManyRedirects`` instead of looping. No I/O happens here.

    Args:
        http_config: Timeouts, pool limits and redirect cap.
        transport: Optional transport override (tests use ``httpx.MockTransport``).
    """
    client = httpx.AsyncClient(
        timeout=build_timeout(http_config),
        limits=build_limits(http_config),
        http2=HTTP2_AVAILABLE and transport is None,
        follow_redirects=True,
        max_redirects=http_config.max_redirects,
        transport=transport,
    )
    logger.debug(
        "http_transport_built",
        extra={
            "connect_timeout": http_config.connect_timeout,
            "read_timeout": http_config.read_timeout,
            "pool_idle_timeout": http_config.pool_idle_timeout,
            "pool_max_idle_per_host": http_config.pool_max_idle_per_host,
            "max_redirects": http_config.max_redirects,
            "http2": HTTP2_AVAILABLE and transport is None,
        },
    )
    return client
