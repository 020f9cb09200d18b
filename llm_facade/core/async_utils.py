"""Async helper utilities."""

from __future__ import annotations

import asyncio
from typing import Any


def raise_if_cancelled(exc: BaseException) -> None:
    """Re-raise ``asyncio.CancelledError`` instances to preserve cancellation semantics."""

    if isinstance(exc, asyncio.CancelledError):  # pragma: no cover - simple guard
        raise exc


async def aclose_if_supported(iterator: Any) -> None:
    """Close an async iterator if it supports ``aclose``.

    Used when a consumer abandons a stream early so that the underlying
    HTTP response is returned to the pool.
    """
    aclose = getattr(iterator, "aclose", None)
    if aclose is not None:
        await aclose()
