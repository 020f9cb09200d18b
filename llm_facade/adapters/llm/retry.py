"""Classify backend failures for the caller's retry policy.

``into_retry`` only labels an error; it never sleeps and never re-issues a
request. Callers decide whether and when to retry from the returned
``RetryableError``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from llm_facade.core.async_utils import raise_if_cancelled
from llm_facade.core.http_utils import parse_retry_after
from llm_facade.domain.exceptions import (
    EmptyResponseError,
    ErrorCategory,
    ProviderResponseError,
    ResponseDecodeError,
    RetryableError,
    StreamEventError,
)

if TYPE_CHECKING:
    from llm_facade.config import RetryConfig

logger = logging.getLogger(__name__)

# Stream error types that signal a transient provider-side condition
RETRYABLE_STREAM_ERROR_TYPES = frozenset({"overloaded_error", "rate_limit_error", "api_error"})


def into_retry(error: BaseException, retry_config: RetryConfig) -> RetryableError:
    """Wrap ``error`` in a ``RetryableError`` labelled per ``retry_config``.

    Already-classified errors are returned unchanged.

    Raises:
        asyncio.CancelledError: Cancellation is re-raised, never classified.
    """
    raise_if_cancelled(error)
    if isinstance(error, RetryableError):
        return error

    category, retryable, status_code, retry_after = _classify(error, retry_config)
    classified = RetryableError(
        error,
        category=category,
        is_retryable=retryable,
        status_code=status_code,
        retry_after=retry_after,
        initial_backoff_ms=retry_config.initial_backoff_ms,
        min_delay_ms=retry_config.min_delay_ms,
        backoff_factor=retry_config.backoff_factor,
        max_retry_attempts=retry_config.max_retry_attempts,
        max_delay_secs=retry_config.max_delay_secs,
    )
    logger.debug(
        "error_classified",
        extra={
            "error_type": type(error).__name__,
            "category": category.value,
            "is_retryable": retryable,
            "status_code": status_code,
            "retry_after": retry_after,
        },
    )
    return classified


def _classify(
    error: BaseException, retry_config: RetryConfig
) -> tuple[ErrorCategory, bool, int | None, float | None]:
    if isinstance(error, ProviderResponseError):
        return (
            ErrorCategory.STATUS,
            retry_config.is_retry_status(error.status_code),
            error.status_code,
            parse_retry_after(error.headers),
        )

    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
        return (
            ErrorCategory.STATUS,
            retry_config.is_retry_status(status_code),
            status_code,
            parse_retry_after(error.response.headers),
        )

    # Redirect loops will not resolve on their own.
    if isinstance(error, httpx.TooManyRedirects):
        return ErrorCategory.REDIRECT, False, None, None

    if isinstance(error, (httpx.TransportError, ConnectionError, TimeoutError)):
        return ErrorCategory.TRANSPORT, True, None, None

    if isinstance(error, StreamEventError):
        retryable = (
            error.status_code is not None and retry_config.is_retry_status(error.status_code)
        ) or error.error_type in RETRYABLE_STREAM_ERROR_TYPES
        return ErrorCategory.STREAM_EVENT, retryable, error.status_code, None

    if isinstance(error, EmptyResponseError):
        return ErrorCategory.EMPTY_RESPONSE, True, None, None

    if isinstance(error, ResponseDecodeError):
        return ErrorCategory.DECODE, False, None, None

    return ErrorCategory.OTHER, False, None, None
