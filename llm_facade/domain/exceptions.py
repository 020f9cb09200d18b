"""Exceptions raised by the client facade and its provider backends.

Backends raise the specific provider errors below. The facade passes every
runtime failure through the retry classifier, so callers only ever see
``RetryableError`` from ``models()``, ``model()`` and ``chat()``.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any


class FacadeError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(FacadeError):
    """Raised when settings cannot be loaded or validated."""

    pass


class ConstructionError(FacadeError):
    """Raised when the selected backend cannot be initialized."""

    def __init__(self, message: str, *, url: str, details: dict | None = None) -> None:
        super().__init__(message, details)
        self.url = url


class ProviderResponseError(FacadeError):
    """Raised when a provider answers with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        provider: str,
        body: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, {"status_code": status_code, "provider": provider})
        self.status_code = status_code
        self.provider = provider
        self.body = body
        self.headers = dict(headers or {})


class StreamEventError(FacadeError):
    """Raised for an error event delivered inside an otherwise healthy stream."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        error_type: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            {"provider": provider, "error_type": error_type, "status_code": status_code},
        )
        self.provider = provider
        self.error_type = error_type
        self.status_code = status_code


class EmptyResponseError(FacadeError):
    """Raised when a stream ends before producing a single message."""

    def __init__(self, message: str, *, provider: str) -> None:
        super().__init__(message, {"provider": provider})
        self.provider = provider


class ResponseDecodeError(FacadeError):
    """Raised when a provider payload is not valid JSON or has the wrong shape."""

    def __init__(self, message: str, *, provider: str, payload: str | None = None) -> None:
        super().__init__(message, {"provider": provider})
        self.provider = provider
        self.payload = payload


class ErrorCategory(str, Enum):
    """Where a classified failure came from."""

    STATUS = "status"
    TRANSPORT = "transport"
    REDIRECT = "redirect"
    STREAM_EVENT = "stream_event"
    EMPTY_RESPONSE = "empty_response"
    DECODE = "decode"
    OTHER = "other"


class RetryableError(FacadeError):
    """A backend failure classified for the caller's retry policy.

    ``is_retryable`` says whether re-invoking the same operation may succeed.
    The original exception is available as ``cause`` and as ``__cause__``.
    """

    def __init__(
        self,
        cause: BaseException,
        *,
        category: ErrorCategory,
        is_retryable: bool,
        status_code: int | None = None,
        retry_after: float | None = None,
        initial_backoff_ms: int = 200,
        min_delay_ms: int = 1000,
        backoff_factor: int = 2,
        max_retry_attempts: int = 0,
        max_delay_secs: float | None = None,
    ) -> None:
        kind = "retryable" if is_retryable else "fatal"
        message = f"{kind} {category.value} error: {cause}"
        super().__init__(
            message,
            {
                "category": category.value,
                "is_retryable": is_retryable,
                "status_code": status_code,
                "retry_after": retry_after,
            },
        )
        self.cause = cause
        self.category = category
        self.is_retryable = is_retryable
        self.status_code = status_code
        self.retry_after = retry_after
        self.max_retry_attempts = max_retry_attempts
        self._initial_backoff_ms = initial_backoff_ms
        self._min_delay_ms = min_delay_ms
        self._backoff_factor = backoff_factor
        self._max_delay_secs = max_delay_secs
        self.__cause__ = cause

    def suggested_delay(self, attempt: int) -> float:
        """Seconds to wait before the given (0-indexed) retry attempt.

        Exponential from the initial backoff, never below the configured
        minimum or a server-sent ``Retry-After``, capped by the maximum delay.
        """
        if attempt < 0:
            msg = f"attempt must be non-negative, got {attempt}"
            raise ValueError(msg)
        delay_ms = self._initial_backoff_ms * (self._backoff_factor**attempt)
        delay = max(delay_ms, self._min_delay_ms) / 1000
        if self._max_delay_secs is not None:
            delay = min(delay, self._max_delay_secs)
        if self.retry_after is not None:
            delay = max(delay, self.retry_after)
        return delay

    def attempts_remaining(self, attempts_made: int) -> int:
        if not self.is_retryable:
            return 0
        return max(0, self.max_retry_attempts - attempts_made)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "cause_type": type(self.cause).__name__,
            **self.details,
        }
