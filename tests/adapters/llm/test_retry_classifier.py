"""Tests for the retry classifier."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from llm_facade.adapters.llm.retry import into_retry
from llm_facade.config import RetryConfig
from llm_facade.domain.exceptions import (
    EmptyResponseError,
    ErrorCategory,
    ProviderResponseError,
    ResponseDecodeError,
    RetryableError,
    StreamEventError,
)


def _status_error(status_code: int, headers: dict[str, str] | None = None) -> ProviderResponseError:
    return ProviderResponseError(
        f"HTTP {status_code}", status_code=status_code, provider="openai", headers=headers
    )


class TestStatusClassification:
    @pytest.mark.parametrize("status_code", [408, 429, 500, 502, 503, 504, 520, 522, 529])
    def test_default_retry_codes_are_retryable(self, retry_config, status_code) -> None:
        error = into_retry(_status_error(status_code), retry_config)
        assert error.category is ErrorCategory.STATUS
        assert error.is_retryable
        assert error.status_code == status_code

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404, 422])
    def test_other_codes_are_fatal(self, retry_config, status_code) -> None:
        error = into_retry(_status_error(status_code), retry_config)
        assert not error.is_retryable
        assert error.status_code == status_code

    def test_custom_retry_codes(self) -> None:
        config = RetryConfig(retry_status_codes=[418])
        assert into_retry(_status_error(418), config).is_retryable
        assert not into_retry(_status_error(503), config).is_retryable

    def test_retry_after_seconds(self, retry_config) -> None:
        error = into_retry(_status_error(429, {"Retry-After": "12"}), retry_config)
        assert error.retry_after == 12.0
        assert error.suggested_delay(0) == 12.0

    def test_httpx_status_error(self, retry_config) -> None:
        request = httpx.Request("GET", "https://api.openai.com/v1/models")
        response = httpx.Response(503, request=request, headers={"retry-after": "2"})
        cause = httpx.HTTPStatusError("unavailable", request=request, response=response)

        error = into_retry(cause, retry_config)

        assert error.category is ErrorCategory.STATUS
        assert error.is_retryable
        assert error.retry_after == 2.0


class TestTransportClassification:
    @pytest.mark.parametrize(
        "cause",
        [
            httpx.ConnectError("refused"),
            httpx.ReadTimeout("slow"),
            httpx.RemoteProtocolError("peer closed connection"),
            ConnectionError("reset"),
            TimeoutError("timed out"),
        ],
    )
    def test_transport_failures_are_retryable(self, retry_config, cause) -> None:
        error = into_retry(cause, retry_config)
        assert error.category is ErrorCategory.TRANSPORT
        assert error.is_retryable

    def test_too_many_redirects_is_fatal(self, retry_config) -> None:
        error = into_retry(httpx.TooManyRedirects("loop"), retry_config)
        assert error.category is ErrorCategory.REDIRECT
        assert not error.is_retryable


class TestStreamClassification:
    @pytest.mark.parametrize("error_type", ["overloaded_error", "rate_limit_error", "api_error"])
    def test_transient_event_types(self, retry_config, error_type) -> None:
        cause = StreamEventError("busy", provider="anthropic", error_type=error_type)
        error = into_retry(cause, retry_config)
        assert error.category is ErrorCategory.STREAM_EVENT
        assert error.is_retryable

    def test_event_status_code_in_list(self, retry_config) -> None:
        cause = StreamEventError("upstream", provider="openai", status_code=502)
        assert into_retry(cause, retry_config).is_retryable

    def test_invalid_request_event_is_fatal(self, retry_config) -> None:
        cause = StreamEventError(
            "bad", provider="anthropic", error_type="invalid_request_error", status_code=400
        )
        assert not into_retry(cause, retry_config).is_retryable

    def test_empty_response_is_retryable(self, retry_config) -> None:
        error = into_retry(EmptyResponseError("nothing", provider="openai"), retry_config)
        assert error.category is ErrorCategory.EMPTY_RESPONSE
        assert error.is_retryable

    def test_decode_error_is_fatal(self, retry_config) -> None:
        error = into_retry(ResponseDecodeError("garbled", provider="openai"), retry_config)
        assert error.category is ErrorCategory.DECODE
        assert not error.is_retryable


class TestClassifierContract:
    def test_unknown_errors_are_fatal(self, retry_config) -> None:
        error = into_retry(KeyError("choices"), retry_config)
        assert error.category is ErrorCategory.OTHER
        assert not error.is_retryable
        assert isinstance(error.cause, KeyError)

    def test_classified_error_is_returned_unchanged(self, retry_config) -> None:
        first = into_retry(_status_error(503), retry_config)
        assert into_retry(first, RetryConfig(retry_status_codes=[])) is first

    def test_cancellation_is_never_classified(self, retry_config) -> None:
        with pytest.raises(asyncio.CancelledError):
            into_retry(asyncio.CancelledError(), retry_config)

    def test_hints_come_from_config(self) -> None:
        config = RetryConfig(initial_backoff_ms=500, min_delay_ms=0, max_retry_attempts=2)
        error = into_retry(_status_error(503), config)
        assert isinstance(error, RetryableError)
        assert error.suggested_delay(1) == pytest.approx(1.0)
        assert error.attempts_remaining(1) == 1
