"""Tests for RetryableError retry hints."""

from __future__ import annotations

import pytest

from llm_facade.domain.exceptions import (
    ErrorCategory,
    FacadeError,
    ProviderResponseError,
    RetryableError,
)


def _error(**kwargs) -> RetryableError:
    cause = ProviderResponseError("boom", status_code=503, provider="openai")
    defaults = {"category": ErrorCategory.STATUS, "is_retryable": True, "max_retry_attempts": 8}
    defaults.update(kwargs)
    return RetryableError(cause, **defaults)


class TestRetryableError:
    def test_is_facade_error_and_chains_cause(self) -> None:
        error = _error()
        assert isinstance(error, FacadeError)
        assert error.__cause__ is error.cause
        assert "retryable status error" in str(error)

    def test_fatal_message(self) -> None:
        error = _error(is_retryable=False)
        assert str(error).startswith("fatal status error")

    def test_suggested_delay_is_floored_at_min_delay(self) -> None:
        error = _error()
        # 200ms * 2**0 and 200ms * 2**2 are both under the 1s floor
        assert error.suggested_delay(0) == 1.0
        assert error.suggested_delay(2) == 1.0

    def test_suggested_delay_grows_exponentially(self) -> None:
        error = _error()
        assert error.suggested_delay(3) == pytest.approx(1.6)
        assert error.suggested_delay(4) == pytest.approx(3.2)

    def test_suggested_delay_capped(self) -> None:
        error = _error(max_delay_secs=2.0)
        assert error.suggested_delay(10) == 2.0

    def test_retry_after_is_a_lower_bound(self) -> None:
        error = _error(retry_after=7.0, max_delay_secs=2.0)
        assert error.suggested_delay(0) == 7.0

    def test_negative_attempt_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            _error().suggested_delay(-1)

    def test_attempts_remaining(self) -> None:
        error = _error(max_retry_attempts=3)
        assert error.attempts_remaining(0) == 3
        assert error.attempts_remaining(2) == 1
        assert error.attempts_remaining(5) == 0

    def test_fatal_error_has_no_attempts(self) -> None:
        assert _error(is_retryable=False).attempts_remaining(0) == 0

    def test_to_dict(self) -> None:
        data = _error(retry_after=1.5).to_dict()
        assert data["cause_type"] == "ProviderResponseError"
        assert data["category"] == "status"
        assert data["is_retryable"] is True
        assert data["retry_after"] == 1.5
