from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ._validators import _parse_status_codes

DEFAULT_RETRY_STATUS_CODES: tuple[int, ...] = (408, 429, 500, 502, 503, 504, 520, 522, 529)


class HttpConfig(BaseModel):
    """Shared HTTP transport settings, applied once when a client is built."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    connect_timeout: float = Field(
        default=30.0,
        validation_alias="LLM_HTTP_CONNECT_TIMEOUT",
        description="Seconds allowed to establish a connection",
    )
    read_timeout: float = Field(
        default=900.0,
        validation_alias="LLM_HTTP_READ_TIMEOUT",
        description="Seconds allowed between two reads; long for slow streams",
    )
    pool_idle_timeout: float = Field(
        default=90.0,
        validation_alias="LLM_HTTP_POOL_IDLE_TIMEOUT",
        description="Seconds an idle keep-alive connection is kept in the pool",
    )
    pool_max_idle_per_host: int = Field(
        default=5,
        validation_alias="LLM_HTTP_POOL_MAX_IDLE_PER_HOST",
        description="Maximum idle keep-alive connections retained",
    )
    max_redirects: int = Field(
        default=10,
        validation_alias="LLM_HTTP_MAX_REDIRECTS",
        description="Hard cap on followed redirects; exceeding it fails the request",
    )

    @field_validator("connect_timeout", "read_timeout", "pool_idle_timeout", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any, info: ValidationInfo) -> float:
        if value in (None, ""):
            return float(cls.model_fields[info.field_name].default)
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = f"{info.field_name.replace('_', ' ')} must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0:
            msg = f"{info.field_name.replace('_', ' ')} must be positive"
            raise ValueError(msg)
        if parsed > 86400:
            msg = f"{info.field_name.replace('_', ' ')} must be 86400 seconds or less"
            raise ValueError(msg)
        return parsed

    @field_validator("pool_max_idle_per_host", "max_redirects", mode="before")
    @classmethod
    def _validate_count(cls, value: Any, info: ValidationInfo) -> int:
        if value in (None, ""):
            return int(cls.model_fields[info.field_name].default)
        try:
            parsed = int(str(value))
        except ValueError as exc:
            msg = f"{info.field_name.replace('_', ' ')} must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0:
            msg = f"{info.field_name.replace('_', ' ')} must be non-negative"
            raise ValueError(msg)
        return parsed


class RetryConfig(BaseModel):
    """Inputs to error classification and the retry hints attached to errors.

    The client never retries on its own; callers read these values back from
    the classified error to drive their own policy.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    initial_backoff_ms: int = Field(default=200, validation_alias="LLM_RETRY_INITIAL_BACKOFF_MS")
    min_delay_ms: int = Field(default=1000, validation_alias="LLM_RETRY_MIN_DELAY_MS")
    backoff_factor: int = Field(default=2, validation_alias="LLM_RETRY_BACKOFF_FACTOR")
    max_retry_attempts: int = Field(default=8, validation_alias="LLM_RETRY_MAX_ATTEMPTS")
    retry_status_codes: tuple[int, ...] = Field(
        default=DEFAULT_RETRY_STATUS_CODES,
        validation_alias="LLM_RETRY_STATUS_CODES",
    )
    max_delay_secs: float | None = Field(default=None, validation_alias="LLM_RETRY_MAX_DELAY_SECS")

    @field_validator(
        "initial_backoff_ms",
        "min_delay_ms",
        "backoff_factor",
        "max_retry_attempts",
        mode="before",
    )
    @classmethod
    def _validate_non_negative_int(cls, value: Any, info: ValidationInfo) -> int:
        if value in (None, ""):
            return int(cls.model_fields[info.field_name].default)
        try:
            parsed = int(str(value))
        except ValueError as exc:
            msg = f"{info.field_name.replace('_', ' ')} must be a valid integer"
            raise ValueError(msg) from exc
        if parsed < 0:
            msg = f"{info.field_name.replace('_', ' ')} must be non-negative"
            raise ValueError(msg)
        return parsed

    @field_validator("backoff_factor", mode="after")
    @classmethod
    def _validate_backoff_factor(cls, value: int) -> int:
        if value < 1:
            msg = "Backoff factor must be at least 1"
            raise ValueError(msg)
        return value

    @field_validator("retry_status_codes", mode="before")
    @classmethod
    def _validate_status_codes(cls, value: Any) -> tuple[int, ...]:
        if value is None:
            return DEFAULT_RETRY_STATUS_CODES
        return _parse_status_codes(value)

    @field_validator("max_delay_secs", mode="before")
    @classmethod
    def _validate_max_delay(cls, value: Any) -> float | None:
        if value in (None, ""):
            return None
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "Max retry delay must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0:
            msg = "Max retry delay must be positive"
            raise ValueError(msg)
        return parsed

    def is_retry_status(self, status_code: int) -> bool:
        return status_code in self.retry_status_codes
