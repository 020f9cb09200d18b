from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ._validators import _ensure_api_key, validate_base_url

if TYPE_CHECKING:
    from typing import Self

OPENAI_URL = "https://api.openai.com/v1/"
OPENROUTER_URL = "https://openrouter.ai/api/v1/"
REQUESTY_URL = "https://router.requesty.ai/v1/"
XAI_URL = "https://api.x.ai/v1/"
FORGE_URL = "https://antinomy.ai/api/v1/"
ANTHROPIC_URL = "https://api.anthropic.com/v1/"


class ProviderKind(str, Enum):
    """Wire protocol family spoken by a provider."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class ProviderConfig(BaseModel):
    """Connection parameters for exactly one LLM provider.

    The ``kind`` discriminant decides which backend protocol is used; every
    OpenAI-compatible host (OpenAI, OpenRouter, Requesty, xAI, local servers)
    shares ``ProviderKind.OPENAI``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: ProviderKind = Field(default=ProviderKind.OPENAI, validation_alias="LLM_PROVIDER_KIND")
    url: str = Field(default=OPENAI_URL, validation_alias="LLM_PROVIDER_URL")
    key: str | None = Field(default=None, validation_alias="LLM_PROVIDER_KEY")
    extra_headers: dict[str, str] | None = Field(default=None)

    @field_validator("kind", mode="before")
    @classmethod
    def _validate_kind(cls, value: Any) -> ProviderKind:
        if isinstance(value, ProviderKind):
            return value
        kind = str(value or "openai").lower().strip()
        try:
            return ProviderKind(kind)
        except ValueError as exc:
            valid = sorted(k.value for k in ProviderKind)
            msg = f"Invalid provider kind: {kind}. Must be one of {valid}"
            raise ValueError(msg) from exc

    @field_validator("url", mode="before")
    @classmethod
    def _validate_url(cls, value: Any) -> str:
        return validate_base_url(str(value or ""), name="Provider")

    @field_validator("key", mode="before")
    @classmethod
    def _validate_key(cls, value: Any) -> str | None:
        if value in (None, ""):
            return None
        return _ensure_api_key(str(value), name="Provider")

    @field_validator("extra_headers", mode="before")
    @classmethod
    def _validate_extra_headers(cls, value: Any) -> dict[str, str] | None:
        if value in (None, "", {}):
            return None
        if not isinstance(value, dict):
            msg = "Extra headers must be a mapping of header name to value"
            raise ValueError(msg)
        headers: dict[str, str] = {}
        for name, header_value in value.items():
            header_name = str(name).strip()
            if not header_name or any(ch in header_name for ch in " \r\n:"):
                msg = f"Invalid header name: {name!r}"
                raise ValueError(msg)
            text = str(header_value)
            if "\r" in text or "\n" in text:
                msg = f"Header {header_name} contains a line break"
                raise ValueError(msg)
            headers[header_name] = text
        return headers

    @model_validator(mode="after")
    def _ensure_key_when_required(self) -> Self:
        if self.key_required() and not self.key:
            msg = "Anthropic API key is required"
            raise ValueError(msg)
        return self

    def is_openai_family(self) -> bool:
        return self.kind is ProviderKind.OPENAI

    def is_anthropic(self) -> bool:
        return self.kind is ProviderKind.ANTHROPIC

    def key_required(self) -> bool:
        # OpenAI-compatible local servers commonly run without authentication.
        return self.kind is ProviderKind.ANTHROPIC

    @classmethod
    def openai(cls, key: str) -> ProviderConfig:
        return cls(kind=ProviderKind.OPENAI, url=OPENAI_URL, key=key)

    @classmethod
    def openrouter(cls, key: str) -> ProviderConfig:
        return cls(kind=ProviderKind.OPENAI, url=OPENROUTER_URL, key=key)

    @classmethod
    def requesty(cls, key: str) -> ProviderConfig:
        return cls(kind=ProviderKind.OPENAI, url=REQUESTY_URL, key=key)

    @classmethod
    def xai(cls, key: str) -> ProviderConfig:
        return cls(kind=ProviderKind.OPENAI, url=XAI_URL, key=key)

    @classmethod
    def forge(cls, key: str) -> ProviderConfig:
        return cls(kind=ProviderKind.OPENAI, url=FORGE_URL, key=key)

    @classmethod
    def openai_compat(
        cls,
        url: str,
        key: str | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> ProviderConfig:
        """Any server that speaks the OpenAI chat completions protocol."""
        return cls(kind=ProviderKind.OPENAI, url=url, key=key, extra_headers=extra_headers)

    @classmethod
    def anthropic(cls, key: str, url: str = ANTHROPIC_URL) -> ProviderConfig:
        return cls(kind=ProviderKind.ANTHROPIC, url=url, key=key)
