from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from llm_facade.core.logging_utils import setup_json_logging
from llm_facade.domain.exceptions import ConfigurationError

from .infrastructure import HttpConfig, RetryConfig
from .llm import ANTHROPIC_URL, OPENAI_URL, ProviderConfig, ProviderKind

logger = logging.getLogger(__name__)

# Checked in order; the first variable that is set wins.
_WELL_KNOWN_PROVIDER_KEYS: tuple[tuple[str, str], ...] = (
    ("FORGE_KEY", "forge"),
    ("OPENROUTER_API_KEY", "openrouter"),
    ("REQUESTY_API_KEY", "requesty"),
    ("XAI_API_KEY", "xai"),
    ("OPENAI_API_KEY", "openai"),
    ("ANTHROPIC_API_KEY", "anthropic"),
)


def detect_provider(env: Mapping[str, str] | None = None) -> ProviderConfig:
    """Resolve the provider from the environment.

    ``LLM_PROVIDER_URL``/``LLM_PROVIDER_KIND`` select a provider explicitly.
    Otherwise the first well-known API key variable that is set decides;
    ``OPENAI_URL`` and ``ANTHROPIC_URL`` override the default hosts.

    Raises:
        ConfigurationError: If no provider can be resolved or it is invalid.
    """
    source = os.environ if env is None else env

    try:
        if source.get("LLM_PROVIDER_URL") or source.get("LLM_PROVIDER_KIND"):
            return ProviderConfig(
                kind=source.get("LLM_PROVIDER_KIND") or ProviderKind.OPENAI,
                url=source.get("LLM_PROVIDER_URL") or OPENAI_URL,
                key=source.get("LLM_PROVIDER_KEY"),
            )

        for variable, name in _WELL_KNOWN_PROVIDER_KEYS:
            key = source.get(variable)
            if not key:
                continue
            if name == "openai":
                return ProviderConfig.openai_compat(source.get("OPENAI_URL") or OPENAI_URL, key)
            if name == "anthropic":
                return ProviderConfig.anthropic(key, url=source.get("ANTHROPIC_URL") or ANTHROPIC_URL)
            return getattr(ProviderConfig, name)(key)
    except ValidationError as exc:
        msg = f"Invalid provider configuration: {exc}"
        raise ConfigurationError(msg) from exc

    variables = ["LLM_PROVIDER_URL"] + [variable for variable, _ in _WELL_KNOWN_PROVIDER_KEYS]
    msg = "No LLM provider configured"
    raise ConfigurationError(msg, details={"checked": variables})


class FacadeSettings(BaseSettings):
    """Client settings loaded automatically from environment variables.

    Nested models are populated by matching validation_alias on each field.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    client_version: str = Field(
        default="dev", validation_alias=AliasChoices("LLM_CLIENT_VERSION", "APP_VERSION")
    )
    http: HttpConfig = Field(default_factory=HttpConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        log_level = str(value or "INFO").upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {valid_levels}"
            raise ValueError(msg)
        return log_level

    @field_validator("client_version", mode="before")
    @classmethod
    def _validate_client_version(cls, value: Any) -> str:
        version = str(value or "dev").strip()
        if len(version) > 64 or any(ch in version for ch in " \r\n"):
            msg = "Client version must be a short token without whitespace"
            raise ValueError(msg)
        return version

    @model_validator(mode="before")
    @classmethod
    def _build_nested_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Build nested config objects from flat environment variables.

        Constructor arguments take precedence over the process environment.
        """
        if not isinstance(data, dict):
            return data

        result = dict(data)
        merged_source = {**dict(os.environ), **data}

        for field_name, field_info in cls.model_fields.items():
            annotation = field_info.annotation
            if not isinstance(annotation, type) or not issubclass(annotation, BaseModel):
                continue

            nested_data: dict[str, Any] = {}
            for nested_field_name, nested_field in annotation.model_fields.items():
                env_value = cls._resolve_env_value(merged_source, nested_field)
                if env_value is not None:
                    nested_data[nested_field_name] = env_value

            if nested_data:
                if field_name in result and isinstance(result[field_name], dict):
                    result[field_name] = {**nested_data, **result[field_name]}
                elif field_name not in result:
                    result[field_name] = nested_data

        return result

    @staticmethod
    def _resolve_env_value(data: dict[str, Any], field: Any) -> Any | None:
        """Resolve environment variable value for a field using its aliases."""
        aliases: list[str] = []
        alias = field.validation_alias
        if isinstance(alias, AliasChoices):
            for choice in alias.choices:
                if isinstance(choice, str):
                    aliases.append(choice)
        elif isinstance(alias, str):
            aliases.append(alias)
        if field.alias:
            aliases.append(field.alias)

        for name in aliases:
            if name in data:
                return data[name]
        return None

    def provider(self, env: Mapping[str, str] | None = None) -> ProviderConfig:
        return detect_provider(env)


def load_settings(*, configure_logging: bool = False, **overrides: Any) -> FacadeSettings:
    """Load client settings from environment variables and ``.env``.

    Args:
        configure_logging: Install JSON logging at ``settings.log_level``.
            Applications call this once at startup; libraries leave it off.
        **overrides: Field values that take precedence over the environment.

    Raises:
        ConfigurationError: If configuration validation fails.
    """
    try:
        settings = FacadeSettings(**overrides)
    except ValidationError as exc:
        logger.error("settings_validation_failed", extra={"error_count": exc.error_count()})
        msg = f"Configuration validation failed: {exc}"
        raise ConfigurationError(msg) from exc

    if configure_logging:
        setup_json_logging(settings.log_level)
    return settings
