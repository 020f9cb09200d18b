from __future__ import annotations

from ._validators import _ensure_api_key, validate_base_url
from .infrastructure import DEFAULT_RETRY_STATUS_CODES, HttpConfig, RetryConfig
from .llm import (
    ANTHROPIC_URL,
    FORGE_URL,
    OPENAI_URL,
    OPENROUTER_URL,
    REQUESTY_URL,
    XAI_URL,
    ProviderConfig,
    ProviderKind,
)
from .settings import FacadeSettings, detect_provider, load_settings

__all__ = [
    "ANTHROPIC_URL",
    "DEFAULT_RETRY_STATUS_CODES",
    "FORGE_URL",
    "OPENAI_URL",
    "OPENROUTER_URL",
    "REQUESTY_URL",
    "XAI_URL",
    "FacadeSettings",
    "HttpConfig",
    "ProviderConfig",
    "ProviderKind",
    "RetryConfig",
    "_ensure_api_key",
    "detect_provider",
    "load_settings",
    "validate_base_url",
]
