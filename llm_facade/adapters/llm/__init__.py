"""Multi-provider LLM client abstraction layer.

This module provides a unified interface for talking to OpenAI-compatible
providers (OpenAI, OpenRouter, Requesty, xAI) and Anthropic through one
client.

Key components:
- LLMClient: Facade with model cache and error classification
- RetryingStream: Streamed chat completion that classifies each failure
- BackendProtocol: Interface every provider backend implements
- BackendFactory: Picks the backend for a provider configuration
- into_retry: Error classifier producing RetryableError
- OpenAIClient: OpenAI-compatible backend
- AnthropicClient: Anthropic Messages API backend
"""

from llm_facade.adapters.llm.anthropic import AnthropicClient
from llm_facade.adapters.llm.client import LLMClient, RetryingStream
from llm_facade.adapters.llm.factory import BackendFactory, BackendKind
from llm_facade.adapters.llm.model_cache import ModelCache
from llm_facade.adapters.llm.openai import OpenAIClient
from llm_facade.adapters.llm.protocol import BackendProtocol
from llm_facade.adapters.llm.retry import into_retry
from llm_facade.adapters.llm.transport import build_http_client

__all__ = [
    "AnthropicClient",
    "BackendFactory",
    "BackendKind",
    "BackendProtocol",
    "LLMClient",
    "ModelCache",
    "OpenAIClient",
    "RetryingStream",
    "build_http_client",
    "into_retry",
]
