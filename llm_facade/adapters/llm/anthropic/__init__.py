"""Anthropic Messages API backend."""

from llm_facade.adapters.llm.anthropic.client import AnthropicClient

__all__ = ["AnthropicClient"]
