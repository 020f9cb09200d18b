"""OpenAI-compatible backend.

Serves every provider that speaks the OpenAI chat completions protocol.
"""

from llm_facade.adapters.llm.openai.client import OpenAIClient

__all__ = ["OpenAIClient"]
