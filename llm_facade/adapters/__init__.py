"""Adapters for external systems: LLM provider HTTP APIs."""
