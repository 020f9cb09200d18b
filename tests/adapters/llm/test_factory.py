"""Tests for the backend factory and backend protocol."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from llm_facade.adapters.llm.anthropic import AnthropicClient
from llm_facade.adapters.llm.factory import BackendFactory, BackendKind
from llm_facade.adapters.llm.openai import OpenAIClient
from llm_facade.adapters.llm.protocol import BackendProtocol
from llm_facade.config import ProviderConfig, ProviderKind
from tests.conftest import ANTHROPIC_TEST_KEY, OPENAI_TEST_KEY


class TestBackendKind:
    @pytest.mark.parametrize(
        "provider",
        [
            ProviderConfig.openai(OPENAI_TEST_KEY),
            ProviderConfig.openrouter(OPENAI_TEST_KEY),
            ProviderConfig.requesty(OPENAI_TEST_KEY),
            ProviderConfig.xai(OPENAI_TEST_KEY),
            ProviderConfig.openai_compat("http://localhost:1234/v1"),
        ],
    )
    def test_openai_family_maps_to_openai_compat(self, provider) -> None:
        assert BackendKind.for_provider(provider) is BackendKind.OPENAI_COMPAT

    def test_anthropic(self) -> None:
        provider = ProviderConfig.anthropic(ANTHROPIC_TEST_KEY)
        assert BackendKind.for_provider(provider) is BackendKind.ANTHROPIC


class TestBackendFactory:
    def test_creates_openai_backend(self, openai_provider) -> None:
        backend = BackendFactory.create(openai_provider, httpx.AsyncClient(), "1.0")

        assert isinstance(backend, OpenAIClient)

    def test_creates_anthropic_backend(self, anthropic_provider) -> None:
        backend = BackendFactory.create(anthropic_provider, httpx.AsyncClient(), "1.0")

        assert isinstance(backend, AnthropicClient)

    def test_backend_errors_propagate(self, anthropic_provider) -> None:
        with patch(
            "llm_facade.adapters.llm.anthropic.AnthropicClient.__init__",
            side_effect=ValueError("Anthropic base URL is too long"),
        ):
            with pytest.raises(ValueError, match="too long"):
                BackendFactory.create(anthropic_provider, httpx.AsyncClient(), "1.0")

    def test_selection_uses_kind_not_url(self) -> None:
        provider = ProviderConfig(kind=ProviderKind.ANTHROPIC, url="https://proxy.example.com/", key=ANTHROPIC_TEST_KEY)

        backend = BackendFactory.create(provider, httpx.AsyncClient(), "1.0")

        assert isinstance(backend, AnthropicClient)


class TestBackendProtocol:
    @pytest.mark.parametrize(
        "provider",
        [ProviderConfig.openai(OPENAI_TEST_KEY), ProviderConfig.anthropic(ANTHROPIC_TEST_KEY)],
    )
    def test_backends_satisfy_protocol(self, provider) -> None:
        backend = BackendFactory.create(provider, httpx.AsyncClient(), "1.0")

        assert isinstance(backend, BackendProtocol)

    def test_provider_names_are_unique(self) -> None:
        assert {OpenAIClient._provider_name, AnthropicClient._provider_name} == {"openai", "anthropic"}
