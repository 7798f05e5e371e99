"""Tests for LLM factory functions."""

from unittest.mock import patch

import pytest

from nlquery.config import LLMProvider as LLMProviderEnum
from nlquery.config import Settings
from nlquery.llm.factory import (
    AVAILABLE_MODELS,
    create_llm_provider,
    create_provider_pool,
    provider_for_model,
)
from nlquery.llm.gemini import GeminiProvider
from nlquery.llm.openai import OpenAIProvider


class TestLLMFactory:
    """Test LLM factory functions."""

    @patch("nlquery.llm.factory.get_settings")
    def test_create_openai_provider(self, mock_get_settings):
        """Test creating OpenAI provider."""
        mock_settings = mock_get_settings.return_value
        mock_settings.llm_provider = LLMProviderEnum.OPENAI
        mock_settings.openai_api_key = "test-key"
        mock_settings.openai_model = "gpt-4o-mini"
        mock_settings.openai_embedding_model = "text-embedding-3-small"

        provider = create_llm_provider()
        assert isinstance(provider, OpenAIProvider)
        assert provider.config.api_key == "test-key"

    @patch("nlquery.llm.factory.get_settings")
    def test_create_openai_provider_missing_key(self, mock_get_settings):
        """Test creating OpenAI provider without API key."""
        mock_settings = mock_get_settings.return_value
        mock_settings.llm_provider = LLMProviderEnum.OPENAI
        mock_settings.openai_api_key = None

        with pytest.raises(ValueError, match="OpenAI API key is required"):
            create_llm_provider()

    @patch("nlquery.llm.gemini.genai")
    def test_create_gemini_provider_by_name(self, mock_genai):
        """Test creating Gemini provider with an explicit name."""
        settings = Settings(_env_file=None, gemini_api_key="gemini-key", gemini_model="gemini-1.5-pro")

        provider = create_llm_provider("gemini", settings)
        assert isinstance(provider, GeminiProvider)
        assert provider.config.model == "gemini-1.5-pro"

    def test_create_unknown_provider(self):
        """Test that an unknown provider name raises ValueError."""
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            create_llm_provider("llama", Settings(_env_file=None))


class TestProviderPool:
    """Test creation of the shared provider pool."""

    def test_pool_is_empty_without_keys(self):
        """Test that no providers are created without credentials."""
        assert create_provider_pool(Settings(_env_file=None)) == {}

    @patch("nlquery.llm.gemini.genai")
    def test_pool_contains_configured_providers_preferred_first(self, mock_genai):
        """Test that every configured provider is created, preferred first."""
        settings = Settings(
            _env_file=None,
            llm_provider=LLMProviderEnum.GEMINI,
            openai_api_key="sk-test",
            gemini_api_key="gemini-key",
        )

        pool = create_provider_pool(settings)
        assert list(pool) == ["gemini", "openai"]
        assert isinstance(pool["openai"], OpenAIProvider)


class TestModelCatalogue:
    """Test the model to provider catalogue."""

    def test_provider_for_known_models(self):
        assert provider_for_model("gpt-4o") == "openai"
        assert provider_for_model("gemini-2.0-flash") == "gemini"

    def test_provider_for_unknown_model(self):
        assert provider_for_model("mystery-model") is None
        assert provider_for_model(None) is None

    def test_catalogue_only_lists_supported_providers(self):
        assert {entry["provider"] for entry in AVAILABLE_MODELS.values()} == {"openai", "gemini"}
