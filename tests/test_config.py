"""Tests for configuration module."""

import pytest

from nlquery.config import DatabaseConfig, Environment, LLMProvider, Settings


def test_default_settings():
    """Test that default settings are loaded correctly."""
    settings = Settings(_env_file=None)

    assert settings.llm_provider == LLMProvider.OPENAI
    assert settings.environment == Environment.DEVELOPMENT
    assert settings.log_level == "INFO"
    assert settings.qdrant_url == "http://localhost:6333"
    assert settings.scan_page_size == 100
    assert settings.entity_scan_limit == 1000
    assert settings.aggregation_scan_max_records == 5000


def test_database_config():
    """Test domain vocabulary construction."""
    settings = Settings(_env_file=None, entity_field="author", entity_type="author", item_type="document")

    db = settings.database_config
    assert db.entity_field == "author"
    assert db.entity_type_plural == "authors"
    assert db.item_type_plural == "documents"
    assert db.additional_fields == {"filename": "file_name", "url": "image_url"}


def test_database_config_is_frozen():
    """Test that the vocabulary cannot be changed after creation."""
    db = DatabaseConfig()

    with pytest.raises(Exception):
        db.entity_field = "other"


def test_plural_of_y_nouns():
    """Test pluralization of nouns ending in a consonant and y."""
    assert DatabaseConfig(entity_type="company").entity_type_plural == "companies"
    assert DatabaseConfig(entity_type="key").entity_type_plural == "keys"


def test_validate_openai_config():
    """Test OpenAI configuration validation."""
    settings = Settings(_env_file=None, llm_provider=LLMProvider.OPENAI)

    with pytest.raises(ValueError, match="OpenAI API key is required"):
        settings.validate_provider_config()


def test_validate_gemini_config():
    """Test Gemini configuration validation."""
    settings = Settings(_env_file=None, llm_provider=LLMProvider.GEMINI)

    with pytest.raises(ValueError, match="Gemini API key is required"):
        settings.validate_provider_config()


def test_valid_openai_config():
    """Test valid OpenAI configuration."""
    settings = Settings(
        _env_file=None,
        llm_provider=LLMProvider.OPENAI,
        openai_api_key="sk-test-key",
    )

    # Should not raise
    settings.validate_provider_config()


def test_available_providers_preferred_first():
    """Test that only configured providers are listed, preferred first."""
    settings = Settings(
        _env_file=None,
        llm_provider=LLMProvider.GEMINI,
        openai_api_key="sk-test-key",
        gemini_api_key="gemini-key",
    )

    assert settings.available_providers() == ["gemini", "openai"]
    assert settings.has_provider("openai")
    assert settings.has_provider(LLMProvider.GEMINI)
    assert not settings.has_provider("anthropic")


def test_available_providers_none_configured():
    """Test provider availability without any keys."""
    settings = Settings(_env_file=None)

    assert settings.available_providers() == []
