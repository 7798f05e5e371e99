"""Factory for creating LLM providers from configuration."""

from nlquery.config import LLMProvider as LLMProviderEnum
from nlquery.config import Settings, get_settings
from nlquery.llm.base import LLMProvider, LLMProviderFactory

# Chat models selectable per request, keyed by model id
AVAILABLE_MODELS: dict[str, dict[str, str]] = {
    "gpt-4o": {"provider": "openai", "name": "GPT-4o"},
    "gpt-4o-mini": {"provider": "openai", "name": "GPT-4o Mini"},
    "gpt-4-turbo": {"provider": "openai", "name": "GPT-4 Turbo"},
    "gpt-3.5-turbo": {"provider": "openai", "name": "GPT-3.5 Turbo"},
    "gemini-2.0-flash": {"provider": "gemini", "name": "Gemini 2.0 Flash"},
    "gemini-1.5-pro": {"provider": "gemini", "name": "Gemini 1.5 Pro"},
    "gemini-1.5-flash": {"provider": "gemini", "name": "Gemini 1.5 Flash"},
}


def provider_for_model(model: str | None) -> str | None:
    """Return the provider serving a catalogued model, if any."""
    if not model:
        return None
    entry = AVAILABLE_MODELS.get(model)
    return entry["provider"] if entry else None


def create_llm_provider(
    provider_name: str | None = None,
    settings: Settings | None = None,
) -> LLMProvider:
    """Create LLM provider from configuration.

    Args:
        provider_name: Override provider name, defaults to settings.llm_provider
        settings: Settings to read credentials from, defaults to the global settings

    Returns:
        Configured LLM provider instance

    Raises:
        ValueError: If provider configuration is invalid
    """
    settings = settings or get_settings()
    provider_name = provider_name or settings.llm_provider

    # Build provider-specific config
    if provider_name == LLMProviderEnum.OPENAI:
        from nlquery.llm.openai import OpenAIConfig

        if not settings.openai_api_key:
            raise ValueError("OpenAI API key is required")

        config = OpenAIConfig(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            embedding_model=settings.openai_embedding_model,
        )
        return LLMProviderFactory.create("openai", config=config)

    elif provider_name == LLMProviderEnum.GEMINI:
        from nlquery.llm.gemini import GeminiConfig

        if not settings.gemini_api_key:
            raise ValueError("Gemini API key is required")

        config = GeminiConfig(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            embedding_model=settings.gemini_embedding_model,
        )
        return LLMProviderFactory.create("gemini", config=config)

    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")


def create_provider_pool(settings: Settings | None = None) -> dict[str, LLMProvider]:
    """Create every provider that has credentials configured.

    Providers are created once at process start and shared by all requests.

    Args:
        settings: Settings to read credentials from, defaults to the global settings

    Returns:
        Mapping of provider name to provider instance, preferred provider first
    """
    settings = settings or get_settings()
    return {
        name: create_llm_provider(name, settings)
        for name in settings.available_providers()
    }
