"""LLM providers module."""

from nlquery.llm.base import LLMProvider, LLMProviderFactory
from nlquery.llm.factory import (
    AVAILABLE_MODELS,
    create_llm_provider,
    create_provider_pool,
    provider_for_model,
)
from nlquery.llm.fallback import ProviderFallback
from nlquery.llm.gemini import GeminiConfig, GeminiProvider
from nlquery.llm.openai import OpenAIConfig, OpenAIProvider

# Register all providers
LLMProviderFactory.register("openai", OpenAIProvider)
LLMProviderFactory.register("gemini", GeminiProvider)

__all__ = [
    "AVAILABLE_MODELS",
    "GeminiConfig",
    "GeminiProvider",
    "LLMProvider",
    "LLMProviderFactory",
    "OpenAIConfig",
    "OpenAIProvider",
    "ProviderFallback",
    "create_llm_provider",
    "create_provider_pool",
    "provider_for_model",
]
