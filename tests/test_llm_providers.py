"""Tests for LLM providers."""

from unittest.mock import AsyncMock, MagicMock, patch

import openai
import pytest
from google.api_core import exceptions as google_exceptions

from nlquery.errors import AuthenticationError, RateLimitError
from nlquery.llm.base import EmbeddingResult, LLMProviderFactory, ResponseResult
from nlquery.llm.gemini import GeminiConfig, GeminiProvider
from nlquery.llm.openai import OpenAIConfig, OpenAIProvider


def _status_response(status_code: int, headers: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    return response


class TestLLMProviderFactory:
    """Test the LLM provider factory."""

    def test_list_providers(self):
        """Test listing registered providers."""
        providers = LLMProviderFactory.list_providers()
        assert "openai" in providers
        assert "gemini" in providers

    def test_create_openai_provider(self):
        """Test creating OpenAI provider."""
        provider = LLMProviderFactory.create("openai", api_key="test-key")
        assert isinstance(provider, OpenAIProvider)
        assert provider.config.api_key == "test-key"

    def test_create_unknown_provider(self):
        """Test creating unknown provider raises error."""
        with pytest.raises(ValueError, match="Unknown provider 'unknown'"):
            LLMProviderFactory.create("unknown")


class TestOpenAIProvider:
    """Test OpenAI provider."""

    @pytest.fixture
    def openai_provider(self):
        """Create OpenAI provider for testing."""
        config = OpenAIConfig(api_key="test-key")
        return OpenAIProvider(config=config)

    @pytest.mark.asyncio
    async def test_generate_embedding_success(self, openai_provider):
        """Test successful embedding generation."""
        mock_embedding = MagicMock()
        mock_embedding.embedding = [0.1, 0.2, 0.3, 0.4]

        mock_response = MagicMock()
        mock_response.data = [mock_embedding]
        mock_response.usage.total_tokens = 10

        with patch.object(
            openai_provider.client.embeddings,
            "create",
            new_callable=AsyncMock,
            return_value=mock_response,
        ):
            result = await openai_provider.generate_embedding("test text")

            assert isinstance(result, EmbeddingResult)
            assert result.embedding == [0.1, 0.2, 0.3, 0.4]
            assert result.model == "text-embedding-3-small"
            assert result.token_count == 10

    @pytest.mark.asyncio
    async def test_generate_response_success(self, openai_provider):
        """Test successful response generation."""
        mock_choice = MagicMock()
        mock_choice.message.content = "This is a test response"
        mock_choice.finish_reason = "stop"

        mock_response = MagicMock()
        mock_response.choices = [mock_choice]
        mock_response.usage.total_tokens = 50

        with patch.object(
            openai_provider.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=mock_response,
        ):
            result = await openai_provider.generate_response("test prompt")

            assert isinstance(result, ResponseResult)
            assert result.response == "This is a test response"
            assert result.model == "gpt-4o-mini"
            assert result.token_count == 50
            assert result.finish_reason == "stop"

    @pytest.mark.asyncio
    async def test_generate_response_with_system_prompt(self, openai_provider):
        """Test that the system prompt and model override are passed through."""
        mock_choice = MagicMock()
        mock_choice.message.content = "{}"
        mock_choice.finish_reason = "stop"

        mock_response = MagicMock()
        mock_response.choices = [mock_choice]

        with patch.object(
            openai_provider.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=mock_response,
        ) as mock_create:
            await openai_provider.generate_response(
                "test prompt", "You are a query analyzer", model="gpt-4o", temperature=0.0
            )

            kwargs = mock_create.call_args[1]
            messages = kwargs["messages"]
            assert len(messages) == 2
            assert messages[0] == {"role": "system", "content": "You are a query analyzer"}
            assert messages[1]["content"] == "test prompt"
            assert kwargs["model"] == "gpt-4o"
            assert kwargs["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_authentication_error_is_translated(self, openai_provider):
        """Test that invalid credentials raise AuthenticationError."""
        error = openai.AuthenticationError("bad key", response=_status_response(401), body=None)

        with patch.object(
            openai_provider.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            side_effect=error,
        ):
            with pytest.raises(AuthenticationError) as exc_info:
                await openai_provider.generate_response("test prompt")

        assert exc_info.value.status_code == 401
        assert exc_info.value.provider == "openai"

    @pytest.mark.asyncio
    async def test_rate_limit_error_keeps_retry_after(self, openai_provider):
        """Test that quota errors raise RateLimitError with the retry hint."""
        error = openai.RateLimitError(
            "slow down", response=_status_response(429, {"retry-after": "2"}), body=None
        )

        with patch.object(
            openai_provider.client.embeddings,
            "create",
            new_callable=AsyncMock,
            side_effect=error,
        ):
            with pytest.raises(RateLimitError) as exc_info:
                await openai_provider.generate_embedding("test text")

        assert exc_info.value.retry_after == 2.0

    @pytest.mark.asyncio
    async def test_health_check_failure(self, openai_provider):
        """Test failed health check."""
        with patch.object(
            openai_provider.client.models,
            "list",
            new_callable=AsyncMock,
            side_effect=Exception("Connection error"),
        ):
            assert await openai_provider.health_check() is False


class TestGeminiProvider:
    """Test Gemini provider."""

    @pytest.fixture
    def mock_genai(self):
        with patch("nlquery.llm.gemini.genai") as mock_genai:
            yield mock_genai

    @pytest.fixture
    def gemini_provider(self, mock_genai):
        """Create Gemini provider for testing."""
        return GeminiProvider(config=GeminiConfig(api_key="test-key"))

    def test_configures_api_key(self, gemini_provider, mock_genai):
        """Test that the SDK is configured with the API key."""
        mock_genai.configure.assert_called_once_with(api_key="test-key")

    @pytest.mark.asyncio
    async def test_generate_embedding_success(self, gemini_provider, mock_genai):
        """Test successful embedding generation."""
        mock_genai.embed_content.return_value = {"embedding": [0.5, 0.6]}

        result = await gemini_provider.generate_embedding("test text")

        assert result.embedding == [0.5, 0.6]
        assert result.model == "models/text-embedding-004"
        assert mock_genai.embed_content.call_args[1]["task_type"] == "retrieval_query"

    @pytest.mark.asyncio
    async def test_generate_response_success(self, gemini_provider, mock_genai):
        """Test successful response generation with a system instruction."""
        mock_response = MagicMock()
        mock_response.text = "Gemini says hi"
        mock_response.usage_metadata.total_token_count = 12
        mock_response.candidates = []
        model = mock_genai.GenerativeModel.return_value
        model.generate_content_async = AsyncMock(return_value=mock_response)

        result = await gemini_provider.generate_response("test prompt", "be brief")

        assert result.content == "Gemini says hi"
        assert result.model == "gemini-2.0-flash"
        assert result.token_count == 12
        mock_genai.GenerativeModel.assert_called_once_with("gemini-2.0-flash", system_instruction="be brief")

    @pytest.mark.asyncio
    async def test_quota_error_is_translated(self, gemini_provider, mock_genai):
        """Test that ResourceExhausted raises RateLimitError."""
        model = mock_genai.GenerativeModel.return_value
        model.generate_content_async = AsyncMock(side_effect=google_exceptions.ResourceExhausted("quota"))

        with pytest.raises(RateLimitError):
            await gemini_provider.generate_response("test prompt")

    @pytest.mark.asyncio
    async def test_permission_error_is_translated(self, gemini_provider, mock_genai):
        """Test that PermissionDenied raises AuthenticationError."""
        mock_genai.embed_content.side_effect = google_exceptions.PermissionDenied("bad key")

        with pytest.raises(AuthenticationError):
            await gemini_provider.generate_embedding("test text")

    @pytest.mark.asyncio
    async def test_other_errors_become_runtime_errors(self, gemini_provider, mock_genai):
        """Test that unexpected SDK failures surface as RuntimeError."""
        model = mock_genai.GenerativeModel.return_value
        model.generate_content_async = AsyncMock(side_effect=ValueError("blocked"))

        with pytest.raises(RuntimeError, match="Failed to generate response"):
            await gemini_provider.generate_response("test prompt")
