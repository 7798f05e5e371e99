"""OpenAI LLM provider implementation."""

import logging
from typing import Any

import openai
from pydantic import BaseModel

from nlquery.errors import AuthenticationError, RateLimitError
from nlquery.llm.base import EmbeddingResult, LLMProvider, ResponseResult

logger = logging.getLogger(__name__)


class OpenAIConfig(BaseModel):
    """Configuration for OpenAI provider."""

    api_key: str
    model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    max_tokens: int = 1000
    temperature: float = 0.0
    timeout: int = 30
    max_retries: int = 3


def _retry_after(error: openai.RateLimitError) -> float | None:
    response = getattr(error, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


class OpenAIProvider(LLMProvider):
    """OpenAI LLM provider implementation."""

    name = "openai"

    def __init__(self, config: OpenAIConfig | None = None, **kwargs: Any) -> None:
        """Initialize OpenAI provider.

        Args:
            config: OpenAI configuration
            **kwargs: Additional configuration options
        """
        self.config = config or OpenAIConfig(**kwargs)
        self.client = openai.AsyncOpenAI(
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            max_retries=self.config.max_retries,
        )

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding using OpenAI's embedding model.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult with embedding vector
        """
        try:
            response = await self.client.embeddings.create(
                model=self.config.embedding_model,
                input=text,
            )

            embedding_data = response.data[0]

            return EmbeddingResult(
                embedding=embedding_data.embedding,
                model=self.config.embedding_model,
                token_count=response.usage.total_tokens,
            )

        except openai.AuthenticationError as e:
            raise AuthenticationError(self.name, "embedding generation") from e
        except openai.RateLimitError as e:
            raise RateLimitError(self.name, _retry_after(e)) from e
        except openai.OpenAIError as e:
            logger.error(f"OpenAI embedding request failed: {e}")
            raise RuntimeError(f"Failed to generate embedding: {e}") from e

    async def generate_response(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ResponseResult:
        """Generate response using OpenAI's chat model.

        Args:
            prompt: User prompt or question
            system_prompt: Optional system instructions
            model: Chat model override
            temperature: Sampling temperature override
            max_tokens: Output token limit override

        Returns:
            ResponseResult with generated response
        """
        messages = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        model_name = model or self.config.model

        try:
            response = await self.client.chat.completions.create(
                model=model_name,
                messages=messages,
                max_tokens=max_tokens or self.config.max_tokens,
                temperature=self.config.temperature if temperature is None else temperature,
            )

            choice = response.choices[0]

            return ResponseResult(
                content=choice.message.content or "",
                model=model_name,
                token_count=response.usage.total_tokens if response.usage else None,
                finish_reason=choice.finish_reason,
            )

        except openai.AuthenticationError as e:
            raise AuthenticationError(self.name, "response generation") from e
        except openai.RateLimitError as e:
            raise RateLimitError(self.name, _retry_after(e)) from e
        except openai.OpenAIError as e:
            logger.error(f"OpenAI response request failed: {e}")
            raise RuntimeError(f"Failed to generate response: {e}") from e

    async def health_check(self) -> bool:
        """Check if OpenAI service is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            await self.client.models.list()
            return True
        except Exception as e:
            logger.warning(f"OpenAI health check failed: {e}")
            return False
