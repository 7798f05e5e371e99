"""Google Gemini LLM provider implementation."""

import logging
from typing import Any

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import BaseModel

from nlquery.errors import AuthenticationError, RateLimitError
from nlquery.llm.base import EmbeddingResult, LLMProvider, ResponseResult

logger = logging.getLogger(__name__)


class GeminiConfig(BaseModel):
    """Configuration for Gemini provider."""

    api_key: str
    model: str = "gemini-2.0-flash"
    embedding_model: str = "models/text-embedding-004"
    max_tokens: int = 1000
    temperature: float = 0.0
    timeout: int = 30


class GeminiProvider(LLMProvider):
    """Google Gemini LLM provider implementation."""

    name = "gemini"

    def __init__(self, config: GeminiConfig | None = None, **kwargs: Any) -> None:
        """Initialize Gemini provider.

        Args:
            config: Gemini configuration
            **kwargs: Additional configuration options
        """
        self.config = config or GeminiConfig(**kwargs)
        genai.configure(api_key=self.config.api_key)

    def _model(self, model: str | None, system_prompt: str | None) -> genai.GenerativeModel:
        return genai.GenerativeModel(
            model or self.config.model,
            system_instruction=system_prompt or None,
        )

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding using Gemini's embedding model.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult with embedding vector
        """
        try:
            result = genai.embed_content(
                model=self.config.embedding_model,
                content=text,
                task_type="retrieval_query",
            )

            return EmbeddingResult(
                embedding=result["embedding"],
                model=self.config.embedding_model,
                token_count=None,  # Gemini doesn't return token count for embeddings
            )

        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied) as e:
            raise AuthenticationError(self.name, "embedding generation") from e
        except google_exceptions.ResourceExhausted as e:
            raise RateLimitError(self.name) from e
        except Exception as e:
            logger.error(f"Gemini embedding request failed: {e}")
            raise RuntimeError(f"Failed to generate embedding: {e}") from e

    async def generate_response(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ResponseResult:
        """Generate response using Gemini's chat model.

        Args:
            prompt: User prompt or question
            system_prompt: Optional system instructions
            model: Chat model override
            temperature: Sampling temperature override
            max_tokens: Output token limit override

        Returns:
            ResponseResult with generated response
        """
        model_name = model or self.config.model

        try:
            response = await self._model(model_name, system_prompt).generate_content_async(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    max_output_tokens=max_tokens or self.config.max_tokens,
                    temperature=self.config.temperature if temperature is None else temperature,
                ),
                request_options={"timeout": self.config.timeout},
            )

            return ResponseResult(
                content=response.text,
                model=model_name,
                token_count=response.usage_metadata.total_token_count
                if response.usage_metadata
                else None,
                finish_reason=response.candidates[0].finish_reason.name
                if response.candidates
                else None,
            )

        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied) as e:
            raise AuthenticationError(self.name, "response generation") from e
        except google_exceptions.ResourceExhausted as e:
            raise RateLimitError(self.name) from e
        except Exception as e:
            logger.error(f"Gemini response request failed: {e}")
            raise RuntimeError(f"Failed to generate response: {e}") from e

    async def health_check(self) -> bool:
        """Check if Gemini service is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            # Try a simple embedding request to test connectivity
            genai.embed_content(
                model=self.config.embedding_model,
                content="health check",
            )
            return True
        except Exception as e:
            logger.warning(f"Gemini health check failed: {e}")
            return False
