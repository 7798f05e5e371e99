"""Semantic similarity search over a collection."""

import logging
from collections.abc import Mapping
from typing import Any

from nlquery.config import Settings
from nlquery.errors import (
    EmbeddingGenerationError,
    ProviderNotConfiguredError,
    QueryEngineError,
    SearchOperationError,
    ValidationError,
)
from nlquery.llm.base import LLMProvider
from nlquery.store.base import VectorStore
from nlquery.store.filters import translate_filter

logger = logging.getLogger(__name__)

MAX_K = 1000


class SemanticSearch:
    """Embed a query and return the nearest points.

    Embeddings are only comparable within one model, so the requested provider
    is used without fallback.

    Args:
        store: Vector store capability
        providers: Configured providers keyed by name
        settings: Settings providing the default collection and provider
    """

    def __init__(
        self,
        store: VectorStore,
        providers: Mapping[str, LLMProvider],
        settings: Settings,
    ) -> None:
        self.store = store
        self.providers = dict(providers)
        self.settings = settings

    async def embed(self, query: str, provider: str) -> list[float]:
        """Generate the query embedding.

        Raises:
            ProviderNotConfiguredError: If the provider has no credentials
            AuthenticationError: If the provider rejects the credentials
            RateLimitError: If the provider is throttling requests
            EmbeddingGenerationError: For any other embedding failure
        """
        llm = self.providers.get(provider)
        if llm is None:
            raise ProviderNotConfiguredError(provider, "embedding generation")

        try:
            result = await llm.generate_embedding(query)
        except QueryEngineError:
            raise
        except Exception as e:
            raise EmbeddingGenerationError(provider, e, query) from e

        if not result.success or not result.embedding:
            raise EmbeddingGenerationError(provider, RuntimeError(result.error or "empty embedding"), query)
        return result.embedding

    async def translate_and_search(
        self,
        query: str,
        collection: str | None = None,
        filters: Any = None,
        k: int = 5,
        provider: str | None = None,
    ) -> list[dict[str, Any]]:
        """Search a collection for points similar to a text query.

        Args:
            query: Free-text query to embed
            collection: Collection to search, defaults to the configured one
            filters: Optional filter expression
            k: Number of results, 1 to 1000
            provider: Embedding provider, defaults to the configured one

        Returns:
            Hits as ``{"id", "score", "payload"}`` dicts, best first
        """
        if not query or not query.strip():
            raise ValidationError("query", query, "query cannot be empty")
        if isinstance(k, bool) or not isinstance(k, int) or not 1 <= k <= MAX_K:
            raise ValidationError("k", k, f"k must be an integer between 1 and {MAX_K}")

        collection = collection or self.settings.qdrant_default_collection
        provider = provider or self.settings.llm_provider.value
        query_filter = translate_filter(filters)

        vector = await self.embed(query, provider)

        try:
            points = await self.store.search(collection, vector, limit=k, query_filter=query_filter)
        except QueryEngineError:
            raise
        except Exception as e:
            logger.error(f"Semantic search failed on {collection}: {e}")
            raise SearchOperationError(e, query, collection) from e

        logger.info(f"Semantic search on {collection} returned {len(points)} results")
        return [{"id": point.id, "score": point.score, "payload": point.payload} for point in points]
