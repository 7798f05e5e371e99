"""Vector store implementation using Qdrant."""

import logging
from typing import Any, NoReturn

from qdrant_client import AsyncQdrantClient, models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from nlquery.config import get_settings
from nlquery.errors import CollectionNotFoundError, VectorStoreConnectionError
from nlquery.store.base import ScrollPage, StoredPoint, VectorStore

logger = logging.getLogger(__name__)


class QdrantVectorStore(VectorStore):
    """Qdrant implementation of the vector store capability."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: int | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize the Qdrant client.

        Args:
            url: Qdrant URL (optional, uses config if not provided)
            api_key: Qdrant API key (optional, uses config if not provided)
            timeout: Request timeout in seconds
            client: Pre-built client, mainly for tests
        """
        if url is None or timeout is None:
            settings = get_settings()
            url = url or settings.qdrant_url
            api_key = api_key or settings.qdrant_api_key
            timeout = timeout or settings.qdrant_timeout

        self.url = url
        self.client = client or AsyncQdrantClient(url=url, api_key=api_key, timeout=timeout)
        logger.info(f"Using Qdrant at {self.url}")

    def _raise_translated(self, error: Exception, operation: str, collection: str | None = None) -> NoReturn:
        if isinstance(error, UnexpectedResponse) and error.status_code == 404 and collection:
            raise CollectionNotFoundError(collection) from error
        if isinstance(error, ResponseHandlingException):
            raise VectorStoreConnectionError(error, operation, self.url) from error
        raise error

    async def get_collections(self) -> list[str]:
        try:
            response = await self.client.get_collections()
        except Exception as e:
            logger.error(f"Failed to list collections: {e}")
            self._raise_translated(e, "get_collections")
        return [c.name for c in response.collections]

    async def collection_exists(self, name: str) -> bool:
        try:
            return await self.client.collection_exists(collection_name=name)
        except Exception as e:
            self._raise_translated(e, "collection_exists")

    async def count(self, collection: str, count_filter: models.Filter | None = None) -> int:
        try:
            result = await self.client.count(
                collection_name=collection,
                count_filter=count_filter,
                exact=True,
            )
        except Exception as e:
            logger.error(f"Failed to count points in {collection}: {e}")
            self._raise_translated(e, "count", collection)
        return result.count

    async def scroll(
        self,
        collection: str,
        limit: int = 100,
        offset: Any | None = None,
        scroll_filter: models.Filter | None = None,
        with_payload: bool = True,
    ) -> ScrollPage:
        try:
            records, next_offset = await self.client.scroll(
                collection_name=collection,
                scroll_filter=scroll_filter,
                limit=limit,
                offset=offset,
                with_payload=with_payload,
                with_vectors=False,
            )
        except Exception as e:
            logger.error(f"Failed to scroll {collection}: {e}")
            self._raise_translated(e, "scroll", collection)

        return ScrollPage(
            points=[StoredPoint(id=r.id, payload=r.payload or {}) for r in records],
            next_offset=next_offset,
        )

    async def search(
        self,
        collection: str,
        vector: list[float],
        limit: int = 10,
        query_filter: models.Filter | None = None,
    ) -> list[StoredPoint]:
        try:
            response = await self.client.query_points(
                collection_name=collection,
                query=vector,
                query_filter=query_filter,
                limit=limit,
                with_payload=True,
            )
        except Exception as e:
            logger.error(f"Failed to search collection {collection}: {e}")
            self._raise_translated(e, "search", collection)

        return [
            StoredPoint(id=point.id, payload=point.payload or {}, score=point.score)
            for point in response.points
        ]

    async def health_check(self) -> bool:
        """Check if Qdrant is healthy and accessible."""
        try:
            await self.client.get_collections()
            return True
        except Exception as e:
            logger.warning(f"Qdrant health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.close()
