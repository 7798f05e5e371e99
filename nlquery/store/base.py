"""Vector store capability consumed by the query engine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from qdrant_client import models


@dataclass
class StoredPoint:
    """A point returned by the vector store."""

    id: str | int
    payload: dict[str, Any] = field(default_factory=dict)
    score: float | None = None


@dataclass
class ScrollPage:
    """One page of a cursor-based scroll."""

    points: list[StoredPoint]
    next_offset: Any | None = None


class VectorStore(ABC):
    """Abstract base class for vector stores."""

    @abstractmethod
    async def get_collections(self) -> list[str]:
        """List collection names."""
        pass

    @abstractmethod
    async def collection_exists(self, name: str) -> bool:
        """Check whether a collection exists."""
        pass

    @abstractmethod
    async def count(self, collection: str, count_filter: models.Filter | None = None) -> int:
        """Count points, optionally restricted by a filter."""
        pass

    @abstractmethod
    async def scroll(
        self,
        collection: str,
        limit: int = 100,
        offset: Any | None = None,
        scroll_filter: models.Filter | None = None,
        with_payload: bool = True,
    ) -> ScrollPage:
        """Fetch one page of points starting at ``offset``."""
        pass

    @abstractmethod
    async def search(
        self,
        collection: str,
        vector: list[float],
        limit: int = 10,
        query_filter: models.Filter | None = None,
    ) -> list[StoredPoint]:
        """Similarity search around ``vector``."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the store is reachable."""
        pass

    async def close(self) -> None:
        """Release client resources."""
        return None
