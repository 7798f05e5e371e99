"""Bounded cursor pagination over a vector store collection."""

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from qdrant_client import models

from nlquery.store.base import StoredPoint, VectorStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class BoundedPaginator:
    """Iterate a collection page by page until exhausted or a safety bound trips.

    Pages are fetched strictly sequentially. Hitting a bound is not an error:
    iteration simply ends, ``truncated`` is set and a warning is logged so the
    caller can return whatever it accumulated.

    Args:
        store: Vector store to scroll
        collection: Collection name
        page_size: Records requested per page
        max_scanned: Maximum records to read in total, None for unbounded
        scroll_filter: Native filter pushed down to the store
        stop_when: Predicate checked after every record; True ends the scan
        label: Operation name used in log messages
    """

    def __init__(
        self,
        store: VectorStore,
        collection: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_scanned: int | None = None,
        scroll_filter: models.Filter | None = None,
        stop_when: Callable[[], bool] | None = None,
        label: str = "scan",
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.store = store
        self.collection = collection
        self.page_size = page_size
        self.max_scanned = max_scanned
        self.scroll_filter = scroll_filter
        self.stop_when = stop_when
        self.label = label

        self.scanned = 0
        self.pages = 0
        self.truncated = False
        self.stop_reason: str | None = None

    def _trip(self, reason: str) -> None:
        self.truncated = True
        self.stop_reason = reason
        logger.warning(
            f"{self.label} on '{self.collection}' stopped early after "
            f"{self.scanned} records: {reason}"
        )

    def __aiter__(self) -> AsyncIterator[StoredPoint]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[StoredPoint]:
        offset: Any | None = None

        while True:
            limit = self.page_size
            if self.max_scanned is not None:
                remaining = self.max_scanned - self.scanned
                if remaining <= 0:
                    self._trip(f"reached the {self.max_scanned} record limit")
                    return
                limit = min(limit, remaining)

            page = await self.store.scroll(
                self.collection,
                limit=limit,
                offset=offset,
                scroll_filter=self.scroll_filter,
                with_payload=True,
            )
            self.pages += 1

            for point in page.points:
                self.scanned += 1
                yield point
                if self.stop_when is not None and self.stop_when():
                    if page.next_offset is not None or point is not page.points[-1]:
                        self._trip("item limit reached")
                    return

            offset = page.next_offset
            if offset is None or not page.points:
                return
            if self.max_scanned is not None and self.scanned >= self.max_scanned:
                self._trip(f"reached the {self.max_scanned} record limit")
                return
