"""Query planning and execution against the vector store."""

import logging
import os
import time
from collections import Counter
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

from qdrant_client import models

from nlquery.config import Settings
from nlquery.errors import CollectionNotFoundError, ValidationError
from nlquery.query.models import QueryIntent
from nlquery.store.base import StoredPoint, VectorStore
from nlquery.store.filters import filter_value, parse_filter_expr, translate_filter
from nlquery.store.paginator import BoundedPaginator

logger = logging.getLogger(__name__)

SLOW_QUERY_MS = 5000
HINT_SAMPLE_SIZE = 5
SAMPLE_ENTITIES = 20

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tif", ".tiff", ".svg", ".heic"}
DOCUMENT_EXTENSIONS = {
    ".pdf", ".doc", ".docx", ".txt", ".md", ".rtf", ".odt", ".xls", ".xlsx",
    ".ppt", ".pptx", ".csv", ".html", ".htm", ".json",
}
MIME_KEYS = ("mime_type", "mimeType", "content_type", "contentType")
FILENAME_KEYS = ("file_name", "filename", "fileName", "path", "url", "image_url")


@dataclass
class QueryPerformanceMetrics:
    """Timing and scan volume of one executed intent."""

    query_type: str
    collection: str | None
    duration_ms: float
    records_processed: int
    memory_efficient: bool

    def log(self) -> None:
        message = (
            f"Query {self.query_type} on {self.collection or 'database'} took "
            f"{self.duration_ms:.0f}ms, {self.records_processed} records processed"
        )
        if not self.memory_efficient:
            message += " (scan capped)"
        if self.duration_ms > SLOW_QUERY_MS:
            logger.warning(f"Slow query: {message}")
        else:
            logger.info(message)


@dataclass
class ScanStats:
    scanned: int = 0
    truncated: bool = False


@dataclass
class ExecutionResult:
    data: dict[str, Any]
    metrics: QueryPerformanceMetrics


_scan_stats: ContextVar[ScanStats | None] = ContextVar("scan_stats", default=None)


def classify_item_type(payload: dict[str, Any], filename_key: str | None = None) -> str | None:
    """Guess whether a payload describes an image or a document."""
    for key in MIME_KEYS:
        mime = payload.get(key)
        if isinstance(mime, str) and mime:
            if mime.startswith("image/"):
                return "image"
            return "document"

    keys = (filename_key,) + FILENAME_KEYS if filename_key else FILENAME_KEYS
    for key in keys:
        value = payload.get(key)
        if not isinstance(value, str) or not value:
            continue
        extension = os.path.splitext(value.split("?")[0])[1].lower()
        if extension in IMAGE_EXTENSIONS:
            return "image"
        if extension in DOCUMENT_EXTENSIONS:
            return "document"
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class QueryExecutor:
    """Route intents by scope to the operation handlers.

    Only this class talks to the vector store. All complete enumerations go
    through BoundedPaginator so every scan has a page size and a record cap.

    Args:
        store: Vector store capability
        settings: Settings providing the vocabulary and scan bounds
    """

    def __init__(self, store: VectorStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings
        self.db = settings.database_config

        self._database_handlers: dict[str, Callable[[QueryIntent], Awaitable[dict[str, Any]]]] = {
            "count": self._database_count,
            "collections": lambda intent: self.list_collections(),
            "database": lambda intent: self.describe_database(),
            "describe": self._database_describe,
            "search": self._database_search,
            "filter": self._database_search,
            "list": self._database_list,
            "summarize": self._database_summarize,
            "analyze": self._database_analyze,
            "top": self._database_ranking,
            "ranking": self._database_ranking,
            "aggregate": self._database_aggregate,
        }
        self._collection_handlers: dict[str, Callable[[str, QueryIntent], Awaitable[dict[str, Any]]]] = {
            "count": self._collection_count,
            "search": self._collection_search,
            "filter": self._collection_search,
            "list": self._collection_list,
            "describe": lambda collection, intent: self.describe_collection(collection),
            "collections": lambda collection, intent: self.describe_collection(collection),
            "database": lambda collection, intent: self.describe_collection(collection),
            "summarize": self._collection_summarize,
            "analyze": self._collection_analyze,
            "top": self._collection_ranking,
            "ranking": self._collection_ranking,
            "aggregate": self.aggregate,
        }

    async def execute(self, intent: QueryIntent, collection: str | None = None) -> ExecutionResult:
        """Execute an intent.

        Args:
            intent: Parsed intent
            collection: Target collection; required for collection scope

        Returns:
            ExecutionResult with the handler's data and performance metrics

        Raises:
            ValidationError: Missing collection or unsupported intent
            CollectionNotFoundError: The target collection does not exist
        """
        stats = ScanStats()
        token = _scan_stats.set(stats)
        start = time.perf_counter()
        try:
            if intent.scope == "database":
                data = await self._database_handlers[intent.type](intent)
            else:
                if not collection:
                    raise ValidationError(
                        "collection", collection, "a collection name is required for collection-level queries"
                    )
                if not await self.store.collection_exists(collection):
                    raise CollectionNotFoundError(collection)
                data = await self._collection_handlers[intent.type](collection, intent)
        finally:
            _scan_stats.reset(token)

        metrics = QueryPerformanceMetrics(
            query_type=intent.type,
            collection=collection if intent.scope == "collection" else None,
            duration_ms=(time.perf_counter() - start) * 1000,
            records_processed=stats.scanned,
            memory_efficient=not stats.truncated,
        )
        metrics.log()
        return ExecutionResult(data=data, metrics=metrics)

    # Helpers

    def _is_entity_target(self, target: str | None) -> bool:
        if not target:
            return False
        return target.lower() in {
            "entity",
            "entities",
            self.db.entity_type.lower(),
            self.db.entity_type_plural.lower(),
        }

    def _entity_of(self, point: StoredPoint) -> str | None:
        value = point.payload.get(self.db.entity_field)
        if value is None or value == "":
            return None
        return str(value)

    def _to_item(self, point: StoredPoint) -> dict[str, Any]:
        item: dict[str, Any] = {"id": point.id, "entity": point.payload.get(self.db.entity_field)}
        for label, key in self.db.additional_fields.items():
            item[label] = point.payload.get(key)
        if point.score is not None:
            item["score"] = point.score
        return item

    def _paginate(
        self,
        collection: str,
        max_scanned: int | None,
        scroll_filter: models.Filter | None = None,
        stop_when: Callable[[], bool] | None = None,
        label: str = "scan",
    ) -> BoundedPaginator:
        return BoundedPaginator(
            self.store,
            collection,
            page_size=self.settings.scan_page_size,
            max_scanned=max_scanned,
            scroll_filter=scroll_filter,
            stop_when=stop_when,
            label=label,
        )

    @staticmethod
    def _record_scan(paginator: BoundedPaginator) -> None:
        stats = _scan_stats.get()
        if stats is not None:
            stats.scanned += paginator.scanned
            stats.truncated = stats.truncated or paginator.truncated

    def _page_limit(self, limit: int | None, default: int) -> int:
        return min(limit or default, self.settings.search_max_results)

    # Collection-level operations

    async def count_total(self, collection: str, filter_expr: Any = None) -> dict[str, Any]:
        count = await self.store.count(collection, translate_filter(filter_expr))
        result: dict[str, Any] = {"collection": collection, "count": count}
        if filter_expr:
            result["filter"] = filter_expr
        return result

    async def collect_unique_entities(
        self,
        collection: str,
        seen: set[str] | None = None,
        filter_expr: Any = None,
        union: set[str] | None = None,
    ) -> tuple[set[str], bool]:
        """Chunked scan collecting distinct entity values.

        Args:
            collection: Collection to scan
            seen: Set shared across collections; extended in place
            filter_expr: Optional filter pushed down to the store
            union: Database-wide set, extended in place; when given, the
                entity limit applies to it instead of ``seen``

        Returns:
            ``(seen, truncated)``
        """
        seen = set() if seen is None else seen
        bounded = seen if union is None else union
        limit = self.settings.entity_scan_limit
        paginator = self._paginate(
            collection,
            self.settings.entity_scan_max_records,
            scroll_filter=translate_filter(filter_expr),
            stop_when=lambda: len(bounded) >= limit,
            label="entity scan",
        )
        async for point in paginator:
            entity = self._entity_of(point)
            if entity is not None:
                seen.add(entity)
                if union is not None:
                    union.add(entity)
        self._record_scan(paginator)
        return seen, paginator.truncated

    async def count_unique_entities(self, collection: str) -> dict[str, Any]:
        entities, truncated = await self.collect_unique_entities(collection)
        return {
            "collection": collection,
            "count": len(entities),
            "entities": sorted(entities)[:SAMPLE_ENTITIES],
            "truncated": truncated,
        }

    async def search_items(self, collection: str, filter_expr: Any = None, limit: int | None = None) -> dict[str, Any]:
        """Fetch a single page of items with the filter pushed down."""
        scroll_filter = translate_filter(filter_expr)
        page = await self.store.scroll(
            collection,
            limit=self._page_limit(limit, 10),
            scroll_filter=scroll_filter,
            with_payload=True,
        )
        items = [self._to_item(point) for point in page.points]
        total_matches = len(items) if page.next_offset is None else await self.store.count(collection, scroll_filter)
        return {
            "collection": collection,
            "count": len(items),
            "total_matches": total_matches,
            "items": items,
            "filter": filter_expr,
        }

    async def list_items(self, collection: str, limit: int | None = None) -> dict[str, Any]:
        page = await self.store.scroll(collection, limit=self._page_limit(limit, 20), with_payload=True)
        items = [self._to_item(point) for point in page.points]
        return {"collection": collection, "count": len(items), "items": items}

    async def list_unique_entities(self, collection: str, limit: int | None = None) -> dict[str, Any]:
        entities, truncated = await self.collect_unique_entities(collection)
        limit = limit or 50
        ordered = sorted(entities)
        return {
            "collection": collection,
            "entities": ordered[:limit],
            "count": len(ordered),
            "truncated": truncated,
        }

    async def describe_collection(self, collection: str) -> dict[str, Any]:
        total = await self.store.count(collection)
        entities, truncated = await self.collect_unique_entities(collection)
        sample = await self.list_items(collection, HINT_SAMPLE_SIZE)
        return {
            "collection": collection,
            "total_items": total,
            "unique_entities": len(entities),
            "sample_entities": sorted(entities)[:10],
            "sample_items": sample["items"],
            "item_type_hint": await self.item_type_hint(collection),
            "truncated": truncated,
        }

    async def summarize_entity(self, collection: str, filter_expr: Any) -> dict[str, Any]:
        entity = filter_value(filter_expr, self.db.entity_field)
        found = await self.search_items(collection, filter_expr, HINT_SAMPLE_SIZE)
        return {
            "entity": entity,
            "collection": collection,
            "count": found["total_matches"],
            "sample_items": found["items"],
            "item_type_hint": await self.item_type_hint(collection) if found["items"] else None,
        }

    async def analyze_entity(self, collection: str, filter_expr: Any) -> dict[str, Any]:
        entity = filter_value(filter_expr, self.db.entity_field)
        matches = await self.store.count(collection, translate_filter(filter_expr))
        total = await self.store.count(collection)
        return {
            "entity": entity,
            "collection": collection,
            "count": matches,
            "total_items": total,
            "share": round(matches / total, 4) if total else 0.0,
        }

    async def count_items_by_entity(
        self,
        collection: str,
        counts: Counter | None = None,
        filter_expr: Any = None,
    ) -> tuple[Counter, int, bool]:
        """Chunked scan building a per-entity item count map.

        Returns:
            ``(counts, records_scanned, truncated)``
        """
        counts = Counter() if counts is None else counts
        paginator = self._paginate(
            collection,
            self.settings.ranking_scan_max_records,
            scroll_filter=translate_filter(filter_expr),
            label="ranking scan",
        )
        async for point in paginator:
            entity = self._entity_of(point)
            if entity is not None:
                counts[entity] += 1
        self._record_scan(paginator)
        return counts, paginator.scanned, paginator.truncated

    def rank_entities(self, counts: Counter, limit: int | None, scanned: int, truncated: bool) -> dict[str, Any]:
        """Sort a count map and compute tie and distribution statistics."""
        ordered = sorted(counts.items(), key=lambda pair: (-pair[1], pair[0]))
        if not ordered:
            return {
                "entities": [],
                "top_entity": None,
                "max_count": 0,
                "has_tie": False,
                "tie_count": 0,
                "tied_entities": [],
                "average_items_per_entity": 0.0,
                "distribution": {},
                "total_entities": 0,
                "total_items_scanned": scanned,
                "truncated": truncated,
            }

        max_count = ordered[0][1]
        tied = [name for name, count in ordered if count == max_count]
        distribution: dict[int, list[str]] = {}
        for name, count in ordered:
            distribution.setdefault(count, []).append(name)

        return {
            "entities": [{"entity": name, "count": count} for name, count in ordered[: limit or 10]],
            "top_entity": ordered[0][0],
            "max_count": max_count,
            "has_tie": len(tied) > 1,
            "tie_count": len(tied),
            "tied_entities": tied,
            "average_items_per_entity": round(sum(counts.values()) / len(counts), 2),
            "distribution": distribution,
            "total_entities": len(counts),
            "total_items_scanned": scanned,
            "truncated": truncated,
        }

    async def get_top_entities_by_item_count(
        self, collection: str, limit: int | None = None, filter_expr: Any = None
    ) -> dict[str, Any]:
        counts, scanned, truncated = await self.count_items_by_entity(collection, filter_expr=filter_expr)
        result = self.rank_entities(counts, limit, scanned, truncated)
        result["collection"] = collection
        return result

    async def aggregate(self, collection: str, intent: QueryIntent) -> dict[str, Any]:
        """Compute sum/average/min/max over a numeric payload field."""
        if not intent.is_actionable_aggregate:
            return {
                "collection": collection,
                "result": None,
                "message": "An aggregation needs both a function (sum, average, min, max) and a field.",
            }

        function = intent.aggregation_function
        field_name = intent.aggregation_field
        paginator = self._paginate(
            collection,
            self.settings.aggregation_scan_max_records,
            scroll_filter=translate_filter(intent.filter),
            label="aggregation scan",
        )
        values: list[float] = []
        async for point in paginator:
            value = point.payload.get(field_name)
            if _is_number(value):
                values.append(value)
        self._record_scan(paginator)

        result: float | None
        if not values:
            result = None
        elif function == "sum":
            result = sum(values)
        elif function == "average":
            result = sum(values) / len(values)
        elif function == "min":
            result = min(values)
        else:
            result = max(values)

        data = {
            "collection": collection,
            "function": function,
            "field": field_name,
            "result": result,
            "item_count_considered": len(values),
            "total_items_scanned": paginator.scanned,
            "truncated": paginator.truncated,
        }
        if result is None:
            data["message"] = f"No numeric values found for field '{field_name}'."
        return data

    async def item_type_hint(self, collection: str) -> str | None:
        """Sample a few records to guess the collection's item type.

        Returns:
            "image", "document", "mixed" or "unknown"; None for an empty collection
        """
        page = await self.store.scroll(collection, limit=HINT_SAMPLE_SIZE, with_payload=True)
        if not page.points:
            return None
        filename_key = self.db.additional_fields.get("filename")
        kinds = {classify_item_type(point.payload, filename_key) for point in page.points}
        kinds.discard(None)
        if not kinds:
            return "unknown"
        if len(kinds) > 1:
            return "mixed"
        return kinds.pop()

    # Collection-level routing

    async def _collection_count(self, collection: str, intent: QueryIntent) -> dict[str, Any]:
        if intent.filter:
            return await self.count_total(collection, intent.filter)
        if self._is_entity_target(intent.target):
            return await self.count_unique_entities(collection)
        return await self.count_total(collection)

    async def _collection_search(self, collection: str, intent: QueryIntent) -> dict[str, Any]:
        return await self.search_items(collection, intent.filter, intent.limit or (10 if intent.type == "search" else 20))

    async def _collection_list(self, collection: str, intent: QueryIntent) -> dict[str, Any]:
        if self._is_entity_target(intent.target):
            return await self.list_unique_entities(collection, intent.limit)
        if intent.filter:
            return await self.search_items(collection, intent.filter, intent.limit or 20)
        return await self.list_items(collection, intent.limit)

    async def _collection_summarize(self, collection: str, intent: QueryIntent) -> dict[str, Any]:
        if intent.filter:
            return await self.summarize_entity(collection, intent.filter)
        return await self.describe_collection(collection)

    async def _collection_analyze(self, collection: str, intent: QueryIntent) -> dict[str, Any]:
        if intent.filter:
            return await self.analyze_entity(collection, intent.filter)
        return await self.get_top_entities_by_item_count(collection, intent.limit)

    async def _collection_ranking(self, collection: str, intent: QueryIntent) -> dict[str, Any]:
        return await self.get_top_entities_by_item_count(collection, intent.limit, intent.filter)

    # Database-level operations

    async def count_collections(self) -> dict[str, Any]:
        collections = await self.store.get_collections()
        return {"count": len(collections), "collections": collections}

    async def list_collections(self) -> dict[str, Any]:
        detailed = []
        for name in await self.store.get_collections():
            try:
                count = await self.store.count(name)
                hint = await self.item_type_hint(name) if count else None
            except Exception as e:
                logger.warning(f"Failed to inspect collection {name}: {e}")
                count, hint = 0, None
            detailed.append({"name": name, "vectors_count": count, "item_type_hint": hint})
        return {"collections": detailed}

    async def describe_database(self) -> dict[str, Any]:
        collections = (await self.list_collections())["collections"]
        return {
            "total_collections": len(collections),
            "total_vectors": sum(c["vectors_count"] for c in collections),
            "collections": collections,
        }

    async def count_total_across_database(self) -> dict[str, Any]:
        collections = (await self.list_collections())["collections"]
        return {
            "count": sum(c["vectors_count"] for c in collections),
            "by_collection": [
                {"name": c["name"], "count": c["vectors_count"], "item_type_hint": c["item_type_hint"]}
                for c in collections
            ],
        }

    async def count_entity_across_database(self, filter_expr: Any) -> dict[str, Any]:
        entity = filter_value(filter_expr, self.db.entity_field)
        scroll_filter = translate_filter(filter_expr)
        collections = await self.store.get_collections()
        breakdown = []
        for name in collections:
            try:
                count = await self.store.count(name, scroll_filter)
            except Exception as e:
                logger.warning(f"Failed to count in collection {name}: {e}")
                continue
            breakdown.append({"collection": name, "count": count})
        return {
            "entity": entity,
            "filter": filter_expr,
            "count": sum(entry["count"] for entry in breakdown),
            "collections_searched": len(collections),
            "results_by_collection": breakdown,
        }

    async def count_entities_across_database(self) -> dict[str, Any]:
        seen: set[str] = set()
        truncated = False
        collections = await self.store.get_collections()
        for name in collections:
            if len(seen) >= self.settings.entity_scan_limit:
                truncated = True
                logger.warning(f"Entity limit {self.settings.entity_scan_limit} reached, skipping {name}")
                break
            try:
                _, capped = await self.collect_unique_entities(name, seen)
            except Exception as e:
                logger.warning(f"Failed to get entities from collection {name}: {e}")
                continue
            truncated = truncated or capped
        return {
            "count": len(seen),
            "entities": sorted(seen)[:SAMPLE_ENTITIES],
            "collections_scanned": len(collections),
            "truncated": truncated,
        }

    async def list_entities_across_database(self, limit: int | None = None) -> dict[str, Any]:
        limit = limit or 50
        seen: set[str] = set()
        by_collection = []
        truncated = False
        for name in await self.store.get_collections():
            if len(seen) >= self.settings.entity_scan_limit:
                truncated = True
                logger.warning(f"Entity limit {self.settings.entity_scan_limit} reached, skipping {name}")
                break
            try:
                entities, capped = await self.collect_unique_entities(name, union=seen)
            except Exception as e:
                logger.warning(f"Failed to get entities from collection {name}: {e}")
                continue
            truncated = truncated or capped
            if entities:
                by_collection.append({"collection": name, "entities": sorted(entities)[:SAMPLE_ENTITIES]})
        ordered = sorted(seen)
        return {
            "entities": ordered[:limit],
            "count": len(ordered),
            "by_collection": by_collection,
            "truncated": truncated,
        }

    async def search_across_collections(self, filter_expr: Any = None, limit: int | None = None) -> dict[str, Any]:
        parse_filter_expr(filter_expr)
        collections = await self.store.get_collections()
        breakdown = []
        for name in collections:
            try:
                found = await self.search_items(name, filter_expr, limit or 10)
            except Exception as e:
                logger.warning(f"Failed to search collection {name}: {e}")
                continue
            if found["items"]:
                breakdown.append(
                    {
                        "collection": name,
                        "count": found["total_matches"],
                        "displayed": found["count"],
                        "items": found["items"],
                    }
                )
        return {
            "filter": filter_expr,
            "total_count": sum(entry["count"] for entry in breakdown),
            "displayed_count": sum(entry["displayed"] for entry in breakdown),
            "collections_searched": len(collections),
            "results_by_collection": breakdown,
        }

    async def summarize_entity_across_database(self, filter_expr: Any) -> dict[str, Any]:
        parse_filter_expr(filter_expr)
        entity = filter_value(filter_expr, self.db.entity_field)
        breakdown = []
        for name in await self.store.get_collections():
            try:
                summary = await self.summarize_entity(name, filter_expr)
            except Exception as e:
                logger.warning(f"Failed to summarize in collection {name}: {e}")
                continue
            if summary["count"]:
                breakdown.append(
                    {
                        "collection": name,
                        "count": summary["count"],
                        "sample_items": summary["sample_items"],
                        "item_type_hint": summary["item_type_hint"],
                    }
                )
        return {
            "entity": entity,
            "total_items": sum(entry["count"] for entry in breakdown),
            "results_by_collection": breakdown,
        }

    async def analyze_entity_across_database(self, filter_expr: Any) -> dict[str, Any]:
        parse_filter_expr(filter_expr)
        entity = filter_value(filter_expr, self.db.entity_field)
        collections = await self.store.get_collections()
        breakdown = []
        database_total = 0
        for name in collections:
            try:
                analysis = await self.analyze_entity(name, filter_expr)
            except Exception as e:
                logger.warning(f"Failed to analyze collection {name}: {e}")
                continue
            database_total += analysis["total_items"]
            breakdown.append(
                {"collection": name, "count": analysis["count"], "share": analysis["share"]}
            )
        total = sum(entry["count"] for entry in breakdown)
        return {
            "entity": entity,
            "total_items": total,
            "database_items": database_total,
            "share": round(total / database_total, 4) if database_total else 0.0,
            "collections_with_items": sum(1 for entry in breakdown if entry["count"]),
            "collections_searched": len(collections),
            "results_by_collection": breakdown,
        }

    async def get_top_entities_across_database(self, limit: int | None = None, filter_expr: Any = None) -> dict[str, Any]:
        parse_filter_expr(filter_expr)
        counts: Counter = Counter()
        scanned = 0
        truncated = False
        collections = await self.store.get_collections()
        for name in collections:
            try:
                _, collection_scanned, capped = await self.count_items_by_entity(name, counts, filter_expr)
            except Exception as e:
                logger.warning(f"Failed to rank entities in collection {name}: {e}")
                continue
            scanned += collection_scanned
            truncated = truncated or capped
        result = self.rank_entities(counts, limit, scanned, truncated)
        result["collections_scanned"] = len(collections)
        return result

    # Database-level routing

    async def _database_count(self, intent: QueryIntent) -> dict[str, Any]:
        target = (intent.target or "").lower()
        if target == "collections":
            return await self.count_collections()
        if intent.filter:
            return await self.count_entity_across_database(intent.filter)
        if self._is_entity_target(target):
            return await self.count_entities_across_database()
        return await self.count_total_across_database()

    async def _database_describe(self, intent: QueryIntent) -> dict[str, Any]:
        if intent.extracted_collection:
            return await self.describe_collection(intent.extracted_collection)
        return await self.describe_database()

    async def _database_search(self, intent: QueryIntent) -> dict[str, Any]:
        return await self.search_across_collections(intent.filter, intent.limit)

    async def _database_list(self, intent: QueryIntent) -> dict[str, Any]:
        if self._is_entity_target(intent.target):
            return await self.list_entities_across_database(intent.limit)
        if (intent.target or "").lower() == "collections":
            return await self.list_collections()
        return await self.search_across_collections(intent.filter, intent.limit or 20)

    async def _database_summarize(self, intent: QueryIntent) -> dict[str, Any]:
        if intent.filter:
            return await self.summarize_entity_across_database(intent.filter)
        return await self.describe_database()

    async def _database_analyze(self, intent: QueryIntent) -> dict[str, Any]:
        if intent.filter:
            return await self.analyze_entity_across_database(intent.filter)
        return await self.get_top_entities_across_database(intent.limit)

    async def _database_ranking(self, intent: QueryIntent) -> dict[str, Any]:
        return await self.get_top_entities_across_database(intent.limit, intent.filter)

    async def _database_aggregate(self, intent: QueryIntent) -> dict[str, Any]:
        if not intent.extracted_collection:
            return {
                "result": None,
                "message": (
                    "Aggregations run on a single collection. "
                    "Please name the collection to aggregate over."
                ),
            }
        if not await self.store.collection_exists(intent.extracted_collection):
            raise CollectionNotFoundError(intent.extracted_collection)
        return await self.aggregate(intent.extracted_collection, intent)
