"""Shared fixtures: in-memory vector store and scripted LLM provider."""

from collections.abc import Callable
from typing import Any

import pytest
from qdrant_client import models

from nlquery.config import Settings
from nlquery.errors import CollectionNotFoundError
from nlquery.llm.base import EmbeddingResult, LLMProvider, ResponseResult
from nlquery.store.base import ScrollPage, StoredPoint, VectorStore

ENV_KEYS = (
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "LLM_PROVIDER",
    "QDRANT_URL",
    "QDRANT_API_KEY",
    "ENTITY_FIELD",
    "ENTITY_TYPE",
    "ITEM_TYPE",
    "LOG_LEVEL",
    "ENVIRONMENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real credentials out of the settings under test."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _matches_condition(payload: dict[str, Any], condition: models.FieldCondition) -> bool:
    value = payload.get(condition.key)

    if condition.range is not None:
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return False
        bounds = condition.range
        if bounds.gt is not None and not value > bounds.gt:
            return False
        if bounds.gte is not None and not value >= bounds.gte:
            return False
        if bounds.lt is not None and not value < bounds.lt:
            return False
        if bounds.lte is not None and not value <= bounds.lte:
            return False
        return True

    match = condition.match
    if isinstance(match, models.MatchValue):
        return value == match.value
    if isinstance(match, models.MatchText):
        return isinstance(value, str) and match.text.lower() in value.lower()
    if isinstance(match, models.MatchAny):
        return value in match.any
    if isinstance(match, models.MatchExcept):
        return value not in match.except_
    raise AssertionError(f"Unsupported condition in fake store: {condition}")


def _matches(payload: dict[str, Any], condition: models.FieldCondition | models.Filter) -> bool:
    if isinstance(condition, models.Filter):
        return matches_filter(payload, condition)
    return _matches_condition(payload, condition)


def matches_filter(payload: dict[str, Any], query_filter: models.Filter | None) -> bool:
    if query_filter is None:
        return True
    if not all(_matches(payload, condition) for condition in query_filter.must or []):
        return False
    if query_filter.should and not any(_matches(payload, condition) for condition in query_filter.should):
        return False
    return not any(_matches(payload, condition) for condition in query_filter.must_not or [])


class FakeVectorStore(VectorStore):
    """In-memory vector store with integer scroll cursors.

    Args:
        collections: Mapping of collection name to list of payloads
    """

    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.collections = {
            name: [StoredPoint(id=i + 1, payload=payload) for i, payload in enumerate(payloads)]
            for name, payloads in (collections or {}).items()
        }
        self.scroll_calls: list[dict[str, Any]] = []
        self.count_calls: list[dict[str, Any]] = []
        self.search_calls: list[dict[str, Any]] = []
        self.search_results: list[StoredPoint] = []

    def _points(self, collection: str) -> list[StoredPoint]:
        if collection not in self.collections:
            raise CollectionNotFoundError(collection)
        return self.collections[collection]

    async def get_collections(self) -> list[str]:
        return list(self.collections)

    async def collection_exists(self, name: str) -> bool:
        return name in self.collections

    async def count(self, collection: str, count_filter: models.Filter | None = None) -> int:
        self.count_calls.append({"collection": collection, "filter": count_filter})
        return sum(1 for p in self._points(collection) if matches_filter(p.payload, count_filter))

    async def scroll(
        self,
        collection: str,
        limit: int = 100,
        offset: Any | None = None,
        scroll_filter: models.Filter | None = None,
        with_payload: bool = True,
    ) -> ScrollPage:
        self.scroll_calls.append(
            {"collection": collection, "limit": limit, "offset": offset, "filter": scroll_filter}
        )
        matching = [p for p in self._points(collection) if matches_filter(p.payload, scroll_filter)]
        start = offset or 0
        page = matching[start : start + limit]
        next_offset = start + limit if start + limit < len(matching) else None
        return ScrollPage(points=page, next_offset=next_offset)

    async def search(
        self,
        collection: str,
        vector: list[float],
        limit: int = 10,
        query_filter: models.Filter | None = None,
    ) -> list[StoredPoint]:
        self._points(collection)
        self.search_calls.append(
            {"collection": collection, "vector": vector, "limit": limit, "filter": query_filter}
        )
        return self.search_results[:limit]

    async def health_check(self) -> bool:
        return True


class FakeProvider(LLMProvider):
    """LLM provider returning scripted replies.

    Args:
        name: Provider name
        replies: Strings to return in order, or exceptions to raise
        embedding: Vector returned by generate_embedding
    """

    def __init__(
        self,
        name: str = "openai",
        replies: list[Any] | None = None,
        embedding: list[float] | None = None,
    ) -> None:
        self.name = name
        self.replies = list(replies or [])
        self.embedding = embedding or [0.1, 0.2, 0.3]
        self.calls: list[dict[str, Any]] = []

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        self.calls.append({"embed": text})
        if self.replies and isinstance(self.replies[0], Exception):
            raise self.replies.pop(0)
        return EmbeddingResult(embedding=self.embedding, model="fake-embedding")

    async def generate_response(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ResponseResult:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "model": model})
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return ResponseResult(content=reply, model=model or "fake-model")

    async def health_check(self) -> bool:
        return True


def artist_payloads(counts: dict[str, int], extension: str = ".png") -> list[dict[str, Any]]:
    """Build payloads with ``count`` images per artist name."""
    payloads = []
    for name, count in counts.items():
        for i in range(count):
            slug = name.lower().replace(" ", "_")
            payloads.append({"name": name, "file_name": f"{slug}_{i}{extension}"})
    return payloads


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def make_store() -> Callable[..., FakeVectorStore]:
    return FakeVectorStore


@pytest.fixture
def two_collection_store() -> FakeVectorStore:
    """Collections of 10 and 20 points sharing the ``name`` field."""
    return FakeVectorStore(
        {
            "paintings": artist_payloads({"Chris Dyer": 4, "Ana Lee": 3, "Bo Chen": 3}),
            "sketches": artist_payloads({"Chris Dyer": 5, "Dee Park": 5, "Eli Roy": 10}),
        }
    )
