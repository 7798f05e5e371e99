"""Tests for the Qdrant vector store adapter."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from qdrant_client import models
from qdrant_client.http import models as http_models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from nlquery.errors import CollectionNotFoundError, VectorStoreConnectionError
from nlquery.store.qdrant import QdrantVectorStore


@pytest.fixture
def client():
    return AsyncMock()


@pytest.fixture
def store(client) -> QdrantVectorStore:
    return QdrantVectorStore(url="http://localhost:6333", timeout=5, client=client)


def _not_found() -> UnexpectedResponse:
    return UnexpectedResponse(
        status_code=404, reason_phrase="Not Found", content=b"Not found", headers=MagicMock()
    )


class TestQdrantVectorStore:
    """Test request shaping and error translation."""

    @pytest.mark.asyncio
    async def test_get_collections(self, store, client):
        client.get_collections.return_value = models.CollectionsResponse(
            collections=[models.CollectionDescription(name="paintings"), models.CollectionDescription(name="sketches")]
        )

        assert await store.get_collections() == ["paintings", "sketches"]

    @pytest.mark.asyncio
    async def test_count_is_exact(self, store, client):
        client.count.return_value = models.CountResult(count=42)
        count_filter = models.Filter(
            must=[models.FieldCondition(key="name", match=models.MatchValue(value="Ana Lee"))]
        )

        assert await store.count("paintings", count_filter) == 42
        client.count.assert_awaited_once_with(
            collection_name="paintings", count_filter=count_filter, exact=True
        )

    @pytest.mark.asyncio
    async def test_scroll_maps_records_and_cursor(self, store, client):
        client.scroll.return_value = (
            [models.Record(id=1, payload={"name": "Ana Lee"}), models.Record(id=2, payload=None)],
            2,
        )

        page = await store.scroll("paintings", limit=2)

        assert [p.id for p in page.points] == [1, 2]
        assert page.points[0].payload == {"name": "Ana Lee"}
        assert page.points[1].payload == {}
        assert page.next_offset == 2
        assert client.scroll.await_args.kwargs["with_vectors"] is False

    @pytest.mark.asyncio
    async def test_search_uses_query_points(self, store, client):
        client.query_points.return_value = http_models.QueryResponse(
            points=[models.ScoredPoint(id=7, version=1, score=0.75, payload={"name": "Bo Chen"})]
        )

        hits = await store.search("paintings", [0.1, 0.2], limit=3)

        assert hits[0].id == 7
        assert hits[0].score == 0.75
        assert client.query_points.await_args.kwargs["query"] == [0.1, 0.2]
        assert client.query_points.await_args.kwargs["limit"] == 3

    @pytest.mark.asyncio
    async def test_missing_collection(self, store, client):
        client.count.side_effect = _not_found()

        with pytest.raises(CollectionNotFoundError):
            await store.count("missing")

    @pytest.mark.asyncio
    async def test_connection_failure(self, store, client):
        client.scroll.side_effect = ResponseHandlingException(ConnectionError("refused"))

        with pytest.raises(VectorStoreConnectionError):
            await store.scroll("paintings")

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, store, client):
        client.get_collections.side_effect = ValueError("bad")

        with pytest.raises(ValueError):
            await store.get_collections()

    @pytest.mark.asyncio
    async def test_health_check(self, store, client):
        client.get_collections.side_effect = ResponseHandlingException(ConnectionError("refused"))

        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_close(self, store, client):
        await store.close()

        client.close.assert_awaited_once()
