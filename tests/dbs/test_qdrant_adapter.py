"""Tests for QdrantAdapter against a mocked AsyncQdrantClient."""

from unittest.mock import AsyncMock, patch

import pytest
from qdrant_client import models
from qdrant_client.http.exceptions import ResponseHandlingException
from qdrant_client.http.models import QueryResponse

from vectorbridge.constants import MATCH_ALL
from vectorbridge.dbs.qdrant import QdrantAdapter
from vectorbridge.exceptions import ConnectionError, InvalidFieldError, MissingConfigError, SearchError, UnsafeOperationError
from vectorbridge.schema import ScrollRequest, SearchRequest, VectorPoint


@pytest.fixture
def client():
    mock = AsyncMock()
    mock.collection_exists.return_value = False
    mock.count.return_value = models.CountResult(count=0)
    return mock


@pytest.fixture
def adapter(client):
    return QdrantAdapter(collection_name="docs", dim=4, metric="cosine", client=client)


class TestClient:
    def test_client_from_url(self):
        with patch("vectorbridge.dbs.qdrant.AsyncQdrantClient") as mock_cls:
            adapter = QdrantAdapter(dim=4, url="http://qdrant:6333", api_key="secret")
            assert adapter.client is mock_cls.return_value
            mock_cls.assert_called_once_with(url="http://qdrant:6333", api_key="secret")

    def test_path_takes_precedence(self):
        with patch("vectorbridge.dbs.qdrant.AsyncQdrantClient") as mock_cls:
            adapter = QdrantAdapter(dim=4, url="http://qdrant:6333", path="/tmp/qdrant")
            adapter.client
            mock_cls.assert_called_once_with(path="/tmp/qdrant")

    def test_missing_location(self):
        with patch("vectorbridge.dbs.qdrant.api_settings") as mock_settings:
            mock_settings.QDRANT_PATH = None
            mock_settings.QDRANT_URL = None
            mock_settings.QDRANT_API_KEY = None
            adapter = QdrantAdapter(dim=4)
            with pytest.raises(MissingConfigError):
                adapter.client


class TestInitialize:
    async def test_creates_missing_collection_once(self, adapter, client):
        await adapter.initialize()
        await adapter.initialize()
        client.create_collection.assert_awaited_once()
        kwargs = client.create_collection.call_args.kwargs
        assert kwargs["collection_name"] == "docs"
        assert kwargs["vectors_config"] == models.VectorParams(size=4, distance=models.Distance.COSINE)

    async def test_existing_collection_is_kept(self, adapter, client):
        client.collection_exists.return_value = True
        await adapter.initialize()
        client.create_collection.assert_not_awaited()

    async def test_client_error_is_wrapped(self, adapter, client):
        client.collection_exists.side_effect = ResponseHandlingException(OSError("refused"))
        with pytest.raises(ConnectionError) as exc:
            await adapter.initialize()
        assert exc.value.details["operation"] == "initialize"


class TestIsCollectionEmpty:
    async def test_missing_collection(self, adapter, client):
        assert await adapter.is_collection_empty()
        client.count.assert_not_awaited()

    async def test_counts_points(self, adapter, client):
        client.collection_exists.return_value = True
        client.count.return_value = models.CountResult(count=3)
        assert not await adapter.is_collection_empty()


class TestWrites:
    async def test_batch_save_data(self, adapter, client):
        await adapter.batch_save_data([VectorPoint(id=1, vector=[0.1, 0.2, 0.3, 0.4], payload={"a": 1})])
        points = client.upsert.call_args.kwargs["points"]
        assert points == [models.PointStruct(id=1, vector=[0.1, 0.2, 0.3, 0.4], payload={"a": 1})]

    async def test_batch_save_rejects_wrong_dimension(self, adapter, client):
        with pytest.raises(InvalidFieldError):
            await adapter.batch_save_data([VectorPoint(id=1, vector=[0.1])])
        client.upsert.assert_not_awaited()

    async def test_batch_delete_uses_filter_selector(self, adapter, client):
        await adapter.batch_delete({"status": "archived"})
        selector = client.delete.call_args.kwargs["points_selector"]
        assert isinstance(selector, models.FilterSelector)
        assert selector.filter.must[0].key == "status"

    async def test_batch_delete_match_all(self, adapter, client):
        await adapter.batch_delete(MATCH_ALL)
        selector = client.delete.call_args.kwargs["points_selector"]
        assert selector.filter == models.Filter()

    @pytest.mark.parametrize(
        "flt",
        [
            None,
            {},
            "status <> 'x'",
            {"must": [{"key": "a"}]},
            "NOT (status = 'keep')",
            "status = 'a' OR status = 'b'",
        ],
    )
    async def test_batch_delete_refuses_unconstrained(self, adapter, client, flt):
        with pytest.raises(UnsafeOperationError):
            await adapter.batch_delete(flt)
        client.delete.assert_not_awaited()

    async def test_update_payload(self, adapter, client):
        await adapter.update_payload("status = 'draft'", {"reviewed": True})
        kwargs = client.set_payload.call_args.kwargs
        assert kwargs["payload"] == {"reviewed": True}
        assert kwargs["points"].filter.must[0].match == models.MatchValue(value="draft")


class TestReads:
    async def test_search(self, adapter, client):
        client.query_points.return_value = QueryResponse(
            points=[models.ScoredPoint(id=7, version=0, score=0.9, payload={"status": "active"})]
        )
        results = await adapter.search(
            SearchRequest(vector=[1.0, 0.0, 0.0, 0.0], limit=3, score_threshold=0.5), {"status": "active"}
        )
        assert [(r.id, r.score, r.payload) for r in results] == [(7, 0.9, {"status": "active"})]
        kwargs = client.query_points.call_args.kwargs
        assert kwargs["limit"] == 3
        assert kwargs["score_threshold"] == 0.5
        assert kwargs["query_filter"].must[0].key == "status"

    async def test_search_without_filter(self, adapter, client):
        client.query_points.return_value = QueryResponse(points=[])
        await adapter.search(SearchRequest(vector=[1.0, 0.0, 0.0, 0.0]))
        assert client.query_points.call_args.kwargs["query_filter"] is None

    async def test_search_requires_vector(self, adapter):
        with pytest.raises(SearchError):
            await adapter.search(SearchRequest(query="hello"))

    async def test_search_error_is_wrapped(self, adapter, client):
        client.query_points.side_effect = ResponseHandlingException(OSError("timeout"))
        with pytest.raises(ConnectionError):
            await adapter.search(SearchRequest(vector=[1.0, 0.0, 0.0, 0.0]))

    async def test_scroll(self, adapter, client):
        client.scroll.return_value = (
            [models.Record(id=1, payload={"a": 1}, vector=[0.1, 0.2, 0.3, 0.4])],
            2,
        )
        page = await adapter.scroll(ScrollRequest(limit=1, offset=1, with_vector=True), "a = 1")
        assert page.next_offset == 2
        assert page.points[0].vector == [0.1, 0.2, 0.3, 0.4]
        kwargs = client.scroll.call_args.kwargs
        assert kwargs["offset"] == 1
        assert kwargs["with_vectors"] is True
        assert kwargs["scroll_filter"].must[0].key == "a"
