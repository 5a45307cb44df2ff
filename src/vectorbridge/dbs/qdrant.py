"""Concrete adapter for Qdrant.

Qdrant consumes the structured dialect: canonical filters are translated to
a StructuredFilter and compiled into `qdrant_client.models.Filter`.

Key Features:
    - Lazy AsyncQdrantClient creation from settings (url / api key / local path)
    - Idempotent collection creation with the configured distance metric
    - Filtered delete and payload update via FilterSelector
    - Cursor-based scroll using Qdrant's own next page offset
"""

from typing import Any, List, Optional

from qdrant_client import AsyncQdrantClient, models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from vectorbridge.abc import VectorStoreAdapter
from vectorbridge.constants import FilterDialect, VectorMetric
from vectorbridge.exceptions import ConnectionError, MissingConfigError, SearchError, UnsafeOperationError
from vectorbridge.filters.compilers.qdrant import QdrantCompiler, qdrant_compiler
from vectorbridge.schema import ScoredPoint, ScrollPage, ScrollRequest, SearchRequest, VectorPoint
from vectorbridge.settings import settings as api_settings
from vectorbridge.types import CanonicalFilterInput, Payload

__all__ = ("QdrantAdapter",)

_DISTANCES = {
    VectorMetric.COSINE: models.Distance.COSINE,
    VectorMetric.DOT_PRODUCT: models.Distance.DOT,
    VectorMetric.EUCLIDEAN: models.Distance.EUCLID,
}

_CLIENT_ERRORS = (UnexpectedResponse, ResponseHandlingException)


class QdrantAdapter(VectorStoreAdapter):
    """Vector store adapter backed by a Qdrant collection.

    Attributes:
        collection_name: Name of the Qdrant collection
        dim: Dimension of stored vectors
    """

    filter_dialect = FilterDialect.STRUCTURED
    compiler: QdrantCompiler = qdrant_compiler

    def __init__(
        self,
        collection_name: Optional[str] = None,
        dim: Optional[int] = None,
        metric: Optional[str] = None,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        path: Optional[str] = None,
        client: Optional[AsyncQdrantClient] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(collection_name=collection_name, dim=dim, metric=metric, **kwargs)
        self._url = url
        self._api_key = api_key
        self._path = path
        self._client = client
        self._initialized = False

    @property
    def client(self) -> AsyncQdrantClient:
        """Lazily create and return the async Qdrant client.

        A local `QDRANT_PATH` takes precedence over `QDRANT_URL`.

        Raises:
            MissingConfigError: neither a path nor a url is configured
        """
        if self._client is None:
            path = self._path or api_settings.QDRANT_PATH
            url = self._url or api_settings.QDRANT_URL
            api_key = self._api_key or api_settings.QDRANT_API_KEY
            if path:
                self._client = AsyncQdrantClient(path=path)
                self.logger.message("Qdrant client created (path=%s).", path)
            elif url:
                self._client = AsyncQdrantClient(url=url, api_key=api_key)
                self.logger.message("Qdrant client created (url=%s).", url)
            else:
                raise MissingConfigError(
                    "Qdrant location is not set. Set QDRANT_URL or QDRANT_PATH.",
                    config_key="QDRANT_URL",
                    adapter="Qdrant",
                )
        return self._client

    def _native_filter(self, filter_input: CanonicalFilterInput) -> Optional[models.Filter]:
        return self.compiler.to_native(self.compile_filter(filter_input))

    def _guarded_native_filter(self, filter_input: CanonicalFilterInput, operation: str) -> models.Filter:
        structured = self.compile_guarded_filter(filter_input, operation)
        native = self.compiler.to_native(structured)
        if native is None:
            if structured.is_empty():
                # MATCH_ALL: an empty Filter addresses every point
                return models.Filter()
            raise UnsafeOperationError(
                f"No filter condition could be compiled for Qdrant; refusing to run {operation}",
                operation=operation,
                adapter="Qdrant",
            )
        return native

    def _connection_error(self, operation: str, error: Exception) -> ConnectionError:
        return ConnectionError(
            "Qdrant request failed",
            adapter="Qdrant",
            operation=operation,
            collection_name=self.collection_name,
            original_error=str(error),
        )

    # ------------------------------------------------------------------
    # Collection Management
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the collection when missing.

        Raises:
            ConnectionError: Qdrant could not be reached
        """
        if self._initialized:
            return
        try:
            exists = await self.client.collection_exists(self.collection_name)
            if not exists:
                await self.client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=models.VectorParams(size=self.dim, distance=_DISTANCES[self.metric]),
                )
                self.logger.message(
                    "Qdrant collection '%s' created (dim=%s, metric=%s).", self.collection_name, self.dim, self.metric
                )
        except _CLIENT_ERRORS as e:
            raise self._connection_error("initialize", e) from e
        self._initialized = True
        self.logger.message("Qdrant initialized: collection='%s'", self.collection_name)

    async def is_collection_empty(self) -> bool:
        try:
            if not await self.client.collection_exists(self.collection_name):
                return True
            result = await self.client.count(collection_name=self.collection_name, exact=True)
        except _CLIENT_ERRORS as e:
            raise self._connection_error("is_collection_empty", e) from e
        return result.count == 0

    # ------------------------------------------------------------------
    # Write Operations
    # ------------------------------------------------------------------

    async def batch_save_data(self, points: List[VectorPoint]) -> None:
        if not points:
            return
        structs = []
        for point in points:
            self.validate_vector(point.vector, "batch_save_data")
            structs.append(models.PointStruct(id=point.id, vector=point.vector, payload=point.payload))
        try:
            await self.client.upsert(collection_name=self.collection_name, points=structs, wait=True)
        except _CLIENT_ERRORS as e:
            raise self._connection_error("batch_save_data", e) from e
        self.logger.message("Upserted %d points into '%s'.", len(structs), self.collection_name)

    async def batch_delete(self, filter: CanonicalFilterInput) -> None:
        native = self._guarded_native_filter(filter, "batch_delete")
        try:
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=models.FilterSelector(filter=native),
                wait=True,
            )
        except _CLIENT_ERRORS as e:
            raise self._connection_error("batch_delete", e) from e
        self.logger.message("Deleted points from '%s' matching filter.", self.collection_name)

    async def update_payload(self, filter: CanonicalFilterInput, payload: Payload) -> None:
        native = self._guarded_native_filter(filter, "update_payload")
        try:
            await self.client.set_payload(
                collection_name=self.collection_name,
                payload=payload,
                points=models.FilterSelector(filter=native),
                wait=True,
            )
        except _CLIENT_ERRORS as e:
            raise self._connection_error("update_payload", e) from e
        self.logger.message("Updated payload keys %s in '%s'.", sorted(payload), self.collection_name)

    # ------------------------------------------------------------------
    # Read Operations
    # ------------------------------------------------------------------

    async def search(self, request: SearchRequest, filter: CanonicalFilterInput = None) -> List[ScoredPoint]:
        """Similarity search with an optional payload filter.

        Raises:
            SearchError: request carries no vector
            ConnectionError: Qdrant request failed
        """
        if request.vector is None:
            raise SearchError("Vector is required for similarity search", adapter="Qdrant", query=request.query)
        self.validate_vector(request.vector, "search")
        try:
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=request.vector,
                query_filter=self._native_filter(filter),
                limit=request.limit,
                score_threshold=request.score_threshold,
                with_payload=True,
            )
        except _CLIENT_ERRORS as e:
            raise self._connection_error("search", e) from e

        results = [ScoredPoint(id=p.id, score=p.score, payload=p.payload or {}) for p in response.points]
        self.logger.message("Search returned %d results.", len(results))
        return results

    async def scroll(self, request: ScrollRequest, filter: CanonicalFilterInput = None) -> ScrollPage:
        try:
            records, next_offset = await self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=self._native_filter(filter),
                limit=request.limit,
                offset=request.offset,
                with_payload=request.with_payload,
                with_vectors=request.with_vector,
            )
        except _CLIENT_ERRORS as e:
            raise self._connection_error("scroll", e) from e

        points = [
            VectorPoint(
                id=r.id,
                vector=r.vector if isinstance(r.vector, list) else [],
                payload=r.payload or {},
            )
            for r in records
        ]
        return ScrollPage(points=points, next_offset=next_offset)
