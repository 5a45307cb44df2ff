"""
Main engine for orchestrating vector store operations.

This module provides `VectorStore`, a thin facade over one
`VectorStoreAdapter`. It initializes the adapter lazily, coerces raw filter
input once at the API boundary, applies settings defaults and chunks large
writes. Backend-specific behaviour stays in the adapters.
"""

import importlib
from typing import Any, Dict, List, Optional, Tuple, Type

from vectorbridge.settings import settings

from .abc import VectorStoreAdapter
from .exceptions import InvalidConfigError
from .filters import coerce_filter
from .logger import Logger
from .schema import ScoredPoint, ScrollPage, ScrollRequest, SearchRequest, VectorPoint
from .types import CanonicalFilterInput, Payload

__all__ = (
    "ADAPTERS",
    "VectorStore",
    "get_adapter_class",
)

# Backend name -> (module, class); imported on demand so only the chosen client is required
ADAPTERS: Dict[str, Tuple[str, str]] = {
    "qdrant": ("vectorbridge.dbs.qdrant", "QdrantAdapter"),
    "pgvector": ("vectorbridge.dbs.pgvector", "PgVectorAdapter"),
}


def get_adapter_class(name: str) -> Type[VectorStoreAdapter]:
    """Return the adapter class registered under `name`.

    Raises:
        InvalidConfigError: unknown backend name
    """
    try:
        module_name, class_name = ADAPTERS[name.lower()]
    except KeyError:
        raise InvalidConfigError(
            "Unknown vector backend", config_key="VECTOR_BACKEND", value=name, supported=sorted(ADAPTERS)
        ) from None
    return getattr(importlib.import_module(module_name), class_name)


class VectorStore:
    """High-level entry point for vector store operations.

    Example:
        >>> store = VectorStore.from_settings()
        >>> await store.search(SearchRequest(vector=embedding), filter={"status": "active"})

    Attributes:
        adapter: Backend adapter implementing `VectorStoreAdapter`
        batch_size: Points per write request (0 disables chunking)
    """

    def __init__(self, adapter: VectorStoreAdapter, batch_size: Optional[int] = None) -> None:
        self._adapter = adapter
        self.batch_size = settings.VECTOR_BATCH_SIZE if batch_size is None else batch_size
        self._initialized = False
        self.logger = Logger(self.__class__.__name__)
        self.logger.message(
            "VectorStore created: adapter=%s collection=%s dialect=%s",
            adapter.__class__.__name__,
            adapter.collection_name,
            adapter.filter_dialect.value,
        )

    @classmethod
    def from_settings(cls, backend: Optional[str] = None, **kwargs: Any) -> "VectorStore":
        """Build a store for `backend` (default `VECTOR_BACKEND`); kwargs go to the adapter."""
        adapter_cls = get_adapter_class(backend or settings.VECTOR_BACKEND)
        return cls(adapter_cls(**kwargs))

    @property
    def adapter(self) -> VectorStoreAdapter:
        return self._adapter

    async def initialize(self) -> None:
        await self._adapter.initialize()
        self._initialized = True

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    async def is_collection_empty(self) -> bool:
        await self._ensure_initialized()
        return await self._adapter.is_collection_empty()

    async def batch_save_data(self, points: List[VectorPoint]) -> int:
        """Upsert points in chunks of `batch_size`.

        Returns:
            Number of points written
        """
        await self._ensure_initialized()
        if not points:
            return 0
        size = self.batch_size if self.batch_size > 0 else len(points)
        for start in range(0, len(points), size):
            chunk = points[start : start + size]
            await self._adapter.batch_save_data(chunk)
            self.logger.debug(
                "Saved chunk %d-%d (~%d bytes)",
                start,
                start + len(chunk),
                self._adapter.estimate_points_size(chunk),
            )
        self.logger.message("Saved %d points.", len(points))
        return len(points)

    async def batch_delete(self, filter: CanonicalFilterInput) -> None:
        await self._ensure_initialized()
        await self._adapter.batch_delete(coerce_filter(filter))

    async def search(
        self,
        request: Optional[SearchRequest] = None,
        filter: CanonicalFilterInput = None,
        **kwargs: Any,
    ) -> List[ScoredPoint]:
        """Similarity search.

        Args:
            request: Search request; built from kwargs (vector, query, limit, ...) when omitted
            filter: Any canonical filter input
        """
        await self._ensure_initialized()
        request = request or SearchRequest(**kwargs)
        self.logger.debug("Search: query=%r limit=%d filter=%r", request.query, request.limit, filter)
        return await self._adapter.search(request, coerce_filter(filter))

    async def scroll(
        self,
        request: Optional[ScrollRequest] = None,
        filter: CanonicalFilterInput = None,
        **kwargs: Any,
    ) -> ScrollPage:
        await self._ensure_initialized()
        request = request or ScrollRequest(**kwargs)
        return await self._adapter.scroll(request, coerce_filter(filter))

    async def scroll_all(self, filter: CanonicalFilterInput = None, **kwargs: Any) -> List[VectorPoint]:
        """Follow `next_offset` until every matching point has been read."""
        request = ScrollRequest(**kwargs)
        points: List[VectorPoint] = []
        while True:
            page = await self.scroll(request, filter)
            points.extend(page.points)
            if page.next_offset is None:
                return points
            request = request.model_copy(update={"offset": page.next_offset})

    async def update_payload(self, filter: CanonicalFilterInput, payload: Payload) -> None:
        await self._ensure_initialized()
        await self._adapter.update_payload(coerce_filter(filter), payload)

    def estimate_points_size(self, points: List[VectorPoint]) -> int:
        return self._adapter.estimate_points_size(points)
