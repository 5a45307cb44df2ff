"""Abstract vector store contract.

Every concrete backend implements `VectorStoreAdapter`. Operations accept
canonical filter input only; each adapter declares the dialect it consumes
through `filter_dialect` and compiles filters via `compile_filter` before
issuing its native request.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Union

from vectorbridge.constants import MATCH_ALL, VECTOR_METRIC_MAP, FilterDialect
from vectorbridge.exceptions import InvalidConfigError, InvalidFieldError, UnsafeOperationError
from vectorbridge.filters import is_conjunctive_predicate, is_empty_filter, is_match_all, translate
from vectorbridge.logger import Logger
from vectorbridge.schema import ScoredPoint, ScrollPage, ScrollRequest, SearchRequest, StructuredFilter, VectorPoint
from vectorbridge.settings import settings as api_settings
from vectorbridge.types import CanonicalFilterInput, Payload

__all__ = ("VectorStoreAdapter",)

# Bytes per stored vector component (float32)
VECTOR_ITEM_SIZE = 4


class VectorStoreAdapter(ABC):
    """Abstract base class for vector store backends.

    Attributes:
        filter_dialect: Filter representation the backend consumes
        collection_name: Collection (or table) the adapter operates on
        dim: Vector dimension
        metric: Distance metric ('cosine', 'dot_product', 'euclidean')
    """

    filter_dialect: FilterDialect
    _client: Any = None

    def __init__(
        self,
        collection_name: Optional[str] = None,
        dim: Optional[int] = None,
        metric: Optional[str] = None,
        logger: Optional[Logger] = None,
        **kwargs: Any,
    ) -> None:
        self.collection_name = collection_name or api_settings.VECTOR_COLLECTION_NAME
        self.dim = dim or api_settings.VECTOR_DIM
        metric = (metric or api_settings.VECTOR_METRIC).lower()
        if metric not in VECTOR_METRIC_MAP:
            raise InvalidConfigError(
                "Unsupported vector metric",
                config_key="VECTOR_METRIC",
                value=metric,
                supported=sorted(VECTOR_METRIC_MAP),
            )
        self.metric = VECTOR_METRIC_MAP[metric]
        self.logger = logger or Logger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Filter compilation
    # ------------------------------------------------------------------

    def compile_filter(self, filter_input: CanonicalFilterInput) -> Union[StructuredFilter, str]:
        """Translate filter input into this adapter's dialect."""
        return translate(filter_input, self.filter_dialect)

    def compile_guarded_filter(self, filter_input: CanonicalFilterInput, operation: str) -> Union[StructuredFilter, str]:
        """Translate a filter that drives a destructive operation.

        An absent or empty filter is refused: addressing every point takes
        an explicit `MATCH_ALL`. A predicate string that translated to no
        constraint at all is refused as well. On the structured dialect a
        predicate string carrying OR, NOT, ``<>`` or ``!=`` is refused, since
        the reverse parse would change which points it addresses.

        Raises:
            UnsafeOperationError: the filter would address other points than written
        """
        if is_empty_filter(filter_input):
            raise UnsafeOperationError(
                f"Refusing to run {operation} without a filter; pass {MATCH_ALL!r} to address every point",
                operation=operation,
                adapter=self.__class__.__name__,
            )
        if (
            self.filter_dialect == FilterDialect.STRUCTURED
            and isinstance(filter_input, str)
            and not is_conjunctive_predicate(filter_input)
        ):
            raise UnsafeOperationError(
                f"Predicate uses logic the structured dialect cannot express; refusing to run {operation}",
                operation=operation,
                adapter=self.__class__.__name__,
                filter=filter_input,
            )
        compiled = self.compile_filter(filter_input)
        if not is_match_all(filter_input) and is_empty_filter(compiled):
            raise UnsafeOperationError(
                f"Filter translated to no constraint; refusing to run {operation}",
                operation=operation,
                adapter=self.__class__.__name__,
                filter=filter_input if isinstance(filter_input, str) else repr(filter_input),
            )
        return compiled

    def validate_vector(self, vector: List[float], operation: str) -> None:
        """Raise InvalidFieldError when `vector` does not have `dim` components."""
        if len(vector) != self.dim:
            raise InvalidFieldError(
                "Vector dimension mismatch",
                field="vector",
                expected=self.dim,
                actual=len(vector),
                operation=operation,
                adapter=self.__class__.__name__,
            )

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @abstractmethod
    async def initialize(self) -> None:
        """Connect and create the collection if missing. Safe to call repeatedly."""
        raise NotImplementedError

    @abstractmethod
    async def is_collection_empty(self) -> bool:
        """True when the collection holds no points or does not exist yet."""
        raise NotImplementedError

    @abstractmethod
    async def batch_save_data(self, points: List[VectorPoint]) -> None:
        """Upsert all points; either every point is written or the call raises."""
        raise NotImplementedError

    @abstractmethod
    async def batch_delete(self, filter: CanonicalFilterInput) -> None:
        """Delete every point matching `filter`.

        Implementations must compile through `compile_guarded_filter`, so an
        empty filter never deletes everything.
        """
        raise NotImplementedError

    @abstractmethod
    async def search(self, request: SearchRequest, filter: CanonicalFilterInput = None) -> List[ScoredPoint]:
        """Rank points by similarity to `request.vector`, restricted by `filter`."""
        raise NotImplementedError

    @abstractmethod
    async def scroll(self, request: ScrollRequest, filter: CanonicalFilterInput = None) -> ScrollPage:
        """Return one page of matching points plus the cursor for the next page."""
        raise NotImplementedError

    @abstractmethod
    async def update_payload(self, filter: CanonicalFilterInput, payload: Payload) -> None:
        """Merge `payload` into the payload of every point matching `filter`."""
        raise NotImplementedError

    def estimate_points_size(self, points: List[VectorPoint]) -> int:
        """Approximate serialized size of `points` in bytes.

        Counts float32 vector components, the JSON-encoded payload and the id.
        Meant for batching decisions, not for storage accounting.
        """
        total = 0
        for point in points:
            total += len(point.vector) * VECTOR_ITEM_SIZE
            total += len(json.dumps(point.payload, default=str).encode("utf-8"))
            total += len(str(point.id).encode("utf-8"))
        return total
