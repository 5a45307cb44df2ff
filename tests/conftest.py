"""Pytest configuration and fixtures for vectorbridge tests."""

import math
from typing import Any, Dict, List

import pytest
from dotenv import load_dotenv

from vectorbridge.abc import VectorStoreAdapter
from vectorbridge.constants import FilterDialect
from vectorbridge.schema import (
    FilterCondition,
    ScoredPoint,
    ScrollPage,
    ScrollRequest,
    SearchRequest,
    StructuredFilter,
    VectorPoint,
)

# Load environment variables
load_dotenv()

_MISSING = object()


def _lookup(payload: Dict[str, Any], key: str) -> Any:
    value: Any = payload
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _eval_condition(point: VectorPoint, cond: FilterCondition) -> bool:
    value = _lookup(point.payload, cond.key)
    present = value is not _MISSING

    if cond.match is not None:
        match = cond.match
        if match.has_value:
            if match.value is None:
                return present and value is None
            return present and value == match.value
        if match.any:
            return present and value in match.any
        if match.except_:
            return present and value not in match.except_
        if match.text:
            return isinstance(value, str) and match.text in value
        return True

    if cond.range is not None:
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return not cond.range.bounds()
        checks = {
            "gt": lambda b: value > b,
            "gte": lambda b: value >= b,
            "lt": lambda b: value < b,
            "lte": lambda b: value <= b,
        }
        return all(checks[name](bound) for name, bound in cond.range.bounds())

    if cond.is_null:
        return present and value is None
    if cond.is_empty:
        return not present or value in (None, "", [])
    if cond.has_id:
        return point.id in cond.has_id
    return True


def _eval_filter(point: VectorPoint, flt: StructuredFilter) -> bool:
    if not all(_eval_condition(point, c) for c in flt.must):
        return False
    if flt.should and not any(_eval_condition(point, c) for c in flt.should):
        return False
    return not any(_eval_condition(point, c) for c in flt.must_not)


def _cosine(a: List[float], b: List[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if na == 0 or nb == 0:
        return 0.0
    return dot / (na * nb)


class InMemoryAdapter(VectorStoreAdapter):
    """In-memory adapter evaluating StructuredFilters, for contract tests without a backend."""

    filter_dialect = FilterDialect.STRUCTURED

    def __init__(self, dim: int = 4, metric: str = "cosine", **kwargs: Any) -> None:
        super().__init__(collection_name="memory", dim=dim, metric=metric, **kwargs)
        self.points: Dict[Any, VectorPoint] = {}
        self.initialize_calls = 0
        self.save_calls: List[int] = []

    async def initialize(self) -> None:
        self.initialize_calls += 1

    async def is_collection_empty(self) -> bool:
        return not self.points

    async def batch_save_data(self, points: List[VectorPoint]) -> None:
        self.save_calls.append(len(points))
        for p in points:
            self.validate_vector(p.vector, "batch_save_data")
            self.points[p.id] = p

    def _matching(self, filter_input: Any) -> List[VectorPoint]:
        flt = self.compile_filter(filter_input)
        return [p for p in self.points.values() if _eval_filter(p, flt)]

    async def batch_delete(self, filter: Any) -> None:
        flt = self.compile_guarded_filter(filter, "batch_delete")
        for p in [p for p in self.points.values() if _eval_filter(p, flt)]:
            del self.points[p.id]

    async def search(self, request: SearchRequest, filter: Any = None) -> List[ScoredPoint]:
        scored = [ScoredPoint(id=p.id, score=_cosine(request.vector or [], p.vector), payload=p.payload) for p in self._matching(filter)]
        if request.score_threshold is not None:
            scored = [s for s in scored if s.score >= request.score_threshold]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[: request.limit]

    async def scroll(self, request: ScrollRequest, filter: Any = None) -> ScrollPage:
        items = sorted(self._matching(filter), key=lambda p: str(p.id))
        if request.offset is not None:
            items = [p for p in items if str(p.id) >= str(request.offset)]
        page, rest = items[: request.limit], items[request.limit :]
        return ScrollPage(points=page, next_offset=rest[0].id if rest else None)

    async def update_payload(self, filter: Any, payload: Dict[str, Any]) -> None:
        flt = self.compile_guarded_filter(filter, "update_payload")
        for p in self.points.values():
            if _eval_filter(p, flt):
                p.payload.update(payload)


@pytest.fixture
def sample_points() -> List[VectorPoint]:
    """Sample points (dim=4) with mixed payloads."""
    return [
        VectorPoint(id="p1", vector=[1.0, 0.0, 0.0, 0.0], payload={"status": "active", "count": 1, "owner": "O'Brien"}),
        VectorPoint(id="p2", vector=[0.9, 0.1, 0.0, 0.0], payload={"status": "active", "count": 2, "owner": None}),
        VectorPoint(id="p3", vector=[0.0, 1.0, 0.0, 0.0], payload={"status": "archived", "count": 3}),
        VectorPoint(id="p4", vector=[0.0, 0.0, 1.0, 0.0], payload={"status": "draft", "count": 10, "owner": "ann"}),
    ]


@pytest.fixture
def memory_adapter() -> InMemoryAdapter:
    return InMemoryAdapter()


@pytest.fixture
async def seeded_adapter(memory_adapter: InMemoryAdapter, sample_points: List[VectorPoint]) -> InMemoryAdapter:
    await memory_adapter.batch_save_data(sample_points)
    return memory_adapter


@pytest.fixture
def reset_logging():
    """Reset the module-level logging flag around a test."""
    import vectorbridge.logger as logger_module

    previous = logger_module._configured
    logger_module._configured = False
    yield logger_module
    logger_module._configured = previous
