"""Pydantic schemas for filters and vector store operations."""

from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

from .settings import settings
from .types import FilterValue, PointId

# ---------------------------------------------------------------------------
# Filter value model
# ---------------------------------------------------------------------------


class MatchCondition(BaseModel):
    """Match test on a single field.

    Exactly one of `value`, `any`, `except` or `text` is expected. An explicit
    `value=None` is a null test and is distinct from `value` being absent,
    which is tracked through pydantic's `model_fields_set`.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    value: FilterValue = None
    any: Optional[List[FilterValue]] = None
    except_: Optional[List[FilterValue]] = Field(None, alias="except")
    text: Optional[str] = None

    @property
    def has_value(self) -> bool:
        return "value" in self.model_fields_set


class RangeCondition(BaseModel):
    """Numeric range; any combination of bounds may be set."""

    model_config = ConfigDict(extra="forbid")

    gt: Optional[Union[int, float]] = None
    gte: Optional[Union[int, float]] = None
    lt: Optional[Union[int, float]] = None
    lte: Optional[Union[int, float]] = None

    def bounds(self) -> List[Tuple[str, Union[int, float]]]:
        """Return the bounds that are set, in gt, gte, lt, lte order."""
        return [(name, getattr(self, name)) for name in ("gt", "gte", "lt", "lte") if getattr(self, name) is not None]


class FilterCondition(BaseModel):
    """One named predicate on a payload field.

    `key` is an opaque field name; it is never checked against a schema here.
    When several shapes are set, the first of match, range, is_null,
    is_empty, has_id wins.
    """

    model_config = ConfigDict(extra="forbid")

    key: str
    match: Optional[MatchCondition] = None
    range: Optional[RangeCondition] = None
    is_null: Optional[bool] = None
    is_empty: Optional[bool] = None
    has_id: Optional[List[PointId]] = None


class StructuredFilter(BaseModel):
    """Boolean tree of typed conditions.

    - must: every condition holds (conjunction)
    - should: at least one condition holds (disjunction)
    - must_not: none of the conditions holds (negated disjunction)

    Empty lists mean "no constraint"; an empty filter matches everything.
    """

    model_config = ConfigDict(extra="forbid")

    must: List[FilterCondition] = Field(default_factory=list)
    should: List[FilterCondition] = Field(default_factory=list)
    must_not: List[FilterCondition] = Field(default_factory=list)

    @field_validator("must", "should", "must_not", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def is_empty(self) -> bool:
        return not (self.must or self.should or self.must_not)

    def dump(self) -> Dict[str, Any]:
        """Plain-dict form with `except` spelled as on the wire, unset fields omitted."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class SimpleFilter(RootModel[Dict[str, Union[FilterValue, List[FilterValue]]]]):
    """Flat field -> value / list-of-values filter; always a conjunction.

    Scalars are equality tests and lists are "any of" membership tests.
    """

    root: Dict[str, Union[FilterValue, List[FilterValue]]] = Field(default_factory=dict)

    def items(self) -> Iterator[Tuple[str, Union[FilterValue, List[FilterValue]]]]:
        return iter(self.root.items())

    def is_empty(self) -> bool:
        return not self.root


# ---------------------------------------------------------------------------
# Points and requests
# ---------------------------------------------------------------------------


class VectorPoint(BaseModel):
    id: PointId = Field(..., description="Point identifier.")
    vector: List[float] = Field(default_factory=list, description="Embedding vector.")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Associated payload.")


class ScoredPoint(BaseModel):
    id: PointId
    score: float
    payload: Dict[str, Any] = Field(default_factory=dict)
    vector: Optional[List[float]] = None


class SearchRequest(BaseModel):
    """Similarity query.

    `vector` drives the ranking. `query` is the original text, kept for
    logging and for adapters able to embed it themselves.
    """

    query: Optional[str] = None
    vector: Optional[List[float]] = None
    limit: int = Field(default_factory=lambda: settings.VECTOR_SEARCH_LIMIT, gt=0)
    score_threshold: Optional[float] = None


class ScrollRequest(BaseModel):
    limit: int = Field(default_factory=lambda: settings.VECTOR_SCROLL_LIMIT, gt=0)
    # Opaque cursor returned as ScrollPage.next_offset by the previous page
    offset: Optional[PointId] = None
    with_payload: bool = True
    with_vector: bool = False


class ScrollPage(BaseModel):
    points: List[VectorPoint] = Field(default_factory=list)
    next_offset: Optional[PointId] = None
