"""vectorbridge: one filter language for every vector store.

Express a payload filter once and have it compiled into the dialect of the
active backend: a structured condition tree (Qdrant) or a SQL predicate
(pgvector).
"""

from .abc import VectorStoreAdapter
from .constants import MATCH_ALL, FilterDialect, FilterKind
from .engine import VectorStore, get_adapter_class
from .filters import (
    classify_filter,
    coerce_filter,
    is_empty_filter,
    is_match_all,
    parse_predicate,
    to_predicate_string,
    to_structured,
    translate,
)
from .schema import (
    FilterCondition,
    MatchCondition,
    RangeCondition,
    ScoredPoint,
    ScrollPage,
    ScrollRequest,
    SearchRequest,
    SimpleFilter,
    StructuredFilter,
    VectorPoint,
)

__version__ = "0.1.0"

__all__ = [
    "VectorStoreAdapter",
    "VectorStore",
    "get_adapter_class",
    "MATCH_ALL",
    "FilterDialect",
    "FilterKind",
    "classify_filter",
    "coerce_filter",
    "is_empty_filter",
    "is_match_all",
    "parse_predicate",
    "to_predicate_string",
    "to_structured",
    "translate",
    "FilterCondition",
    "MatchCondition",
    "RangeCondition",
    "ScoredPoint",
    "ScrollPage",
    "ScrollRequest",
    "SearchRequest",
    "SimpleFilter",
    "StructuredFilter",
    "VectorPoint",
]
