"""
Common constants shared by the filter translator and the adapters.
"""

from enum import Enum


class VectorMetric:
    COSINE = "cosine"
    DOT_PRODUCT = "dot_product"
    EUCLIDEAN = "euclidean"


VECTOR_METRIC_MAP = {
    "cosine": VectorMetric.COSINE,
    "dot_product": VectorMetric.DOT_PRODUCT,
    "euclidean": VectorMetric.EUCLIDEAN,
}


class FilterDialect(str, Enum):
    """Native filter representation a backend consumes."""

    STRUCTURED = "structured"
    PREDICATE = "predicate"


class FilterKind(str, Enum):
    """Shape of a caller-provided filter input."""

    STRUCTURED = "structured"
    PREDICATE = "predicate"
    SIMPLE = "simple"
    EMPTY = "empty"


# Explicit always-true predicate; the only way to address every point in
# batch_delete / update_payload.
MATCH_ALL = "1=1"
