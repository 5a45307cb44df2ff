"""Conversion between the canonical filter representations.

`to_structured` and `to_predicate_string` accept any canonical filter input
and return the representation one backend family consumes. Both are pure
and safe to call from any thread or task.
"""

from typing import List, Union

from vectorbridge.constants import FilterDialect
from vectorbridge.exceptions import FilterError
from vectorbridge.schema import FilterCondition, MatchCondition, SimpleFilter, StructuredFilter
from vectorbridge.types import CanonicalFilterInput

from .canonical import coerce_filter
from .compilers import predicate_compiler
from .parser import parse_predicate

__all__ = (
    "to_structured",
    "to_predicate_string",
    "translate",
)


def _simple_to_structured(node: SimpleFilter) -> StructuredFilter:
    must: List[FilterCondition] = []
    for key, value in node.items():
        if isinstance(value, list):
            match = MatchCondition(any=value)
        else:
            match = MatchCondition(value=value)
        must.append(FilterCondition(key=key, match=match))
    return StructuredFilter(must=must)


def to_structured(filter_input: CanonicalFilterInput) -> StructuredFilter:
    """Convert filter input into a StructuredFilter.

    A StructuredFilter is returned as-is. Predicate strings go through the
    heuristic reverse parser and only simple conjunctions survive intact.

    Raises:
        FilterClassificationError: input cannot be classified
    """
    value = coerce_filter(filter_input)
    if isinstance(value, StructuredFilter):
        return value
    if isinstance(value, SimpleFilter):
        return _simple_to_structured(value)
    if isinstance(value, str):
        return parse_predicate(value)
    return StructuredFilter()


def to_predicate_string(filter_input: CanonicalFilterInput) -> str:
    """Convert filter input into a SQL predicate string.

    A predicate string is returned unchanged; no constraint yields ``""``.

    Raises:
        FilterClassificationError: input cannot be classified
        InvalidFieldError: a literal cannot be expressed in SQL
    """
    value = coerce_filter(filter_input)
    if isinstance(value, str):
        return value
    if isinstance(value, SimpleFilter):
        return predicate_compiler.simple_to_native(value)
    if isinstance(value, StructuredFilter):
        return predicate_compiler.to_native(value)
    return ""


def translate(filter_input: CanonicalFilterInput, dialect: Union[FilterDialect, str]) -> Union[StructuredFilter, str]:
    """Return the representation for `dialect`."""
    try:
        dialect = FilterDialect(dialect)
    except ValueError as e:
        raise FilterError("Unknown filter dialect", dialect=dialect) from e

    if dialect is FilterDialect.STRUCTURED:
        return to_structured(filter_input)
    return to_predicate_string(filter_input)
