"""Classification of caller-provided filter input.

Callers may hand over a `StructuredFilter`, a `SimpleFilter`, a predicate
string, nothing at all, or a raw mapping in either structured or simple
shape. Raw input is classified and coerced once, here, into one of the
explicit variants; everything downstream dispatches on the variant type.

Classification priority:

1. `str`: predicate string (blank strings count as no constraint)
2. `StructuredFilter`, or a mapping with a `must` / `should` / `must_not` list
3. `SimpleFilter`, or a mapping whose values are all scalars or scalar lists
4. `None` or an empty mapping: no constraint

Anything else, e.g. a mapping holding nested objects, raises
`FilterClassificationError`.
"""

import re
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from vectorbridge.constants import FilterKind
from vectorbridge.exceptions import FilterClassificationError
from vectorbridge.logger import get_logger
from vectorbridge.schema import SimpleFilter, StructuredFilter
from vectorbridge.types import CanonicalFilterInput

__all__ = (
    "classify_filter",
    "coerce_filter",
    "is_empty_filter",
    "is_match_all",
)

logger = get_logger(__name__)

_GROUP_KEYS = ("must", "should", "must_not")
_SCALAR_TYPES = (str, bool, int, float, type(None))
_MATCH_ALL_FORMS = {"1=1", "TRUE"}
_WHITESPACE = re.compile(r"\s+")


def _is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALAR_TYPES)


def _is_simple_value(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return all(_is_scalar(v) for v in value)
    return _is_scalar(value)


def _is_structured_mapping(value: Mapping) -> bool:
    return any(isinstance(value.get(k), list) for k in _GROUP_KEYS)


def classify_filter(filter_input: CanonicalFilterInput) -> FilterKind:
    """Report which representation `filter_input` is in.

    Raises:
        FilterClassificationError: input fits none of the supported shapes
    """
    if isinstance(filter_input, str):
        return FilterKind.PREDICATE if filter_input.strip() else FilterKind.EMPTY
    if isinstance(filter_input, StructuredFilter):
        return FilterKind.STRUCTURED
    if isinstance(filter_input, SimpleFilter):
        return FilterKind.SIMPLE
    if filter_input is None:
        return FilterKind.EMPTY
    if isinstance(filter_input, Mapping):
        if not filter_input:
            return FilterKind.EMPTY
        if _is_structured_mapping(filter_input):
            return FilterKind.STRUCTURED
        for key, value in filter_input.items():
            if not isinstance(key, str) or not _is_simple_value(value):
                raise FilterClassificationError(
                    "Filter mapping is neither structured nor simple",
                    field=key,
                    value_type=type(value).__name__,
                )
        return FilterKind.SIMPLE
    raise FilterClassificationError("Unsupported filter input", value_type=type(filter_input).__name__)


def coerce_filter(filter_input: CanonicalFilterInput) -> Optional[Union[StructuredFilter, SimpleFilter, str]]:
    """Turn raw filter input into its explicit variant.

    Returns:
        The same object for StructuredFilter / SimpleFilter / str input,
        a validated model for raw mappings, or None for "no constraint".

    Raises:
        FilterClassificationError: input cannot be classified or validated
    """
    kind = classify_filter(filter_input)

    if kind is FilterKind.EMPTY:
        return None
    if kind is FilterKind.PREDICATE or isinstance(filter_input, (StructuredFilter, SimpleFilter)):
        return filter_input

    try:
        if kind is FilterKind.STRUCTURED:
            coerced = StructuredFilter.model_validate(dict(filter_input))
        else:
            coerced = SimpleFilter(
                {k: list(v) if isinstance(v, tuple) else v for k, v in filter_input.items()}
            )
    except PydanticValidationError as e:
        raise FilterClassificationError(f"Invalid {kind.value} filter", errors=e.errors()) from e

    logger.debug("Coerced %s filter mapping", kind.value)
    return coerced


def is_match_all(filter_input: CanonicalFilterInput) -> bool:
    """True for the explicit always-true predicate (``1=1`` or ``TRUE``, any case)."""
    if not isinstance(filter_input, str):
        return False
    return _WHITESPACE.sub("", filter_input).upper() in _MATCH_ALL_FORMS


def is_empty_filter(filter_input: CanonicalFilterInput) -> bool:
    """True when the input imposes no constraint at all.

    `MATCH_ALL` is deliberately not empty: it is the explicit way to
    address every point.
    """
    value = coerce_filter(filter_input)
    if value is None:
        return True
    if isinstance(value, (StructuredFilter, SimpleFilter)):
        return value.is_empty()
    return False
