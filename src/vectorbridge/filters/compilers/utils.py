"""Compiler utility functions.

Literal formatting for predicate strings. Every value that ends up inside a
predicate string goes through `format_sql_value`; it is the only guard
against injection through field values.
"""

import math
from decimal import Decimal
from typing import Iterable

from vectorbridge.exceptions import InvalidFieldError
from vectorbridge.types import FilterValue


def format_sql_value(value: FilterValue) -> str:
    """Format a scalar filter value as a SQL literal.

    - None -> NULL
    - bool -> TRUE / FALSE
    - str -> single-quoted, embedded quotes doubled
    - int / float -> decimal text, unquoted

    Raises:
        InvalidFieldError: For non-finite floats and unsupported types
    """
    if value is None:
        return "NULL"
    # bool is an int subclass, test it first
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise InvalidFieldError("Non-finite number cannot be used as a filter literal", value=value)
        if isinstance(value, int):
            return str(value)
        # positional notation only, never 1e-07
        text = format(Decimal(repr(value)), "f")
        return text if "." in text else text + ".0"
    raise InvalidFieldError("Unsupported filter value type", value_type=type(value).__name__)


def format_sql_list(values: Iterable[FilterValue]) -> str:
    """Format values as a parenthesized, comma separated literal list."""
    return "(" + ", ".join(format_sql_value(v) for v in values) + ")"


def format_like_contains(text: str) -> str:
    """Quote `text` as a LIKE pattern matching any string containing it."""
    return "'%" + text.replace("'", "''") + "%'"
