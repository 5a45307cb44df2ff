"""Filter translation layer.

Write a filter once, as a StructuredFilter, a SimpleFilter mapping or a
SQL predicate string, and hand each backend the dialect it understands.
"""

from .canonical import classify_filter, coerce_filter, is_empty_filter, is_match_all
from .compilers import predicate_compiler
from .parser import is_conjunctive_predicate, parse_predicate
from .translator import to_predicate_string, to_structured, translate

__all__ = (
    "classify_filter",
    "coerce_filter",
    "is_conjunctive_predicate",
    "is_empty_filter",
    "is_match_all",
    "parse_predicate",
    "predicate_compiler",
    "to_predicate_string",
    "to_structured",
    "translate",
)
