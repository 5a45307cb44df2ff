"""Dialect compilers.

The Qdrant compiler depends on `qdrant_client` and is imported from
`vectorbridge.filters.compilers.qdrant` by the adapter that needs it.
"""

from .base import BaseFilterCompiler
from .predicate import PredicateCompiler, predicate_compiler

__all__ = (
    "BaseFilterCompiler",
    "PredicateCompiler",
    "predicate_compiler",
)
