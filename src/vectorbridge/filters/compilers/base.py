"""Base compiler interface.

Defines the abstract contract every dialect compiler follows.
"""

from abc import ABC, abstractmethod
from typing import Any

from vectorbridge.constants import FilterDialect
from vectorbridge.schema import StructuredFilter

__all__ = ("BaseFilterCompiler",)


class BaseFilterCompiler(ABC):
    """Abstract base class for filter compilers.

    Compilers take a `StructuredFilter`, the richest of the canonical
    representations, and produce a backend-native filter.
    """

    dialect: FilterDialect

    @abstractmethod
    def to_native(self, node: StructuredFilter) -> Any:
        """
        Convert a StructuredFilter into the backend-native representation.
        - str for SQL predicate backends
        - client filter objects for structured backends
        """
        raise NotImplementedError

    @abstractmethod
    def to_expr(self, node: StructuredFilter) -> str:
        """Render the compiled filter as a string for logging/debugging."""
        raise NotImplementedError
