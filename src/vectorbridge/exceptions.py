"""Custom exceptions for vectorbridge.

All errors raised by the library derive from `VectorBridgeError`, which keeps
structured context in `details` and renders it into the message.
"""

from typing import Any, Dict


class VectorBridgeError(Exception):
    """Base exception for all vectorbridge errors.

    Attributes:
        message: Error message
        details: Additional error context as key-value pairs
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        """Initialize exception with message and additional details.

        Args:
            message: Human-readable error message
            **kwargs: Additional context (e.g., collection_name, field, operation)
        """
        self.message = message
        self.details: Dict[str, Any] = kwargs
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if not self.details:
            return self.message

        details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        if self.message:
            return f"{self.message} ({details_str})"
        return details_str

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# Filter exceptions
class FilterError(VectorBridgeError):
    """Base exception for filter translation errors."""


class FilterClassificationError(FilterError):
    """Raised when a filter input matches none of the supported shapes.

    Example:
        >>> raise FilterClassificationError("Unsupported filter value", field="meta", value_type="dict")
    """


# Validation exceptions
class ValidationError(VectorBridgeError):
    """Raised when input validation fails."""


class InvalidFieldError(ValidationError):
    """Raised when a field has an invalid value or type.

    Example:
        >>> raise InvalidFieldError("Unknown filter column", field="colour", operation="search")
    """


# Configuration exceptions
class ConfigurationError(VectorBridgeError):
    """Raised when configuration is invalid or missing."""


class MissingConfigError(ConfigurationError):
    """Raised when required configuration values are not set.

    Example:
        >>> raise MissingConfigError("Configuration not set", config_key="QDRANT_URL")
    """


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid.

    Example:
        >>> raise InvalidConfigError("Unknown backend", config_key="VECTOR_BACKEND", value="faiss")
    """


# Connection exceptions
class ConnectionError(VectorBridgeError):
    """Raised when the backend connection fails or a backend request errors out.

    Example:
        >>> raise ConnectionError("Qdrant request failed", adapter="Qdrant", operation="upsert")
    """


# Search exceptions
class SearchError(VectorBridgeError):
    """Raised when a search request is invalid or fails.

    Example:
        >>> raise SearchError("Vector is required for similarity search", adapter="Qdrant")
    """


class UnsafeOperationError(VectorBridgeError):
    """Raised when a destructive operation would run without an explicit filter.

    Example:
        >>> raise UnsafeOperationError("Refusing to delete without a filter", operation="batch_delete")
    """
