from typing import Any, Optional, Sequence


class CatalogError(Exception):
    """Base class for all errors raised by the catalog data-access layer."""

    def __init__(self, message: str = "Catalog operation failed."):
        super().__init__(message)


class ObjectNotFoundException(CatalogError):
    """Exception raised when a catalog entity matching the query does not exist."""

    def __init__(self, message: str = "The requested object was not found."):
        super().__init__(message)


class FilterValidationError(CatalogError, ValueError):
    """
    Raised when a filter model is materialized while the builder holds
    recorded validation failures.

    The message describes the first failure; every failure recorded since the
    builder was created (or since the last `set_filter_model`) is available in
    `invalid_arguments`.
    """

    def __init__(self, invalid_arguments: Sequence[Any], message: Optional[str] = None):
        self.invalid_arguments = list(invalid_arguments)
        super().__init__(message or "Filter builder received invalid arguments.")


class PagingError(CatalogError, RuntimeError):
    """Raised when page navigation is requested but no such page exists."""

    def __init__(self, message: str = "The requested page is not available."):
        super().__init__(message)


class CatalogRequestError(CatalogError):
    """Exception raised when the catalog backend fails or rejects a request."""

    def __init__(
        self,
        message: str = "Catalog request failed.",
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        self.status_code = status_code
        self.details = details
        super().__init__(message)
