"""Domain exceptions.

Services raise these; a single handler in ``app.main`` renders them into the
``{success: false, message, data: null}`` envelope with ``status_code``.
"""

from typing import Any, Optional

from pymongo.errors import (
    AutoReconnect,
    ConnectionFailure,
    ExecutionTimeout,
    NetworkTimeout,
    PyMongoError,
    ServerSelectionTimeoutError,
)


class CatalogError(Exception):
    """Base class for catalog errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInputError(CatalogError):
    """Malformed request input, rejected before any store access."""

    status_code = 400


class MissingIdentityError(CatalogError):
    status_code = 401


class NotFoundError(CatalogError):
    status_code = 404


class ConflictError(CatalogError):
    """A creation/update constraint failed (duplicate title, unknown categories)."""

    status_code = 409


class UpstreamError(CatalogError):
    """The store failed or timed out. ``retryable`` maps to 503, otherwise 500."""

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.retryable = retryable
        self.status_code = 503 if retryable else 500


RETRYABLE_STORE_ERRORS = (
    ServerSelectionTimeoutError,
    AutoReconnect,
    ConnectionFailure,
    NetworkTimeout,
    ExecutionTimeout,
)


def upstream_from(exc: PyMongoError, operation: str) -> UpstreamError:
    """Wrap a driver error, flagging transient ones as retryable."""
    retryable = isinstance(exc, RETRYABLE_STORE_ERRORS)
    msg = "Store unavailable, retry later" if retryable else "Store operation failed"
    return UpstreamError(
        msg,
        retryable=retryable,
        details={"operation": operation, "error": type(exc).__name__},
    )
