"""Engine exceptions.

Every engine operation either succeeds or raises one of these. The HTTP layer
maps them onto status codes through ``status_code``.
"""

from typing import Any, Dict, Optional

class PromoCatalogError(Exception):
    """Base exception for promotion catalog errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class ValidationError(PromoCatalogError):
    """Malformed or missing input.

    Raised before any write is issued. Recoverable by correcting the input,
    never retried automatically.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            details=details,
        )

class NotFoundError(PromoCatalogError):
    """Referenced promotion does not exist."""

    def __init__(
        self,
        message: str = "Promotion not found",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details=details,
        )

class StoreError(PromoCatalogError):
    """Failure reported by the underlying store (network, timeout, query error).

    The engine does not retry. Every individual write is idempotent, so the
    caller may re-run the failed operation to repair a partial multi-write.
    """

    def __init__(
        self,
        message: str = "Store operation failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code="STORE_ERROR",
            status_code=500,
            details=details,
        )
