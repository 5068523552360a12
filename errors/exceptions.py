"""
Exception classes for the session store.

This module provides the AppException class and convenience factory
functions for creating store exceptions with the proper error codes.
Callers tell failures apart by ``error_code``: a stale revision is a
REVISION_CONFLICT, never a DOCUMENT_NOT_FOUND.
"""

from typing import Any, Optional

from errors.codes import ErrorCode, get_default_status_code


class AppException(Exception):
    """
    Base exception class for all session store errors.

    This exception provides structured error information including:
    - error_code: A standardized error code from the ErrorCode enum
    - message: A human-readable error message
    - status_code: The HTTP status code the condition corresponds to
    - details: Optional additional context (e.g., document id, revision)

    Example:
        raise AppException(
            error_code=ErrorCode.REVISION_CONFLICT,
            message="Stale revision for sess:abc",
            details={"doc_id": "sess:abc", "revision": "3-9f1c"}
        )
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None
    ):
        """
        Initialize an AppException.

        Args:
            error_code: The error code from the ErrorCode enum
            message: A human-readable error message
            status_code: The HTTP status code (defaults to the error code's default)
            details: Optional dictionary with additional error context
        """
        self.error_code = error_code
        self.message = message
        self.status_code = status_code or get_default_status_code(error_code)
        self.details = details
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        """True when the error only reports an absent document."""
        return self.error_code == ErrorCode.DOCUMENT_NOT_FOUND

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for JSON serialization.

        Returns:
            Dictionary containing error_code, message, and details
        """
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return (
            f"AppException(error_code={self.error_code.value!r}, "
            f"message={self.message!r}, status_code={self.status_code}, "
            f"details={self.details!r})"
        )


# Convenience factory functions for common error types

def validation_error(
    message: str,
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a validation error exception."""
    return AppException(
        error_code=ErrorCode.VALIDATION_ERROR,
        message=message,
        details=details
    )


def document_not_found(
    message: str = "Document not found",
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a document not found exception."""
    return AppException(
        error_code=ErrorCode.DOCUMENT_NOT_FOUND,
        message=message,
        details=details
    )


def revision_conflict(
    message: str = "Document update conflict",
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a revision conflict exception."""
    return AppException(
        error_code=ErrorCode.REVISION_CONFLICT,
        message=message,
        details=details
    )


def index_missing(
    message: str = "Expiry index does not exist",
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create an index missing exception."""
    return AppException(
        error_code=ErrorCode.INDEX_MISSING,
        message=message,
        details=details
    )


def store_unavailable(
    message: str = "Document store unavailable",
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a store unavailable exception."""
    return AppException(
        error_code=ErrorCode.STORE_UNAVAILABLE,
        message=message,
        details=details
    )


def partial_bulk_failure(
    message: str = "Bulk delete partially failed",
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a partial bulk failure exception."""
    return AppException(
        error_code=ErrorCode.PARTIAL_BULK_FAILURE,
        message=message,
        details=details
    )


def circuit_open(
    message: str = "Service temporarily unavailable",
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a circuit open exception."""
    return AppException(
        error_code=ErrorCode.CIRCUIT_OPEN,
        message=message,
        details=details
    )


def internal_error(
    message: str = "An unexpected error occurred",
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create an internal error exception."""
    return AppException(
        error_code=ErrorCode.INTERNAL_ERROR,
        message=message,
        details=details
    )
