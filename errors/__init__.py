"""
Error handling module for the session store.

This module provides structured error handling with:
- ErrorCode enum for standardized error codes
- AppException class carrying code, message, status and details
- Factory functions for each failure of the session lifecycle
"""

from errors.codes import ErrorCode
from errors.exceptions import (
    AppException,
    circuit_open,
    document_not_found,
    index_missing,
    internal_error,
    partial_bulk_failure,
    revision_conflict,
    store_unavailable,
    validation_error,
)

__all__ = [
    "ErrorCode",
    "AppException",
    "circuit_open",
    "document_not_found",
    "index_missing",
    "internal_error",
    "partial_bulk_failure",
    "revision_conflict",
    "store_unavailable",
    "validation_error",
]
