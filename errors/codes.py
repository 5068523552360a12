"""
Error code catalog for the session store.

This module defines all error codes raised by the session lifecycle
manager, the expiry garbage collector and the document store adapters.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """
    Enumeration of all error codes used by the session store.

    Each error code maps to the HTTP status a document store would answer
    with for the same condition:
    - Client errors (4xx): bad payloads, missing documents, stale revisions
    - Store errors (5xx): connectivity failures and partially applied batches
    """

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Session payload cannot be serialized (HTTP 400)"""

    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    """Session document does not exist (HTTP 404)"""

    REVISION_CONFLICT = "REVISION_CONFLICT"
    """Write carried a stale revision (HTTP 409)"""

    INDEX_MISSING = "INDEX_MISSING"
    """Expiry index has not been created yet (HTTP 404)"""

    # Store errors (5xx)
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    """Document store unreachable or failing (HTTP 503)"""

    PARTIAL_BULK_FAILURE = "PARTIAL_BULK_FAILURE"
    """Some entries of a bulk delete were rejected (HTTP 500)"""

    CIRCUIT_OPEN = "CIRCUIT_OPEN"
    """Circuit breaker is open (HTTP 503)"""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """Unexpected error (HTTP 500)"""


# Mapping of error codes to their default HTTP status codes
ERROR_CODE_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.DOCUMENT_NOT_FOUND: 404,
    ErrorCode.REVISION_CONFLICT: 409,
    ErrorCode.INDEX_MISSING: 404,
    ErrorCode.STORE_UNAVAILABLE: 503,
    ErrorCode.PARTIAL_BULK_FAILURE: 500,
    ErrorCode.CIRCUIT_OPEN: 503,
    ErrorCode.INTERNAL_ERROR: 500,
}


def get_default_status_code(error_code: ErrorCode) -> int:
    """
    Get the default HTTP status code for an error code.

    Args:
        error_code: The error code to look up

    Returns:
        The default HTTP status code for the error code
    """
    return ERROR_CODE_STATUS_MAP.get(error_code, 500)
