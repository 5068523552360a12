"""
Unit tests for error codes and AppException factories.
"""

import pytest

from errors.codes import ERROR_CODE_STATUS_MAP, ErrorCode, get_default_status_code
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


class TestErrorCodes:
    """Tests for ErrorCode status mapping."""

    def test_every_code_has_a_status(self):
        assert set(ERROR_CODE_STATUS_MAP) == set(ErrorCode)

    def test_conflict_and_not_found_are_distinct(self):
        assert get_default_status_code(ErrorCode.REVISION_CONFLICT) == 409
        assert get_default_status_code(ErrorCode.DOCUMENT_NOT_FOUND) == 404


class TestFactories:
    """Tests for the exception factory functions."""

    @pytest.mark.parametrize("factory,code,status", [
        (validation_error, ErrorCode.VALIDATION_ERROR, 400),
        (document_not_found, ErrorCode.DOCUMENT_NOT_FOUND, 404),
        (revision_conflict, ErrorCode.REVISION_CONFLICT, 409),
        (index_missing, ErrorCode.INDEX_MISSING, 404),
        (store_unavailable, ErrorCode.STORE_UNAVAILABLE, 503),
        (partial_bulk_failure, ErrorCode.PARTIAL_BULK_FAILURE, 500),
        (circuit_open, ErrorCode.CIRCUIT_OPEN, 503),
        (internal_error, ErrorCode.INTERNAL_ERROR, 500),
    ])
    def test_factory_sets_code_and_status(self, factory, code, status):
        error = factory(message="failed", details={"doc_id": "sess:abc"})

        assert isinstance(error, AppException)
        assert error.error_code == code
        assert error.status_code == status
        assert error.details == {"doc_id": "sess:abc"}

    def test_only_missing_document_is_not_found(self):
        assert document_not_found(message="gone").is_not_found
        assert not revision_conflict(message="stale").is_not_found
        assert not index_missing(message="no index").is_not_found

    def test_to_dict(self):
        error = revision_conflict(message="stale", details={"revision": "2-ab"})

        assert error.to_dict() == {
            "error_code": "REVISION_CONFLICT",
            "message": "stale",
            "details": {"revision": "2-ab"},
        }

    def test_to_dict_without_details(self):
        assert "details" not in AppException(ErrorCode.INTERNAL_ERROR, "boom").to_dict()
