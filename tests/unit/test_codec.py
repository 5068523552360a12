"""
Unit tests for the session record codec.
"""

import pytest

from errors.codes import ErrorCode
from errors.exceptions import AppException
from services.document_store import StoredDocument
from session.codec import SessionRecord, decode, encode


class TestEncode:
    """Tests for building document bodies."""

    def test_stamps_ttl_and_modified_time(self):
        body = encode({"user": "ada"}, 3600, 1_000)

        assert body == {
            "session": {"user": "ada"},
            "session_ttl": 3600,
            "session_modified": 1_000,
        }

    def test_caller_mutation_does_not_reach_body(self):
        payload = {"cart": ["apple"]}
        body = encode(payload, 60, 0)

        payload["cart"].append("pear")

        assert body["session"] == {"cart": ["apple"]}

    def test_unserializable_payload_is_validation_error(self):
        with pytest.raises(AppException) as exc_info:
            encode({"handle": object()}, 60, 0)

        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR
        assert exc_info.value.status_code == 400

    def test_non_object_payload_is_validation_error(self):
        with pytest.raises(AppException) as exc_info:
            encode(["not", "a", "dict"], 60, 0)

        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR


class TestDecode:
    """Tests for decoding stored documents."""

    def test_strips_storage_fields(self):
        document = StoredDocument(
            doc_id="sess:abc",
            revision="2-aa",
            body={"session": {"user": "ada"}, "session_ttl": 60, "session_modified": 5_000},
        )

        record = decode(document)

        assert record == SessionRecord(
            id="sess:abc",
            revision="2-aa",
            payload={"user": "ada"},
            ttl_seconds=60,
            modified_at_millis=5_000,
        )

    def test_expiry_instant_is_strict(self):
        record = SessionRecord("sess:a", "1-a", {}, ttl_seconds=10, modified_at_millis=1_000)

        assert record.expires_at_millis == 11_000
        assert not record.is_expired(11_000)
        assert record.is_expired(11_001)
