"""
Mapping between session payloads and persisted session documents.

Persisted document body:
    {
        "session": <payload>,
        "session_ttl": <seconds>,
        "session_modified": <epoch milliseconds>
    }
"""

import json
from dataclasses import dataclass
from typing import Any

from errors.exceptions import validation_error
from services.document_store import StoredDocument

PAYLOAD_FIELD = "session"
TTL_FIELD = "session_ttl"
MODIFIED_FIELD = "session_modified"


@dataclass(frozen=True)
class SessionRecord:
    """
    A decoded session document.

    Attributes:
        id: Document id (``<prefix><session id>``)
        revision: Store revision of this version
        payload: Caller-owned session data
        ttl_seconds: Time-to-live at last write
        modified_at_millis: Time of last write
    """
    id: str
    revision: str
    payload: dict[str, Any]
    ttl_seconds: int
    modified_at_millis: int

    @property
    def expires_at_millis(self) -> int:
        return self.modified_at_millis + self.ttl_seconds * 1000

    def is_expired(self, now_ms: int) -> bool:
        """A record strictly past its expiry instant is logically dead."""
        return now_ms > self.expires_at_millis


def _copy_payload(payload: Any) -> dict[str, Any]:
    try:
        copied = json.loads(json.dumps(payload))
    except (TypeError, ValueError) as e:
        raise validation_error(
            message="Session payload is not JSON serializable",
            details={"error": str(e)}
        ) from e
    if not isinstance(copied, dict):
        raise validation_error(
            message="Session payload must be a JSON object",
            details={"type": type(payload).__name__}
        )
    return copied


def encode(payload: Any, ttl_seconds: int, now_ms: int) -> dict[str, Any]:
    """
    Build the document body for a session payload.

    The payload is copied through a JSON round trip, so later mutation of
    the caller's object never reaches stored state.

    Raises:
        AppException: VALIDATION_ERROR if the payload is not a JSON object.
    """
    return {
        PAYLOAD_FIELD: _copy_payload(payload),
        TTL_FIELD: int(ttl_seconds),
        MODIFIED_FIELD: int(now_ms),
    }


def decode(document: StoredDocument) -> SessionRecord:
    """Decode a stored document into a SessionRecord."""
    body = document.body
    return SessionRecord(
        id=document.doc_id,
        revision=document.revision,
        payload=_copy_payload(body.get(PAYLOAD_FIELD) or {}),
        ttl_seconds=int(body.get(TTL_FIELD, 0)),
        modified_at_millis=int(body.get(MODIFIED_FIELD, 0))
    )
