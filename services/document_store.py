"""
Revisioned document store interface.

This module defines the contract the session store relies on: keyed
documents whose every write yields an opaque revision token, writes that
fail on a stale revision, a bulk delete with per-item results, and a
queryable expiry index described declaratively by ExpiryIndexSpec.

Implementations translate their driver errors into AppException:
- DOCUMENT_NOT_FOUND when a document does not exist
- REVISION_CONFLICT when a revision is stale (or a create hits an
  existing document)
- INDEX_MISSING when the expiry index has not been created
- STORE_UNAVAILABLE / CIRCUIT_OPEN for connectivity failures
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence


@dataclass(frozen=True)
class StoredDocument:
    """
    A document as read from the store.

    Attributes:
        doc_id: Document identifier
        revision: Revision token of the stored version
        body: Document fields, without store metadata
    """
    doc_id: str
    revision: str
    body: dict[str, Any]


@dataclass(frozen=True)
class IndexRow:
    """A row of the expiry index: key is the document id, value its revision."""
    key: str
    value: str


@dataclass(frozen=True)
class BulkItemResult:
    """
    Outcome of one entry of a bulk delete.

    Attributes:
        doc_id: Document the entry targeted
        ok: Whether the store applied the delete
        status: Store status code for the entry (404 when already absent,
            409 on a stale revision)
        error_type: Store-specific error type, if any
        reason: Human-readable rejection reason, if any
    """
    doc_id: str
    ok: bool
    status: Optional[int] = None
    error_type: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for error details."""
        return {
            "doc_id": self.doc_id,
            "status": self.status,
            "error_type": self.error_type,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ExpiryIndexSpec:
    """
    Declarative definition of the expired-sessions index.

    A document is selected when both timestamp fields are present and
    ``now_ms > body[modified_field] + body[ttl_field] * 1000``. Selected
    documents project to a row keyed by document id, valued by revision.
    Stores compile this definition into their own index mechanism.

    Attributes:
        design_name: Namespace the index is stored under
        index_name: Name of the index inside the namespace
        modified_field: Field holding the last-modified time in milliseconds
        ttl_field: Field holding the time-to-live in seconds
    """
    design_name: str
    index_name: str
    modified_field: str = "session_modified"
    ttl_field: str = "session_ttl"

    @property
    def qualified_name(self) -> str:
        return f"{self.design_name}/{self.index_name}"

    def selects(self, body: dict[str, Any], now_ms: int) -> bool:
        """Evaluate the selection rule against a document body."""
        modified = body.get(self.modified_field)
        ttl = body.get(self.ttl_field)
        for value in (modified, ttl):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
        return now_ms > modified + ttl * 1000

    def to_dict(self) -> dict[str, Any]:
        return {
            "design_name": self.design_name,
            "index_name": self.index_name,
            "select": {
                "modified_field": self.modified_field,
                "ttl_field": self.ttl_field,
                "rule": "now > modified + ttl * 1000",
            },
            "emit": {"key": "id", "value": "revision"},
        }


class DocumentStoreClient(ABC):
    """
    Abstract revisioned document store.

    All methods are async; every call is one round trip to the store.
    """

    @abstractmethod
    async def get(self, doc_id: str) -> StoredDocument:
        """
        Read a document.

        Raises:
            AppException: DOCUMENT_NOT_FOUND if absent, or a store error.
        """

    @abstractmethod
    async def put(
        self,
        doc_id: str,
        body: dict[str, Any],
        revision: Optional[str] = None
    ) -> str:
        """
        Write a document and return its new revision.

        Without ``revision`` the document is created and the write fails
        with REVISION_CONFLICT if it already exists. With ``revision`` the
        write replaces that exact version and fails with REVISION_CONFLICT
        if the stored revision differs.
        """

    @abstractmethod
    async def remove(self, doc_id: str, revision: str) -> None:
        """
        Delete the given revision of a document.

        Raises:
            AppException: DOCUMENT_NOT_FOUND if absent, REVISION_CONFLICT
                if the revision is stale, or a store error.
        """

    @abstractmethod
    async def bulk_delete(
        self,
        entries: Sequence[IndexRow]
    ) -> list[BulkItemResult]:
        """
        Delete many documents in one request.

        Each entry carries the revision to delete. Entries are applied
        independently; rejected entries are reported in the results, not
        raised. Only a failure of the request as a whole raises.
        """

    @abstractmethod
    async def query_index(
        self,
        spec: ExpiryIndexSpec,
        limit: int,
        now_ms: int
    ) -> list[IndexRow]:
        """
        Query the expiry index for at most ``limit`` rows as of ``now_ms``.

        Raises:
            AppException: INDEX_MISSING if the index was never created.
        """

    @abstractmethod
    async def create_index(self, spec: ExpiryIndexSpec) -> None:
        """Create the expiry index. Creating an identical definition twice succeeds."""

    @abstractmethod
    async def info(self) -> dict[str, Any]:
        """Lightweight metadata probe used for reachability checks."""

    async def setup(self) -> None:
        """Prepare storage (indices, mappings) once the store is reachable."""

    async def close(self) -> None:
        """Release connections held by the client."""
