"""
In-memory revisioned document store.

Used in development and tests. Revisions follow the CouchDB shape
``<generation>-<hex>``; the generation keeps counting across deletes so a
recreated document never repeats an old revision. Every call yields to the
event loop once before touching state, so concurrent coroutines interleave
the way real store round trips do, while each individual call stays atomic.
"""

import asyncio
import copy
import logging
import uuid
from typing import Any, Optional, Sequence

from errors.exceptions import (
    document_not_found,
    index_missing,
    revision_conflict,
    store_unavailable,
)
from services.document_store import (
    BulkItemResult,
    DocumentStoreClient,
    ExpiryIndexSpec,
    IndexRow,
    StoredDocument,
)

logger = logging.getLogger(__name__)


class MemoryDocumentStore(DocumentStoreClient):
    """
    Revisioned document store held in a dict.

    Attributes:
        name: Database name reported by info()
    """

    def __init__(self, name: str = "sessions"):
        self.name = name
        self._documents: dict[str, tuple[str, dict[str, Any]]] = {}
        self._generations: dict[str, int] = {}
        self._indexes: dict[str, ExpiryIndexSpec] = {}
        self._closed = False

    def __contains__(self, doc_id: str) -> bool:
        return doc_id in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    async def _round_trip(self) -> None:
        await asyncio.sleep(0)
        if self._closed:
            raise store_unavailable(
                message=f"Memory store '{self.name}' is closed",
                details={"store": self.name}
            )

    def _next_revision(self, doc_id: str) -> str:
        generation = self._generations.get(doc_id, 0) + 1
        self._generations[doc_id] = generation
        return f"{generation}-{uuid.uuid4().hex[:16]}"

    def _check_revision(self, doc_id: str, revision: Optional[str]) -> None:
        current = self._documents.get(doc_id)
        current_revision = current[0] if current else None
        if current_revision != revision:
            raise revision_conflict(
                message=f"Document update conflict for '{doc_id}'",
                details={
                    "doc_id": doc_id,
                    "revision": revision,
                    "current_revision": current_revision,
                }
            )

    async def get(self, doc_id: str) -> StoredDocument:
        await self._round_trip()
        stored = self._documents.get(doc_id)
        if stored is None:
            raise document_not_found(
                message=f"Document '{doc_id}' not found",
                details={"doc_id": doc_id}
            )
        revision, body = stored
        return StoredDocument(doc_id=doc_id, revision=revision, body=copy.deepcopy(body))

    async def put(
        self,
        doc_id: str,
        body: dict[str, Any],
        revision: Optional[str] = None
    ) -> str:
        await self._round_trip()
        self._check_revision(doc_id, revision)
        new_revision = self._next_revision(doc_id)
        self._documents[doc_id] = (new_revision, copy.deepcopy(body))
        return new_revision

    async def remove(self, doc_id: str, revision: str) -> None:
        await self._round_trip()
        self._remove(doc_id, revision)

    def _remove(self, doc_id: str, revision: str) -> None:
        if doc_id not in self._documents:
            raise document_not_found(
                message=f"Document '{doc_id}' not found",
                details={"doc_id": doc_id}
            )
        self._check_revision(doc_id, revision)
        # Deletion is a write too: it consumes a generation
        self._next_revision(doc_id)
        del self._documents[doc_id]

    async def bulk_delete(self, entries: Sequence[IndexRow]) -> list[BulkItemResult]:
        await self._round_trip()
        results = []
        for entry in entries:
            if entry.key not in self._documents:
                results.append(BulkItemResult(
                    doc_id=entry.key, ok=False, status=404,
                    error_type="not_found", reason="missing"
                ))
                continue
            current_revision = self._documents[entry.key][0]
            if current_revision != entry.value:
                results.append(BulkItemResult(
                    doc_id=entry.key, ok=False, status=409,
                    error_type="conflict", reason="Document update conflict."
                ))
                continue
            self._remove(entry.key, entry.value)
            results.append(BulkItemResult(doc_id=entry.key, ok=True, status=200))
        return results

    async def query_index(
        self,
        spec: ExpiryIndexSpec,
        limit: int,
        now_ms: int
    ) -> list[IndexRow]:
        await self._round_trip()
        if spec.qualified_name not in self._indexes:
            raise index_missing(
                message=f"Index '{spec.qualified_name}' does not exist",
                details={"index": spec.qualified_name}
            )
        definition = self._indexes[spec.qualified_name]
        rows = [
            IndexRow(key=doc_id, value=revision)
            for doc_id, (revision, body) in sorted(self._documents.items())
            if definition.selects(body, now_ms)
        ]
        return rows[:max(limit, 0)]

    async def create_index(self, spec: ExpiryIndexSpec) -> None:
        await self._round_trip()
        self._indexes[spec.qualified_name] = spec
        logger.info(f"Created index {spec.qualified_name}")

    async def info(self) -> dict[str, Any]:
        await self._round_trip()
        return {"db_name": self.name, "doc_count": len(self._documents)}

    async def close(self) -> None:
        self._closed = True
