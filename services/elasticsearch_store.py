"""
Elasticsearch-backed revisioned document store.

Session documents live in a single index. Optimistic concurrency uses the
sequence number and primary term Elasticsearch assigns on every write; the
pair is exposed as the opaque revision ``"<seq_no>:<primary_term>"``.

The expiry index is compiled into a stored mustache search template with a
script filter over the two timestamp fields. The template is looked up by
id on every query, so a missing template surfaces as INDEX_MISSING and is
recreated by the garbage collector.

Writes wait for the next refresh, so a cleanup run never reads rows it
already deleted. A conditional write or delete against a document that is
gone is answered with a 409 "no document was found"; it is reported as a
missing document, not as a stale revision.

All calls are wrapped with a circuit breaker. Not-found, conflict and bad
request responses are answers from a healthy cluster and never trip it.
"""

import json
import logging
from typing import Any, Optional, Sequence

from elasticsearch import AsyncElasticsearch, BadRequestError, ConflictError, NotFoundError
from elasticsearch.helpers import async_bulk

from errors.exceptions import (
    AppException,
    circuit_open,
    document_not_found,
    index_missing,
    revision_conflict,
    store_unavailable,
    validation_error,
)
from resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitOpenException,
)
from services.document_store import (
    BulkItemResult,
    DocumentStoreClient,
    ExpiryIndexSpec,
    IndexRow,
    StoredDocument,
)

logger = logging.getLogger(__name__)


def encode_revision(seq_no: int, primary_term: int) -> str:
    return f"{seq_no}:{primary_term}"


def decode_revision(revision: str) -> tuple[int, int]:
    """Split a revision token into (seq_no, primary_term)."""
    try:
        seq_no, primary_term = revision.split(":")
        return int(seq_no), int(primary_term)
    except (AttributeError, ValueError):
        raise validation_error(
            message=f"Malformed revision token: {revision!r}",
            details={"revision": revision}
        ) from None


def _body(response: Any) -> Any:
    return getattr(response, "body", response)


# Excluded from the breaker: the cluster answered
_ANSWERED = (NotFoundError, ConflictError, BadRequestError)

MISSING_DOCUMENT_REASON = "no document was found"


def _error_detail(body: Any) -> dict[str, Any]:
    """Return the ``error`` object of an Elasticsearch error body."""
    if not isinstance(body, dict):
        return {}
    detail = body.get("error") or {}
    if isinstance(detail, str):
        return {"reason": detail}
    return detail if isinstance(detail, dict) else {}


def _is_missing_document(detail: dict[str, Any]) -> bool:
    return MISSING_DOCUMENT_REASON in str(detail.get("reason") or "")


class ElasticsearchDocumentStore(DocumentStoreClient):
    """
    Document store over an Elasticsearch index.

    Attributes:
        client: The AsyncElasticsearch client
        index: Name of the index holding session documents
        refresh: Refresh policy passed on writes ("wait_for" by default)
    """

    def __init__(
        self,
        client: AsyncElasticsearch,
        index: str = "sessions",
        circuit_breaker: Optional[CircuitBreaker] = None,
        refresh: Any = "wait_for"
    ):
        self.client = client
        self.index = index
        self.refresh = refresh
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            name="elasticsearch",
            config=CircuitBreakerConfig(
                failure_threshold=3,
                excluded_exceptions=_ANSWERED,
            )
        )

    @classmethod
    def from_settings(cls, settings: Any) -> "ElasticsearchDocumentStore":
        """Build the client and breaker from Settings."""
        from datetime import timedelta

        client = AsyncElasticsearch(
            settings.elastic_endpoint,
            api_key=settings.elastic_api_key.strip('"') if settings.elastic_api_key else None,
            verify_certs=True,
            request_timeout=30
        )
        breaker = CircuitBreaker(
            name="elasticsearch",
            config=CircuitBreakerConfig(
                failure_threshold=settings.store_failure_threshold,
                recovery_timeout=timedelta(seconds=settings.store_recovery_timeout_seconds),
                excluded_exceptions=_ANSWERED,
            )
        )
        return cls(client, index=settings.session_index, circuit_breaker=breaker)

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        """Get the circuit breaker instance for external access."""
        return self._circuit_breaker

    async def _execute(self, operation: str, func, *, not_found=document_not_found, **kwargs):
        """
        Run one client call and translate its failures into AppException.

        Args:
            operation: Operation name used in messages and logs
            func: Bound client coroutine function
            not_found: Factory used when the cluster answers 404, or 409
                because the document no longer exists
            **kwargs: Arguments passed to ``func``
        """
        try:
            return await self._circuit_breaker.execute(func, **kwargs)
        except CircuitOpenException as e:
            time_until_retry = None
            if e.time_until_retry:
                time_until_retry = int(e.time_until_retry.total_seconds())
            raise circuit_open(
                message=f"Elasticsearch temporarily unavailable. Circuit breaker '{e.circuit_name}' is open.",
                details={
                    "circuit_name": e.circuit_name,
                    "time_until_retry_seconds": time_until_retry,
                    "service": "elasticsearch"
                }
            ) from e
        except NotFoundError as e:
            raise not_found(
                message=f"{operation}: not found",
                details={"operation": operation, "error": str(e)}
            ) from e
        except ConflictError as e:
            if _is_missing_document(_error_detail(e.body)):
                raise not_found(
                    message=f"{operation}: not found",
                    details={"operation": operation, "error": str(e)}
                ) from e
            raise revision_conflict(
                message=f"{operation}: document update conflict",
                details={"operation": operation, "error": str(e)}
            ) from e
        except BadRequestError as e:
            raise validation_error(
                message=f"{operation}: request rejected",
                details={
                    "operation": operation,
                    "error_type": _error_detail(e.body).get("type"),
                    "error": str(e)
                }
            ) from e
        except AppException:
            raise
        except Exception as e:
            logger.error(f"Elasticsearch {operation} failed: {e}")
            raise store_unavailable(
                message=f"Database operation failed: {operation}",
                details={"operation": operation, "error": str(e)}
            ) from e

    async def setup(self) -> None:
        """Create the session index with its mapping if it doesn't exist."""
        exists = await self._execute(
            f"indices.exists({self.index})", self.client.indices.exists, index=self.index
        )
        if _body(exists):
            logger.info(f"Index already exists: {self.index}")
            return
        try:
            await self._execute(
                f"indices.create({self.index})",
                self.client.indices.create,
                index=self.index,
                mappings=self._get_session_mapping()
            )
            logger.info(f"Created index: {self.index}")
        except AppException as e:
            # Another process won the race
            if (e.details or {}).get("error_type") != "resource_already_exists_exception":
                raise
            logger.info(f"Index created concurrently: {self.index}")

    def _get_session_mapping(self) -> dict[str, Any]:
        return {
            "dynamic": "strict",
            "properties": {
                "session": {"type": "object", "enabled": False},
                "session_ttl": {"type": "long"},
                "session_modified": {"type": "long"},
            }
        }

    async def get(self, doc_id: str) -> StoredDocument:
        response = await self._execute(
            f"get({doc_id})", self.client.get, index=self.index, id=doc_id
        )
        return StoredDocument(
            doc_id=doc_id,
            revision=encode_revision(response["_seq_no"], response["_primary_term"]),
            body=dict(response["_source"])
        )

    async def put(
        self,
        doc_id: str,
        body: dict[str, Any],
        revision: Optional[str] = None
    ) -> str:
        kwargs: dict[str, Any] = {}
        if revision is None:
            kwargs["op_type"] = "create"
        else:
            kwargs["if_seq_no"], kwargs["if_primary_term"] = decode_revision(revision)

        # For a writer holding a revision, a document deleted since its read
        # is a lost update
        not_found = document_not_found if revision is None else revision_conflict
        response = await self._execute(
            f"put({doc_id})",
            self.client.index,
            not_found=not_found,
            index=self.index,
            id=doc_id,
            document=body,
            refresh=self.refresh,
            **kwargs
        )
        return encode_revision(response["_seq_no"], response["_primary_term"])

    async def remove(self, doc_id: str, revision: str) -> None:
        seq_no, primary_term = decode_revision(revision)
        await self._execute(
            f"remove({doc_id})",
            self.client.delete,
            index=self.index,
            id=doc_id,
            if_seq_no=seq_no,
            if_primary_term=primary_term,
            refresh=self.refresh
        )

    async def bulk_delete(self, entries: Sequence[IndexRow]) -> list[BulkItemResult]:
        actions = []
        for entry in entries:
            seq_no, primary_term = decode_revision(entry.value)
            actions.append({
                "_op_type": "delete",
                "_index": self.index,
                "_id": entry.key,
                "if_seq_no": seq_no,
                "if_primary_term": primary_term,
            })

        async def _do_bulk():
            # raise_on_error=False keeps going past rejected entries
            return await async_bulk(
                self.client,
                actions,
                refresh=self.refresh,
                raise_on_error=False,
                raise_on_exception=False
            )

        _, errors = await self._execute(f"bulk_delete({self.index})", _do_bulk)

        failed = {}
        for error in errors:
            info = self._extract_bulk_error_info(error)
            failed[info.doc_id] = info
            logger.error(
                f"Bulk delete rejected document in '{self.index}': "
                f"doc_id={info.doc_id}, status={info.status}, "
                f"error_type={info.error_type}, reason={info.reason}"
            )

        return [
            failed.get(entry.key) or BulkItemResult(doc_id=entry.key, ok=True, status=200)
            for entry in entries
        ]

    def _extract_bulk_error_info(self, error: dict[str, Any]) -> BulkItemResult:
        """
        Extract a per-item result from a bulk error entry.

        Bulk errors look like ``{'delete': {'_id': ..., 'status': 409,
        'error': {'type': ..., 'reason': ...}}}``. A conditional delete of a
        document that is already gone is a 409 whose reason ends in "but no
        document was found"; it is reported as 404 (already absent).
        """
        op_result = error.get("delete") or next(iter(error.values()), {})
        if not isinstance(op_result, dict):
            return BulkItemResult(doc_id="", ok=False, reason=str(error))

        detail = _error_detail(op_result)
        status = op_result.get("status")
        if status == 409 and _is_missing_document(detail):
            status = 404
        return BulkItemResult(
            doc_id=op_result.get("_id", ""),
            ok=False,
            status=status,
            error_type=detail.get("type") or op_result.get("result"),
            reason=detail.get("reason")
        )

    def _template_id(self, spec: ExpiryIndexSpec) -> str:
        return f"{self.index}-{spec.design_name}-{spec.index_name}"

    def _compile_template(self, spec: ExpiryIndexSpec) -> str:
        """
        Compile the selection rule into a mustache search template source.

        ``size`` and ``now`` are substituted unquoted, so the source is kept
        as a string rather than an object.
        """
        modified, ttl = spec.modified_field, spec.ttl_field
        script = (
            f"doc['{modified}'].size() > 0 && doc['{ttl}'].size() > 0 && "
            f"params.now > doc['{modified}'].value + doc['{ttl}'].value * 1000L"
        )
        template = {
            "size": "__SIZE__",
            "_source": False,
            "seq_no_primary_term": True,
            "sort": [{modified: "asc"}],
            "query": {
                "bool": {
                    "filter": [
                        {"script": {"script": {"source": script, "params": {"now": "__NOW__"}}}}
                    ]
                }
            },
        }
        return (
            json.dumps(template)
            .replace('"__SIZE__"', "{{size}}")
            .replace('"__NOW__"', "{{now}}")
        )

    async def query_index(
        self,
        spec: ExpiryIndexSpec,
        limit: int,
        now_ms: int
    ) -> list[IndexRow]:
        response = await self._execute(
            f"query_index({spec.qualified_name})",
            self.client.search_template,
            not_found=index_missing,
            index=self.index,
            id=self._template_id(spec),
            params={"now": now_ms, "size": max(limit, 0)},
            ignore_unavailable=True
        )
        return [
            IndexRow(
                key=hit["_id"],
                value=encode_revision(hit["_seq_no"], hit["_primary_term"])
            )
            for hit in response["hits"]["hits"]
        ]

    async def create_index(self, spec: ExpiryIndexSpec) -> None:
        # put_script overwrites, so identical concurrent definitions converge
        await self._execute(
            f"create_index({spec.qualified_name})",
            self.client.put_script,
            id=self._template_id(spec),
            script={"lang": "mustache", "source": self._compile_template(spec)}
        )
        logger.info(f"Created expiry index template: {self._template_id(spec)}")

    async def info(self) -> dict[str, Any]:
        response = await self._execute("info", self.client.info)
        return dict(_body(response))

    async def close(self) -> None:
        await self.client.close()
