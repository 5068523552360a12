"""
Session store over a revisioned document store.

Every session is one document. Writes go through optimistic concurrency:
``set``, ``touch`` and ``destroy`` first read the current revision and then
write against it, so a concurrent writer makes the second write fail with
REVISION_CONFLICT instead of silently overwriting. Nothing is retried.

Expiry is enforced twice: lazily on read (an expired session is deleted by
``get`` and reported as absent) and in bulk by the garbage collector, which
callers schedule through ``cleanup_expired``.

Failures other than a missing session are emitted on the "error" signal
before being raised.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from errors.codes import ErrorCode
from errors.exceptions import AppException, document_not_found, internal_error
from health.service import ConnectionMonitor, DependencyHealth
from services.document_store import DocumentStoreClient
from session.callbacks import Callback, with_callback
from session.cleanup import CleanupResult, SessionGarbageCollector
from session.codec import decode, encode
from session.expiry_index import ExpiryIndex, build_expiry_index_spec
from session.options import SessionStoreConfig
from session.store import SessionStore
from session.ttl import compute_ttl, cookie_max_age
from telemetry.events import ERROR, StoreEvents
from telemetry.service import TelemetryService, get_telemetry_service

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _now_ms() -> int:
    return int(time.time() * 1000)


class DocumentSessionStore(SessionStore):
    """
    Session store persisting sessions as revisioned documents.

    Example:
        store = DocumentSessionStore(client=MemoryDocumentStore())
        store.events.on("error", report_error)
        await store.connect()

        await store.set("abc", {"user": "ada", "cookie": {"maxAge": 3600000}})
        session = await store.get("abc")

    Attributes:
        client: The document store handle, shared by all operations
        config: Construction-time options
        events: connect/disconnect/error signal registry
    """

    def __init__(
        self,
        client: Optional[DocumentStoreClient] = None,
        config: Optional[SessionStoreConfig] = None,
        events: Optional[StoreEvents] = None,
        telemetry: Optional[TelemetryService] = None,
        clock: Callable[[], int] = _now_ms
    ):
        """
        Initialize the store.

        Args:
            client: Document store to use. When omitted, one is created from
                settings and owned (closed) by this store.
            config: Store options; defaults apply when omitted
            events: Signal registry; a new one is created when omitted
            telemetry: Telemetry service used to log operations
            clock: Returns the current time in epoch milliseconds
        """
        self.config = config or SessionStoreConfig()
        self.events = events or StoreEvents()
        self._clock = clock
        self._telemetry = telemetry or get_telemetry_service() or TelemetryService(configure_root=False)

        self._owns_client = client is None
        if client is None:
            from config.settings import get_settings
            from services import create_document_store
            client = create_document_store(get_settings())
        self.client = client

        self.expiry_index = ExpiryIndex(
            client,
            build_expiry_index_spec(
                self.config.expiry_index_design_name,
                self.config.expiry_index_name,
            )
        )
        self._collector = SessionGarbageCollector(
            self.expiry_index,
            max_expired=self.config.max_expired_per_cleanup,
            clock=clock
        )
        self._monitor = ConnectionMonitor(
            client,
            self.events,
            check_timeout=self.config.connection_check_timeout,
            name=type(client).__name__
        )

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "DocumentSessionStore":
        """Create a store, and the document store it owns, from Settings."""
        from services import create_document_store

        store = cls(
            client=create_document_store(settings),
            config=SessionStoreConfig.from_settings(settings),
            **kwargs
        )
        store._owns_client = True
        return store

    def _doc_id(self, session_id: str) -> str:
        return f"{self.config.key_prefix}{session_id}"

    async def _run(self, operation: str, session_id: Optional[str], awaitable: Awaitable[T]) -> T:
        """Await one operation, logging it and emitting "error" on failure."""
        start_time = time.perf_counter()
        try:
            result = await awaitable
        except AppException as e:
            self._log_operation(operation, session_id, start_time, e)
            if not e.is_not_found:
                await self.events.emit(ERROR, e)
            raise
        except Exception as e:
            error = internal_error(
                message=f"Unexpected failure in {operation}",
                details={"operation": operation, "session_id": session_id, "error": str(e)}
            )
            self._log_operation(operation, session_id, start_time, error)
            await self.events.emit(ERROR, error)
            raise error from e

        self._log_operation(operation, session_id, start_time)
        return result

    def _log_operation(
        self,
        operation: str,
        session_id: Optional[str],
        start_time: float,
        error: Optional[AppException] = None
    ) -> None:
        self._telemetry.log_store_operation(
            operation=operation,
            session_id=session_id,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            success=error is None,
            error=error.message if error else None,
            error_code=error.error_code.value if error else None
        )

    # Lifecycle operations

    async def get(
        self,
        session_id: str,
        callback: Optional[Callback] = None
    ) -> Optional[dict[str, Any]]:
        return await with_callback(self._run("get", session_id, self._get(session_id)), callback)

    async def set(
        self,
        session_id: str,
        data: dict[str, Any],
        callback: Optional[Callback] = None
    ) -> None:
        return await with_callback(self._run("set", session_id, self._set(session_id, data)), callback)

    async def touch(
        self,
        session_id: str,
        data: dict[str, Any],
        callback: Optional[Callback] = None
    ) -> None:
        return await with_callback(self._run("touch", session_id, self._touch(session_id, data)), callback)

    async def destroy(
        self,
        session_id: str,
        callback: Optional[Callback] = None
    ) -> None:
        return await with_callback(self._run("destroy", session_id, self._destroy(session_id)), callback)

    async def _get(self, session_id: str) -> Optional[dict[str, Any]]:
        try:
            record = decode(await self.client.get(self._doc_id(session_id)))
        except AppException as e:
            if e.is_not_found:
                logger.info(f'GET "{session_id}" session not found')
                return None
            raise

        if record.is_expired(self._clock()):
            logger.info(
                f'GET "{session_id}" expired session',
                extra={"extra_data": {"expired_at": record.expires_at_millis}}
            )
            await self._destroy(session_id, missing_ok=True)
            return None

        logger.debug(f'GET "{session_id}" found rev "{record.revision}"')
        return record.payload

    async def _set(self, session_id: str, data: dict[str, Any]) -> None:
        doc_id = self._doc_id(session_id)
        ttl = compute_ttl(self.config.ttl_override, cookie_max_age(data))
        body = encode(data, ttl, self._clock())

        # The current revision is required to replace an existing session
        try:
            revision = (await self.client.get(doc_id)).revision
        except AppException as e:
            if not e.is_not_found:
                raise
            revision = None

        new_revision = await self.client.put(doc_id, body, revision=revision)
        logger.debug(f'SET "{session_id}" rev "{revision}" -> "{new_revision}"')

    async def _touch(self, session_id: str, data: dict[str, Any]) -> None:
        if self.config.disable_ttl_refresh:
            return

        doc_id = self._doc_id(session_id)
        record = decode(await self.client.get(doc_id))
        now_ms = self._clock()
        if record.is_expired(now_ms):
            raise document_not_found(
                message=f"Session '{session_id}' has expired",
                details={"doc_id": doc_id, "expired_at": record.expires_at_millis}
            )

        ttl = compute_ttl(self.config.ttl_override, cookie_max_age(data))
        await self.client.put(doc_id, encode(record.payload, ttl, now_ms), revision=record.revision)
        logger.debug(f'TOUCH "{session_id}" rev "{record.revision}" ttl {ttl}s')

    async def _destroy(self, session_id: str, missing_ok: bool = False) -> None:
        """
        Read the current revision and delete it.

        Args:
            session_id: Session to delete
            missing_ok: Reclaiming an expired session; a session that is
                already gone counts as deleted, and one rewritten in the
                meantime is left alone.
        """
        doc_id = self._doc_id(session_id)
        try:
            current = await self.client.get(doc_id)
            await self.client.remove(doc_id, current.revision)
        except AppException as e:
            if missing_ok and e.is_not_found:
                logger.info(f'DESTROY "{session_id}" already absent')
                return
            if missing_ok and e.error_code == ErrorCode.REVISION_CONFLICT:
                logger.info(f'DESTROY "{session_id}" rewritten concurrently, not reclaimed')
                return
            raise
        logger.debug(f'DESTROY "{session_id}" rev "{current.revision}"')

    # Maintenance

    async def cleanup_expired(self) -> CleanupResult:
        """Delete one bounded batch of expired sessions."""
        start_time = time.perf_counter()
        try:
            result = await self._collector.cleanup_expired()
        except AppException as e:
            self._log_operation("cleanup", None, start_time, e)
            raise
        self._log_operation("cleanup", None, start_time)
        return result

    async def check_connection(self) -> DependencyHealth:
        """Probe the store and emit "connect" or "disconnect"."""
        return await self._monitor.check_connection()

    async def connect(self) -> DependencyHealth:
        """Check connectivity and prepare storage when the store is reachable."""
        health = await self.check_connection()
        if health.healthy:
            await self.client.setup()
        return health

    async def close(self) -> None:
        """Close the document store if this store created it."""
        if self._owns_client:
            await self.client.close()
