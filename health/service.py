"""
Connection monitoring for the document store.

The ConnectionMonitor probes the store with a lightweight metadata call,
bounded by a timeout, and reports the outcome both as a DependencyHealth
value and as a "connect" / "disconnect" signal. It is purely observational:
a failed probe never raises and never blocks other store operations.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Any

from services.document_store import DocumentStoreClient
from telemetry.events import CONNECT, DISCONNECT, StoreEvents

logger = logging.getLogger(__name__)


@dataclass
class DependencyHealth:
    """
    Health status of the document store.

    Attributes:
        name: The name of the dependency (e.g., "elasticsearch", "memory")
        healthy: Whether the store answered the probe
        response_time_ms: The time taken by the probe in milliseconds
        error: Optional error message if the probe failed
        info: Store metadata returned by the probe
    """
    name: str
    healthy: bool
    response_time_ms: float
    error: Optional[str] = None
    info: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "name": self.name,
            "healthy": self.healthy,
            "response_time_ms": round(self.response_time_ms, 2),
        }
        if self.error is not None:
            result["error"] = self.error
        return result


class ConnectionMonitor:
    """
    Probes document store reachability.

    Attributes:
        client: The document store to probe
        events: Signal registry receiving connect/disconnect
        check_timeout: Timeout in seconds for the probe
        name: Dependency name used in results and logs
    """

    def __init__(
        self,
        client: DocumentStoreClient,
        events: StoreEvents,
        check_timeout: float = 5.0,
        name: str = "document_store"
    ):
        self.client = client
        self.events = events
        self.check_timeout = check_timeout
        self.name = name

    async def check_connection(self) -> DependencyHealth:
        """
        Probe the store and emit "connect" or "disconnect".

        Returns:
            DependencyHealth describing the probe outcome
        """
        start_time = time.perf_counter()

        try:
            info = await asyncio.wait_for(self.client.info(), timeout=self.check_timeout)
        except asyncio.TimeoutError as e:
            response_time_ms = (time.perf_counter() - start_time) * 1000
            error = f"Connection timeout after {self.check_timeout}s"
            return await self._disconnected(e, error, response_time_ms)
        except Exception as e:
            response_time_ms = (time.perf_counter() - start_time) * 1000
            return await self._disconnected(e, str(e), response_time_ms)

        response_time_ms = (time.perf_counter() - start_time) * 1000
        await self.events.emit(CONNECT)
        logger.info(
            f"Document store '{self.name}' reachable",
            extra={"extra_data": {"response_time_ms": round(response_time_ms, 2)}}
        )
        return DependencyHealth(
            name=self.name,
            healthy=True,
            response_time_ms=response_time_ms,
            info=info
        )

    async def _disconnected(
        self,
        exc: Exception,
        error: str,
        response_time_ms: float
    ) -> DependencyHealth:
        await self.events.emit(DISCONNECT, exc)
        logger.warning(
            f"Document store '{self.name}' not reachable: {error}",
            extra={"extra_data": {
                "error": error,
                "response_time_ms": round(response_time_ms, 2)
            }}
        )
        return DependencyHealth(
            name=self.name,
            healthy=False,
            response_time_ms=response_time_ms,
            error=error
        )
