"""
Observability signals emitted by the session store.

Signals:
- "connect": the document store answered a reachability probe
- "disconnect": the reachability probe failed (listener gets the exception)
- "error": a lifecycle operation failed for a reason other than a missing
  session (listener gets the AppException)
"""

import asyncio
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

CONNECT = "connect"
DISCONNECT = "disconnect"
ERROR = "error"


class StoreEvents:
    """
    Listener registry for store signals.

    Listeners may be plain callables or coroutine functions. A failing
    listener is logged and does not stop delivery to the others.
    """

    def __init__(self):
        self._listeners: dict[str, list[Callable[..., Any]]] = {}

    def on(self, event: str, listener: Callable[..., Any]) -> Callable[..., Any]:
        """Register a listener; returns it so it can be used as a decorator."""
        self._listeners.setdefault(event, []).append(listener)
        return listener

    def off(self, event: str, listener: Callable[..., Any]) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    async def emit(self, event: str, *args: Any) -> int:
        """
        Deliver a signal to every listener registered for it.

        Returns:
            Number of listeners that handled the signal without raising
        """
        delivered = 0
        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(*args)
                if asyncio.iscoroutine(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Listener for '{event}' failed: {e}",
                    extra={"extra_data": {"event": event, "error": str(e)}}
                )
        return delivered
