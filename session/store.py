"""
Session store contract expected by host session frameworks.

A host framework drives a store through four capabilities: get, set,
destroy and touch. Every operation is a coroutine and additionally accepts
an optional completion ``callback(error, result)`` for hosts written in
callback style.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from session.callbacks import Callback


class SessionStore(ABC):
    """
    Abstract base class for session storage implementations.

    Implementations translate failures into AppException. A session that
    does not exist (or has expired) is never a failure for ``get``; it is
    reported as ``None``.
    """

    @abstractmethod
    async def get(
        self,
        session_id: str,
        callback: Optional[Callback] = None
    ) -> Optional[dict[str, Any]]:
        """
        Retrieve session data by session ID.

        Args:
            session_id: Unique identifier for the session.
            callback: Optional completion callback.

        Returns:
            Session data as a dictionary if found, None if the session
            does not exist or has expired.

        Raises:
            AppException: If the underlying store fails.
        """

    @abstractmethod
    async def set(
        self,
        session_id: str,
        data: dict[str, Any],
        callback: Optional[Callback] = None
    ) -> None:
        """
        Create or replace session data.

        Raises:
            AppException: REVISION_CONFLICT if another writer got there
                first, or a store error.
        """

    @abstractmethod
    async def destroy(
        self,
        session_id: str,
        callback: Optional[Callback] = None
    ) -> None:
        """
        Delete session data by session ID.

        Raises:
            AppException: DOCUMENT_NOT_FOUND if the session does not exist,
                or a store error.
        """

    @abstractmethod
    async def touch(
        self,
        session_id: str,
        data: dict[str, Any],
        callback: Optional[Callback] = None
    ) -> None:
        """
        Refresh the time-to-live of an existing session.

        Raises:
            AppException: DOCUMENT_NOT_FOUND if the session does not exist,
                or a store error.
        """
