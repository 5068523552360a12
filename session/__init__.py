"""
Session persistence over a revisioned document store.

This package provides the session store contract host frameworks drive,
its document-store implementation with optimistic concurrency, the TTL
policy, and the expiry-index based garbage collector.
"""

from session.cleanup import CleanupResult, SessionGarbageCollector
from session.codec import SessionRecord
from session.expiry_index import ExpiryIndex
from session.options import SessionStoreConfig
from session.revisioned_store import DocumentSessionStore
from session.store import SessionStore
from session.ttl import ONE_DAY_SECONDS, compute_ttl

__all__ = [
    "CleanupResult",
    "DocumentSessionStore",
    "ExpiryIndex",
    "ONE_DAY_SECONDS",
    "SessionGarbageCollector",
    "SessionRecord",
    "SessionStore",
    "SessionStoreConfig",
    "compute_ttl",
]
