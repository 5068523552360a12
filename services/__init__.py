"""
Document store clients for session persistence.

This package provides the revisioned document store interface and its
Elasticsearch and in-memory implementations.
"""

import logging
from typing import Any

from services.document_store import (
    BulkItemResult,
    DocumentStoreClient,
    ExpiryIndexSpec,
    IndexRow,
    StoredDocument,
)
from services.memory_store import MemoryDocumentStore

logger = logging.getLogger(__name__)


def create_document_store(settings: Any) -> DocumentStoreClient:
    """
    Create the document store selected by settings.

    In development an Elasticsearch backend without an endpoint falls back
    to the in-memory store.
    """
    if settings.document_store_type == "memory":
        return MemoryDocumentStore(name=settings.session_index)

    if not settings.elastic_endpoint:
        logger.warning(
            "No Elasticsearch endpoint configured, using in-memory document store",
            extra={"extra_data": {"environment": settings.environment.value}}
        )
        return MemoryDocumentStore(name=settings.session_index)

    from services.elasticsearch_store import ElasticsearchDocumentStore
    return ElasticsearchDocumentStore.from_settings(settings)


__all__ = [
    "BulkItemResult",
    "DocumentStoreClient",
    "ExpiryIndexSpec",
    "IndexRow",
    "MemoryDocumentStore",
    "StoredDocument",
    "create_document_store",
]
