"""
Expiry index over session documents.

The index is derived by the store, never maintained by this package: it
selects every document whose ``session_modified + session_ttl * 1000`` lies
before the query time, keyed by document id and valued by revision. It is
bootstrapped lazily; the first use probes it and creates it when missing.
"""

import logging

from errors.codes import ErrorCode
from errors.exceptions import AppException
from services.document_store import DocumentStoreClient, ExpiryIndexSpec, IndexRow
from session.codec import MODIFIED_FIELD, TTL_FIELD

logger = logging.getLogger(__name__)


def build_expiry_index_spec(design_name: str, index_name: str) -> ExpiryIndexSpec:
    return ExpiryIndexSpec(
        design_name=design_name,
        index_name=index_name,
        modified_field=MODIFIED_FIELD,
        ttl_field=TTL_FIELD,
    )


class ExpiryIndex:
    """
    Lazily created expired-sessions index.

    Attributes:
        client: Document store the index lives in
        spec: Declarative index definition
    """

    def __init__(self, client: DocumentStoreClient, spec: ExpiryIndexSpec):
        self.client = client
        self.spec = spec

    async def ensure(self, now_ms: int) -> bool:
        """
        Make sure the index exists.

        Returns:
            True if the index had to be created
        """
        try:
            await self.client.query_index(self.spec, limit=0, now_ms=now_ms)
            return False
        except AppException as e:
            if e.error_code != ErrorCode.INDEX_MISSING:
                raise
        logger.info(
            f"Index for expired sessions doesn't exist, creating {self.spec.qualified_name}",
            extra={"extra_data": {"index": self.spec.to_dict()}}
        )
        await self.client.create_index(self.spec)
        return True

    async def query(self, limit: int, now_ms: int) -> list[IndexRow]:
        return await self.client.query_index(self.spec, limit=limit, now_ms=now_ms)
