"""
Garbage collection of expired session documents.

Each run reads at most ``max_expired`` rows from the expiry index and
deletes them in one bulk request, every entry pinned to the revision the
index reported. The cost of a run is bounded by the number of expired
sessions it handles, not by the total session population.

A run never retries. Entries rejected because their revision changed
between the index read and the delete are reported as a
PARTIAL_BULK_FAILURE; whatever is still expired is picked up by the next
run. Entries already deleted by someone else count as reclaimed.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from errors.exceptions import partial_bulk_failure
from session.expiry_index import ExpiryIndex

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    """
    Outcome of a cleanup run.

    Attributes:
        expired: Rows returned by the expiry index
        deleted: Documents this run deleted
        already_absent: Documents that were gone before the delete landed
        index_created: Whether this run had to create the expiry index
    """
    expired: int = 0
    deleted: int = 0
    already_absent: int = 0
    index_created: bool = False
    failed: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "expired": self.expired,
            "deleted": self.deleted,
            "already_absent": self.already_absent,
            "index_created": self.index_created,
            "failed": self.failed,
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionGarbageCollector:
    """
    Deletes expired sessions in bounded batches.

    The collector has no timer of its own; call cleanup_expired() from a
    scheduler. Failures are raised to the caller only, never emitted on
    the store's error signal.
    """

    def __init__(
        self,
        index: ExpiryIndex,
        max_expired: int = 100,
        clock: Callable[[], int] = _now_ms
    ):
        self.index = index
        self.max_expired = max_expired
        self._clock = clock

    async def cleanup_expired(self) -> CleanupResult:
        """
        Delete up to ``max_expired`` expired sessions.

        Raises:
            AppException: PARTIAL_BULK_FAILURE if some entries were
                rejected, or the store error that stopped the run.
        """
        result = CleanupResult()
        now_ms = self._clock()

        try:
            result.index_created = await self.index.ensure(now_ms)
        except Exception as e:
            logger.error(f"cleanup_expired - failed to load/create index: {e}")
            raise

        try:
            rows = await self.index.query(limit=self.max_expired, now_ms=now_ms)
        except Exception as e:
            logger.error(f"cleanup_expired - error reading expired sessions: {e}")
            raise

        result.expired = len(rows)
        if not rows:
            logger.info("cleanup_expired - nothing to delete")
            return result

        logger.info(
            f"cleanup_expired - bulk delete of {len(rows)} expired sessions",
            extra={"extra_data": {"doc_ids": [row.key for row in rows]}}
        )
        items = await self.index.client.bulk_delete(rows)

        for item in items:
            if item.ok:
                result.deleted += 1
            elif item.status == 404:
                result.already_absent += 1
            else:
                result.failed.append(item.to_dict())

        if result.failed:
            logger.warning(
                f"cleanup_expired - bulk delete completed with partial failures: "
                f"{result.deleted}/{result.expired} deleted, {len(result.failed)} rejected"
            )
            raise partial_bulk_failure(
                message=f"{len(result.failed)} of {result.expired} expired sessions could not be deleted",
                details=result.to_dict()
            )

        logger.info(f"cleanup_expired - deleted {result.deleted} expired sessions")
        return result
