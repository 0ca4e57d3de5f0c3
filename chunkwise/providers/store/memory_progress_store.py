"""In-process progress store.

Keeps records in a dict keyed by ``source_id``.  Nothing survives the
process, so this store suits tests and one-off runs where resuming is not
needed.  ``fail_on_commit`` lets tests simulate a write failure for chosen
chunk indices.
"""

from __future__ import annotations

import structlog

from chunkwise.interfaces.progress_store import IProgressStore
from chunkwise.models.chunk import ProgressRecord, RetrievedChunk
from chunkwise.providers.store.similarity import rank_by_similarity
from chunkwise.utils.errors import StoreError

logger = structlog.get_logger(logger_name=__name__)

_PROVIDER_NAME = "memory_progress"


class MemoryProgressStore(IProgressStore):
    """Dict-backed :class:`IProgressStore`."""

    def __init__(self, fail_on_commit: set[int] | None = None) -> None:
        self._records: dict[str, list[ProgressRecord]] = {}
        self._fail_on_commit = set(fail_on_commit or ())

    async def last_committed_index(self, source_id: str) -> int:
        records = self._records.get(source_id, [])
        return max((r.index for r in records), default=-1)

    async def exists(self, source_id: str, index: int) -> bool:
        return any(r.index == index for r in self._records.get(source_id, []))

    async def commit(self, source_id: str, record: ProgressRecord) -> None:
        if record.index in self._fail_on_commit:
            raise StoreError(
                message=f"Simulated commit failure for chunk {record.index}",
                provider_name=_PROVIDER_NAME,
            )
        self._records.setdefault(source_id, []).append(record)
        logger.debug("record_committed", source_id=source_id, index=record.index)

    async def count(self, source_id: str) -> int:
        return len(self._records.get(source_id, []))

    async def search(
        self,
        source_id: str,
        embedding: list[float],
        top_k: int = 4,
    ) -> list[RetrievedChunk]:
        records = sorted(self._records.get(source_id, []), key=lambda r: r.index)
        return rank_by_similarity(records, embedding, top_k)

    async def purge(self, source_id: str) -> int:
        removed = len(self._records.pop(source_id, []))
        logger.info("records_purged", source_id=source_id, removed=removed)
        return removed

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    def records(self, source_id: str) -> list[ProgressRecord]:
        """Return a copy of the stored records for *source_id* in commit order."""
        return list(self._records.get(source_id, []))
