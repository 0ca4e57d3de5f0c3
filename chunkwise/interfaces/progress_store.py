"""Abstract base class for the durable progress store.

The store holds :class:`~chunkwise.models.chunk.ProgressRecord` objects
scoped by ``source_id`` and is the only record of which chunks have been
embedded.  Implementations may use SQLite (local, default), an in-process
dict (tests), or any hosted database that offers read-your-writes
consistency to a single writer.

Uniqueness of ``(source_id, index)`` is NOT a storage constraint: the
ingestion pipeline checks :meth:`exists` immediately before
:meth:`commit`, and that check is the idempotency boundary.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from chunkwise.models.chunk import ProgressRecord, RetrievedChunk


# Concrete implementations: SQLiteProgressStore, MemoryProgressStore
# Located in: chunkwise/providers/store/
class IProgressStore(ABC):
    """Contract for chunk-indexed record storage.

    All operations are async to support network-backed stores.  Failures
    raise :class:`~chunkwise.utils.errors.StoreError`.
    """

    async def initialize(self) -> None:
        """Prepare the backend (create tables, open files).  Idempotent."""

    @abstractmethod
    async def last_committed_index(self, source_id: str) -> int:
        """Return the highest committed chunk index for *source_id*, or ``-1``.

        Must reflect every earlier commit, including those from previous
        process runs.
        """

    @abstractmethod
    async def exists(self, source_id: str, index: int) -> bool:
        """Return ``True`` if a record for ``(source_id, index)`` is stored."""

    @abstractmethod
    async def commit(self, source_id: str, record: ProgressRecord) -> None:
        """Append one record.

        A failed commit raises :class:`StoreError` and must leave earlier
        records untouched.
        """

    @abstractmethod
    async def count(self, source_id: str) -> int:
        """Return the number of records stored for *source_id*."""

    @abstractmethod
    async def search(
        self,
        source_id: str,
        embedding: list[float],
        top_k: int = 4,
    ) -> list[RetrievedChunk]:
        """Return up to *top_k* records ranked by cosine similarity (descending)."""

    @abstractmethod
    async def purge(self, source_id: str) -> int:
        """Delete every record for *source_id* and return how many were removed."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sqlite_progress"``."""
