"""SQLite-backed progress store.

Persists committed chunks to a local SQLite database at
``data/progress.db``.  Uses ``aiosqlite`` for async I/O.  Embeddings are
stored as JSON arrays; similarity search loads a source's vectors and ranks
them in memory, which is fine for single-document corpora.

Rows are appended, never updated.  ``(source_id, chunk_index)`` is indexed
but deliberately not unique: the pipeline's exists-before-commit check is
what keeps a chunk from being written twice.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import aiosqlite
import structlog

from chunkwise.interfaces.progress_store import IProgressStore
from chunkwise.models.chunk import ProgressRecord, RecordMetadata, RetrievedChunk
from chunkwise.providers.store.similarity import rank_by_similarity
from chunkwise.utils.errors import StoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/progress.db")
_PROVIDER_NAME = "sqlite_progress"

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS progress_records (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    source_id    TEXT    NOT NULL,
    chunk_index  INTEGER NOT NULL,
    content      TEXT    NOT NULL,
    embedding    TEXT    NOT NULL,
    length       INTEGER NOT NULL,
    timestamp    TEXT    NOT NULL
);
"""

_CREATE_INDEX_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_progress_source_chunk "
    "ON progress_records(source_id, chunk_index);"
)

_INSERT_SQL = """\
INSERT INTO progress_records (source_id, chunk_index, content, embedding, length, timestamp)
VALUES (?, ?, ?, ?, ?, ?);
"""

_MAX_INDEX_SQL = "SELECT MAX(chunk_index) FROM progress_records WHERE source_id = ?;"

_EXISTS_SQL = "SELECT 1 FROM progress_records WHERE source_id = ? AND chunk_index = ? LIMIT 1;"

_COUNT_SQL = "SELECT COUNT(*) FROM progress_records WHERE source_id = ?;"

_SELECT_SOURCE_SQL = """\
SELECT chunk_index, content, embedding, length, timestamp
FROM progress_records
WHERE source_id = ?
ORDER BY chunk_index, id;
"""

_DELETE_SOURCE_SQL = "DELETE FROM progress_records WHERE source_id = ?;"


class SQLiteProgressStore(IProgressStore):
    """SQLite-backed :class:`IProgressStore`.

    Every public method opens its own short-lived connection, so the store
    is safe to share between the ingestion pipeline and the QA service.
    Any ``sqlite3`` or filesystem failure surfaces as :class:`StoreError`.
    """

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        """Create the records table and index if they don't exist."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_TABLE_SQL)
                await db.execute(_CREATE_INDEX_SQL)
                await db.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise StoreError(
                message=f"Cannot initialize progress database at {self._db_path}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        logger.info("progress_db_initialized", path=str(self._db_path))

    async def last_committed_index(self, source_id: str) -> int:
        row = await self._fetchone(_MAX_INDEX_SQL, (source_id,), "last_committed_index")
        if row is None or row[0] is None:
            return -1
        return int(row[0])

    async def exists(self, source_id: str, index: int) -> bool:
        row = await self._fetchone(_EXISTS_SQL, (source_id, index), "exists")
        return row is not None

    async def commit(self, source_id: str, record: ProgressRecord) -> None:
        params = (
            source_id,
            record.index,
            record.content,
            json.dumps(record.embedding),
            record.metadata.length,
            record.metadata.timestamp.isoformat(),
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_INSERT_SQL, params)
                await db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Commit of chunk {record.index} for '{source_id}' failed: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        logger.debug("record_committed", source_id=source_id, index=record.index)

    async def count(self, source_id: str) -> int:
        row = await self._fetchone(_COUNT_SQL, (source_id,), "count")
        return int(row[0]) if row else 0

    async def search(
        self,
        source_id: str,
        embedding: list[float],
        top_k: int = 4,
    ) -> list[RetrievedChunk]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_SOURCE_SQL, (source_id,))
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Search over '{source_id}' failed: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        records = [self._row_to_record(source_id, row) for row in rows]
        results = rank_by_similarity(records, embedding, top_k)
        logger.debug(
            "records_searched",
            source_id=source_id,
            candidates=len(records),
            returned=len(results),
        )
        return results

    async def purge(self, source_id: str) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_DELETE_SOURCE_SQL, (source_id,))
                removed = cursor.rowcount
                await db.commit()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"Purge of '{source_id}' failed: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        logger.info("records_purged", source_id=source_id, removed=removed)
        return removed

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetchone(self, sql: str, params: tuple, operation: str) -> tuple | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(sql, params)
                return await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(
                message=f"{operation} query failed: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

    @staticmethod
    def _row_to_record(source_id: str, row: aiosqlite.Row) -> ProgressRecord:
        return ProgressRecord(
            index=row["chunk_index"],
            content=row["content"],
            embedding=json.loads(row["embedding"]),
            metadata=RecordMetadata(
                source_id=source_id,
                length=row["length"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
            ),
        )
