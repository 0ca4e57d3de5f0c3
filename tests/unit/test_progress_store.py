"""Unit tests for the SQLite and in-memory progress stores."""

from __future__ import annotations

from pathlib import Path

import pytest

from chunkwise.models.chunk import EmbeddedChunk, ProgressRecord
from chunkwise.providers.store.memory_progress_store import MemoryProgressStore
from chunkwise.providers.store.sqlite_progress_store import SQLiteProgressStore
from chunkwise.utils.errors import StoreError


def _record(index: int, embedding: list[float], source_id: str = "doc") -> ProgressRecord:
    content = f"chunk {index}"
    return EmbeddedChunk(
        index=index,
        content=content,
        length=len(content),
        source_id=source_id,
        embedding=embedding,
    ).to_record()


@pytest.fixture(params=["sqlite", "memory"])
async def store(request, tmp_path: Path):
    if request.param == "sqlite":
        sqlite = SQLiteProgressStore(db_path=tmp_path / "nested" / "progress.db")
        await sqlite.initialize()
        return sqlite
    return MemoryProgressStore()


class TestProgressStoreContract:
    @pytest.mark.asyncio
    async def test_empty_source(self, store) -> None:
        assert await store.last_committed_index("doc") == -1
        assert await store.count("doc") == 0
        assert await store.exists("doc", 0) is False
        assert await store.search("doc", [1.0, 0.0]) == []

    @pytest.mark.asyncio
    async def test_commit_is_visible_immediately(self, store) -> None:
        await store.commit("doc", _record(0, [1.0, 0.0]))
        assert await store.exists("doc", 0) is True
        assert await store.last_committed_index("doc") == 0
        assert await store.count("doc") == 1

    @pytest.mark.asyncio
    async def test_last_index_is_highest_not_latest(self, store) -> None:
        await store.commit("doc", _record(2, [1.0, 0.0]))
        await store.commit("doc", _record(0, [1.0, 0.0]))
        assert await store.last_committed_index("doc") == 2
        assert await store.count("doc") == 2
        assert await store.exists("doc", 1) is False

    @pytest.mark.asyncio
    async def test_sources_are_isolated(self, store) -> None:
        await store.commit("a", _record(0, [1.0, 0.0], source_id="a"))
        assert await store.count("b") == 0
        assert await store.last_committed_index("b") == -1

    @pytest.mark.asyncio
    async def test_search_ranks_by_cosine_similarity(self, store) -> None:
        await store.commit("doc", _record(0, [0.0, 1.0]))
        await store.commit("doc", _record(1, [1.0, 0.0]))
        await store.commit("doc", _record(2, [1.0, 1.0]))

        results = await store.search("doc", [1.0, 0.1], top_k=2)

        assert [r.record.index for r in results] == [1, 2]
        assert results[0].similarity > results[1].similarity
        assert results[0].record.content == "chunk 1"
        assert results[0].record.source_id == "doc"

    @pytest.mark.asyncio
    async def test_search_handles_zero_vectors(self, store) -> None:
        await store.commit("doc", _record(0, [0.0, 0.0]))
        results = await store.search("doc", [1.0, 0.0])
        assert len(results) == 1
        assert results[0].similarity == 0.0

    @pytest.mark.asyncio
    async def test_purge_removes_only_that_source(self, store) -> None:
        await store.commit("doc", _record(0, [1.0]))
        await store.commit("doc", _record(1, [1.0]))
        await store.commit("other", _record(0, [1.0], source_id="other"))

        assert await store.purge("doc") == 2
        assert await store.count("doc") == 0
        assert await store.count("other") == 1


class TestSQLiteProgressStore:
    @pytest.mark.asyncio
    async def test_records_survive_a_new_instance(self, tmp_path: Path) -> None:
        db_path = tmp_path / "progress.db"
        first = SQLiteProgressStore(db_path=db_path)
        await first.initialize()
        await first.commit("doc", _record(0, [0.25, 0.5]))

        second = SQLiteProgressStore(db_path=db_path)
        await second.initialize()
        assert await second.last_committed_index("doc") == 0
        results = await second.search("doc", [0.25, 0.5])
        assert results[0].record.embedding == [0.25, 0.5]
        assert results[0].record.metadata.length == len("chunk 0")

    @pytest.mark.asyncio
    async def test_uninitialized_database_raises_store_error(self, tmp_path: Path) -> None:
        store = SQLiteProgressStore(db_path=tmp_path / "missing.db")
        with pytest.raises(StoreError) as exc_info:
            await store.count("doc")
        assert exc_info.value.provider_name == "sqlite_progress"

    def test_provider_name(self, tmp_path: Path) -> None:
        assert SQLiteProgressStore(db_path=tmp_path / "p.db").get_provider_name() == "sqlite_progress"


class TestMemoryProgressStore:
    @pytest.mark.asyncio
    async def test_simulated_commit_failure_leaves_other_records(self) -> None:
        store = MemoryProgressStore(fail_on_commit={1})
        await store.commit("doc", _record(0, [1.0]))
        with pytest.raises(StoreError):
            await store.commit("doc", _record(1, [1.0]))
        assert await store.count("doc") == 1
        assert [r.index for r in store.records("doc")] == [0]
