from chunkwise.providers.store.memory_progress_store import MemoryProgressStore
from chunkwise.providers.store.sqlite_progress_store import SQLiteProgressStore

__all__ = ["MemoryProgressStore", "SQLiteProgressStore"]
