"""Interfaces for every external collaborator of chunkwise.

Business logic talks to these abstract base classes only.  Concrete
adapters live in ``chunkwise/providers/`` and are wired together by the CLI
factories in ``chunkwise/cli/ingest.py``.

    Interface           →  Concrete implementations
    ─────────────────────────────────────────────────────────
    IEmbeddingProvider  →  OpenAIEmbeddingProvider
    ILLMProvider        →  OpenAILLMProvider
    IProgressStore      →  SQLiteProgressStore, MemoryProgressStore
"""

from chunkwise.interfaces.embedding_provider import IEmbeddingProvider
from chunkwise.interfaces.llm_provider import ILLMProvider
from chunkwise.interfaces.progress_store import IProgressStore

__all__ = [
    "IEmbeddingProvider",
    "ILLMProvider",
    "IProgressStore",
]
