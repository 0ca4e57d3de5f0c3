"""Pydantic data models shared across chunkwise."""

from chunkwise.models.chat import ChatMessage, MessageRole
from chunkwise.models.chunk import (
    Chunk,
    EmbeddedChunk,
    ProgressRecord,
    RecordMetadata,
    RetrievedChunk,
)
from chunkwise.models.pipeline import (
    ChunkOutcome,
    IngestionResult,
    IngestionState,
    ProgressEvent,
    RateBucket,
)

__all__ = [
    "ChatMessage",
    "Chunk",
    "ChunkOutcome",
    "EmbeddedChunk",
    "IngestionResult",
    "IngestionState",
    "MessageRole",
    "ProgressEvent",
    "ProgressRecord",
    "RateBucket",
    "RecordMetadata",
    "RetrievedChunk",
]
