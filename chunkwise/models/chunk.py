"""Chunk and progress-record data models.

Defines Pydantic v2 models for the units that flow through ingestion:

    ChunkSplitter ──Chunk──→ IngestionPipeline ──EmbeddedChunk──→ ProgressRecord ──→ store

``Chunk`` and ``EmbeddedChunk`` live only for one run.  ``ProgressRecord``
is the persisted shape and the only record of what has been done; the
store holds at most one per ``(source_id, index)``.  All models are frozen.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


# ---------------------------------------------------------------------------
# Chunk: one bounded slice of the source document.
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A bounded slice of a source document.

    ``index`` is the position in split order.  It is stable across runs for
    the same text and splitter configuration, which is what makes resuming
    by index safe.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="Zero-based position in split order.")
    content: str = Field(description="The chunk's text.")
    length: int = Field(ge=0, description="Character length of ``content``.")
    source_id: str = Field(description="Identifier of the source document.")
    created_at: datetime = Field(default_factory=_utcnow)


class EmbeddedChunk(Chunk):
    """A :class:`Chunk` together with its embedding vector."""

    embedding: list[float] = Field(description="Embedding vector for ``content``.")

    def to_record(self) -> ProgressRecord:
        """Build the persisted :class:`ProgressRecord` for this chunk."""
        return ProgressRecord(
            index=self.index,
            content=self.content,
            embedding=self.embedding,
            metadata=RecordMetadata(
                source_id=self.source_id,
                length=self.length,
                timestamp=_utcnow(),
            ),
        )


# ---------------------------------------------------------------------------
# ProgressRecord: the persisted proof that a chunk was committed.
# ---------------------------------------------------------------------------
class RecordMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str
    length: int = Field(ge=0)
    timestamp: datetime = Field(default_factory=_utcnow)


class ProgressRecord(BaseModel):
    """One committed chunk as stored by an :class:`IProgressStore`."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    content: str
    embedding: list[float]
    metadata: RecordMetadata

    @property
    def source_id(self) -> str:
        return self.metadata.source_id


class RetrievedChunk(BaseModel):
    """A stored record returned by a similarity search, with its score."""

    model_config = ConfigDict(frozen=True)

    record: ProgressRecord
    similarity: float = Field(
        default=0.0,
        ge=-1.0,
        le=1.0,
        description="Cosine similarity between the query and the record embedding.",
    )
