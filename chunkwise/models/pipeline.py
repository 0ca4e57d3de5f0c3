"""Ingestion state, progress event, and run summary models.

``IngestionState`` is the state machine the pipeline walks through:

    IDLE → SPLITTING → RESUMING → PROCESSING → VERIFYING → COMPLETE
                 \\__________\\____________\\______________→ FAILED

COMPLETE is reached even when some chunks were skipped; completeness is
reported in :class:`IngestionResult`, because a partial run is an expected,
resumable outcome and not an error.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class IngestionState(str, Enum):  # noqa: UP042
    """States of one ingestion run."""

    IDLE = "IDLE"
    SPLITTING = "SPLITTING"
    RESUMING = "RESUMING"
    PROCESSING = "PROCESSING"
    VERIFYING = "VERIFYING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (IngestionState.COMPLETE, IngestionState.FAILED)


class ChunkOutcome(str, Enum):  # noqa: UP042
    """How a single chunk index resolved during a run."""

    COMMITTED = "COMMITTED"
    ALREADY_PRESENT = "ALREADY_PRESENT"
    SKIPPED = "SKIPPED"


class ProgressEvent(BaseModel):
    """Progress notification emitted after every chunk attempt."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    current: int = Field(ge=0, description="Number of chunk indices resolved so far.")
    total: int = Field(ge=0, description="Total number of chunks in the source.")
    resuming: bool = Field(default=False, description="True when earlier runs left records.")


class IngestionResult(BaseModel):
    """Summary of one ingestion run.

    Returned by :meth:`IngestionPipeline.run`.  ``complete`` compares the
    store's record count for the source with ``total_chunks``; ``skipped``
    lists the indices that failed in this run and stay eligible for the next.
    """

    model_config = ConfigDict(frozen=True)

    source_id: str
    total_chunks: int = Field(ge=0)
    start_index: int = Field(ge=0)
    committed: int = Field(default=0, ge=0)
    already_present: int = Field(default=0, ge=0)
    skipped: list[int] = Field(default_factory=list)
    final_count: int | None = Field(
        default=None,
        description="Record count reported by the store, or None if the count failed.",
    )
    complete: bool = False
    elapsed_seconds: float = Field(default=0.0, ge=0.0)


class RateBucket(BaseModel):
    """Point-in-time view of a token bucket's balance."""

    model_config = ConfigDict(frozen=True)

    capacity: int = Field(gt=0)
    tokens_available: float = Field(ge=0.0)
    last_refill_timestamp: float
