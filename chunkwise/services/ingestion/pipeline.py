"""Resumable, rate-limited ingestion of one source document.

Pipeline stages: **split -> resume -> (acquire -> embed -> commit)* -> verify**.

:class:`IngestionPipeline` coordinates five collaborators without any of
them knowing about each other:

    1. ChunkSplitter -- deterministic, index-stable chunking
    2. IProgressStore -- tells us where the last run stopped
    3. TokenBucketLimiter -- admission control before every embedding call
    4. RetryExecutor + IEmbeddingProvider -- embed with rate-limit backoff
    5. IProgressStore -- commit each record as soon as it is embedded

Chunks are processed one at a time in index order.  A chunk that fails
(retries exhausted, provider error, store error) is logged and skipped; the
run carries on and the index stays eligible for the next run.  Only an
empty source or a failed resume lookup aborts the run.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

from chunkwise.interfaces.embedding_provider import IEmbeddingProvider
from chunkwise.interfaces.progress_store import IProgressStore
from chunkwise.models.chunk import Chunk, EmbeddedChunk
from chunkwise.models.pipeline import (
    ChunkOutcome,
    IngestionResult,
    IngestionState,
    ProgressEvent,
)
from chunkwise.pipeline.progress_tracker import ProgressTracker
from chunkwise.services.ingestion.splitter import ChunkSplitter
from chunkwise.utils.errors import ChunkwiseError, IngestionInputError, StoreError
from chunkwise.utils.rate_limiter import TokenBucketLimiter
from chunkwise.utils.retry import RetryExecutor

logger = structlog.get_logger(logger_name=__name__)


class IngestionPipeline:
    """Drives one source document through split, embed and commit.

    Parameters
    ----------
    splitter:
        Produces the indexed chunks.  Must be configured identically across
        runs of the same source for resuming to be correct.
    embedding_provider:
        Embeds one chunk per call.
    store:
        Durable record of committed chunks.
    limiter:
        Shared admission control; one token is taken per embedding call.
    retry:
        Backoff policy for rate-limited embedding calls.
    tracker:
        Receives a :class:`ProgressEvent` before the loop and after every
        index.  A fresh tracker is created when omitted.
    inter_chunk_delay:
        Seconds to pause between consecutive embedding calls.
    """

    def __init__(
        self,
        splitter: ChunkSplitter,
        embedding_provider: IEmbeddingProvider,
        store: IProgressStore,
        limiter: TokenBucketLimiter,
        retry: RetryExecutor,
        tracker: ProgressTracker | None = None,
        inter_chunk_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if inter_chunk_delay < 0:
            raise ValueError(f"inter_chunk_delay must be >= 0, got {inter_chunk_delay}")
        self._splitter = splitter
        self._embedding_provider = embedding_provider
        self._store = store
        self._limiter = limiter
        self._retry = retry
        self._tracker = tracker or ProgressTracker()
        self._inter_chunk_delay = inter_chunk_delay
        self._sleep = sleep
        self._clock = clock

        self._state = IngestionState.IDLE
        self._embedded_this_run = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> IngestionState:
        return self._state

    @property
    def tracker(self) -> ProgressTracker:
        return self._tracker

    async def run(self, text: str, source_id: str) -> IngestionResult:
        """Ingest *text* under *source_id*, resuming after the last committed chunk.

        Returns
        -------
        IngestionResult
            Per-outcome counts, skipped indices, and whether the store now
            holds every chunk.

        Raises
        ------
        IngestionInputError
            If *text* is empty or cannot be split.
        StoreError
            If the resume lookup fails before any chunk work starts.
        """
        started = self._clock()
        self._embedded_this_run = False
        self._transition(IngestionState.IDLE, source_id)

        try:
            chunks = self._split(text, source_id)
            start_index, resuming = await self._resume_point(source_id, len(chunks))
            result = await self._process(chunks, source_id, start_index, resuming, started)
        except Exception:
            self._transition(IngestionState.FAILED, source_id)
            raise

        self._transition(IngestionState.COMPLETE, source_id)
        logger.info(
            "ingestion_finished",
            source_id=source_id,
            total_chunks=result.total_chunks,
            committed=result.committed,
            already_present=result.already_present,
            skipped=len(result.skipped),
            final_count=result.final_count,
            complete=result.complete,
            elapsed_s=result.elapsed_seconds,
        )
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _split(self, text: str, source_id: str) -> list[Chunk]:
        self._transition(IngestionState.SPLITTING, source_id)
        if not text or not text.strip():
            raise IngestionInputError(message=f"Source '{source_id}' is empty")
        try:
            chunks = self._splitter.split(text, source_id)
        except ValueError as exc:
            raise IngestionInputError(
                message=f"Source '{source_id}' could not be split: {exc}"
            ) from exc
        if not chunks:
            raise IngestionInputError(message=f"Source '{source_id}' produced no chunks")
        logger.info("source_split", source_id=source_id, total_chunks=len(chunks))
        return chunks

    async def _resume_point(self, source_id: str, total: int) -> tuple[int, bool]:
        """Return ``(start_index, resuming)`` for this run.

        Store errors here are fatal: without a trustworthy resume point the
        run could duplicate or miss work.
        """
        self._transition(IngestionState.RESUMING, source_id)
        last = await self._store.last_committed_index(source_id)
        resuming = last >= 0
        start = last + 1

        if start > total:
            logger.warning(
                "store_ahead_of_source",
                source_id=source_id,
                last_committed_index=last,
                total_chunks=total,
            )
            start = total

        if resuming:
            committed = await self._store.count(source_id)
            if committed < start:
                # Earlier runs skipped indices below the high-water mark.
                # Rescan from the beginning; exists() skips what is there.
                logger.info(
                    "resume_backfill",
                    source_id=source_id,
                    last_committed_index=last,
                    committed=committed,
                )
                start = 0

        logger.info(
            "resume_point",
            source_id=source_id,
            start_index=start,
            total_chunks=total,
            resuming=resuming,
        )
        return start, resuming

    async def _process(
        self,
        chunks: list[Chunk],
        source_id: str,
        start_index: int,
        resuming: bool,
        started: float,
    ) -> IngestionResult:
        total = len(chunks)
        outcomes: dict[ChunkOutcome, list[int]] = {outcome: [] for outcome in ChunkOutcome}

        if start_index < total:
            self._transition(IngestionState.PROCESSING, source_id)
            await self._emit(source_id, start_index, total, resuming)
            for chunk in chunks[start_index:]:
                outcome = await self._process_chunk(chunk)
                outcomes[outcome].append(chunk.index)
                await self._emit(source_id, chunk.index + 1, total, resuming)

        final_count = await self._verify(source_id, total)
        return IngestionResult(
            source_id=source_id,
            total_chunks=total,
            start_index=start_index,
            committed=len(outcomes[ChunkOutcome.COMMITTED]),
            already_present=len(outcomes[ChunkOutcome.ALREADY_PRESENT]),
            skipped=outcomes[ChunkOutcome.SKIPPED],
            final_count=final_count,
            complete=final_count is not None and final_count == total,
            elapsed_seconds=round(max(0.0, self._clock() - started), 3),
        )

    async def _process_chunk(self, chunk: Chunk) -> ChunkOutcome:
        """Embed and commit one chunk.

        Any ``Exception`` from a collaborator marks the chunk SKIPPED and the
        run moves on. Cancellation still propagates.
        """
        source_id = chunk.source_id
        try:
            if await self._store.exists(source_id, chunk.index):
                logger.debug("chunk_already_present", source_id=source_id, index=chunk.index)
                return ChunkOutcome.ALREADY_PRESENT

            if self._embedded_this_run and self._inter_chunk_delay > 0:
                await self._sleep(self._inter_chunk_delay)

            admitted = await self._limiter.acquire()
            self._embedded_this_run = True
            embedding = await self._retry.run(
                lambda: self._embedding_provider.embed_single(chunk.content),
                label=f"embed_chunk_{chunk.index}",
            )
            embedded = EmbeddedChunk(**chunk.model_dump(), embedding=embedding)
            await self._store.commit(source_id, embedded.to_record())
        except ChunkwiseError as exc:
            logger.error(
                "chunk_skipped",
                source_id=source_id,
                index=chunk.index,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return ChunkOutcome.SKIPPED
        except Exception as exc:
            logger.error(
                "chunk_skipped",
                source_id=source_id,
                index=chunk.index,
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=True,
            )
            return ChunkOutcome.SKIPPED

        logger.info(
            "chunk_committed",
            source_id=source_id,
            index=chunk.index,
            length=chunk.length,
            admitted=admitted,
        )
        return ChunkOutcome.COMMITTED

    async def _verify(self, source_id: str, total: int) -> int | None:
        self._transition(IngestionState.VERIFYING, source_id)
        try:
            final_count = await self._store.count(source_id)
        except StoreError as exc:
            logger.error("verification_failed", source_id=source_id, error=str(exc))
            return None
        if final_count < total:
            logger.warning(
                "ingestion_incomplete",
                source_id=source_id,
                final_count=final_count,
                total_chunks=total,
            )
        elif final_count > total:
            logger.warning(
                "store_count_exceeds_source",
                source_id=source_id,
                final_count=final_count,
                total_chunks=total,
            )
        return final_count

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _emit(self, source_id: str, current: int, total: int, resuming: bool) -> None:
        await self._tracker.update(
            ProgressEvent(source_id=source_id, current=current, total=total, resuming=resuming)
        )

    def _transition(self, state: IngestionState, source_id: str) -> None:
        previous = self._state
        self._state = state
        logger.debug(
            "ingestion_state",
            source_id=source_id,
            previous=previous.value,
            state=state.value,
        )
