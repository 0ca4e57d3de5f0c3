"""Ingestion progress tracking with callback-based listener notification.

Keeps the latest :class:`~chunkwise.models.pipeline.ProgressEvent` for each
source and broadcasts every update to the listeners registered for that
source.  Listeners are keyed by ``source_id`` so several ingestions can run
in one process without cross-talk.

    IngestionPipeline ──update()──→ ProgressTracker ──callback()──→ CLI progress line
                                                    ──callback()──→ (any other listener)

A listener that raises is logged and skipped; it never interrupts
ingestion or the other listeners.  Both sync and async callbacks work.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from chunkwise.models.pipeline import ProgressEvent
from chunkwise.utils.logging import get_logger

ProgressListener = Callable[[ProgressEvent], object]


class ProgressTracker:
    """Tracks and broadcasts per-source ingestion progress."""

    def __init__(self) -> None:
        self._latest: dict[str, ProgressEvent] = {}
        self._listeners: dict[str, list[ProgressListener]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(self, event: ProgressEvent) -> None:
        """Record *event* and notify every listener for its source."""
        self._latest[event.source_id] = event

        self._logger.debug(
            "progress_update",
            source_id=event.source_id,
            current=event.current,
            total=event.total,
            resuming=event.resuming,
        )

        await self._notify_listeners(event)

    def register_listener(self, source_id: str, callback: ProgressListener) -> None:
        """Register *callback* to receive events for *source_id*.

        The callback receives one :class:`ProgressEvent` argument and may
        be a plain function or a coroutine function.
        """
        listeners = self._listeners.setdefault(source_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                source_id=source_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, source_id: str, callback: ProgressListener) -> None:
        listeners = self._listeners.get(source_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                source_id=source_id,
                remaining_listeners=len(listeners),
            )

    def get_status(self, source_id: str) -> dict:
        """Return the latest progress for *source_id*.

        Keys: ``current``, ``total``, ``resuming`` and ``percent``.  Zeroed
        defaults are returned for a source that was never tracked.
        """
        event = self._latest.get(source_id)
        if event is None:
            return {"current": 0, "total": 0, "resuming": False, "percent": 0.0}

        percent = 100.0 if event.total == 0 else min(100.0, 100.0 * event.current / event.total)
        return {
            "current": event.current,
            "total": event.total,
            "resuming": event.resuming,
            "percent": round(percent, 1),
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, event: ProgressEvent) -> None:
        # Copy so a listener may unregister itself during the callback.
        for callback in list(self._listeners.get(event.source_id, [])):
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    source_id=event.source_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
