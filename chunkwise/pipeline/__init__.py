"""Progress tracking for ingestion runs."""

from chunkwise.pipeline.progress_tracker import ProgressListener, ProgressTracker

__all__ = ["ProgressListener", "ProgressTracker"]
