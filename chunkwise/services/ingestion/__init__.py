"""Ingestion: deterministic splitting and the resumable embed-and-commit pipeline."""

from chunkwise.services.ingestion.pipeline import IngestionPipeline
from chunkwise.services.ingestion.splitter import ChunkSplitter, SplitterConfig

__all__ = ["ChunkSplitter", "IngestionPipeline", "SplitterConfig"]
