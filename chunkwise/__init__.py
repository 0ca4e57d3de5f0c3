"""chunkwise: resumable, rate-limited document ingestion with a question-answering loop."""

__version__ = "0.1.0"
