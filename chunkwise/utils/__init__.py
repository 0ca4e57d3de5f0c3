"""Utility modules for chunkwise.

- **errors** -- Domain exception hierarchy rooted at ChunkwiseError; provider
  adapters classify failures (rate limit vs other) before they reach
  business logic.
- **logging** -- structlog setup: coloured console output in development,
  structured JSON in production.
- **rate_limiter** -- Continuous-refill token bucket with FIFO waiters and a
  fail-open wait bound.
- **retry** -- Bounded retry loop that backs off only on rate-limit errors.
"""

from chunkwise.utils.errors import (
    ChunkwiseError,
    ConfigurationError,
    EmbeddingError,
    IngestionInputError,
    LLMError,
    PipelineError,
    RateLimitError,
    StoreError,
)
from chunkwise.utils.logging import configure_logging, get_logger
from chunkwise.utils.rate_limiter import TokenBucketLimiter
from chunkwise.utils.retry import RetryExecutor

__all__ = [
    "ChunkwiseError",
    "ConfigurationError",
    "EmbeddingError",
    "IngestionInputError",
    "LLMError",
    "PipelineError",
    "RateLimitError",
    "RetryExecutor",
    "StoreError",
    "TokenBucketLimiter",
    "configure_logging",
    "get_logger",
]
