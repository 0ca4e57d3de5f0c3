"""Custom exception hierarchy for chunkwise.

All application exceptions inherit from :class:`ChunkwiseError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai_embedding", "sqlite_progress") caused the
failure.

The hierarchy is organized by the part of the system that raises it:

    ChunkwiseError  (base -- catch-all for any chunkwise error)
    +-- RateLimitError           (provider signalled quota exhaustion)
    +-- EmbeddingError           (embedding call failed for any other reason)
    +-- LLMError                 (completion call failed for any other reason)
    +-- StoreError               (progress store read or write failed)
    +-- PipelineError            (orchestration / state transitions)
    |   +-- IngestionInputError  (source text unreadable or empty)
    +-- ConfigurationError       (startup / missing config)

Only :class:`RateLimitError` is treated as transient by
:class:`~chunkwise.utils.retry.RetryExecutor`; everything else propagates on
the first failure.
"""

from __future__ import annotations


class ChunkwiseError(Exception):
    """Base exception for all chunkwise errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[openai_embedding] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------

class RateLimitError(ChunkwiseError):
    """Raised when a provider signals quota exhaustion.

    ``retry_after`` is the provider-suggested wait in seconds, or ``None``
    when the provider gave no hint.  The classification happens in the
    provider adapter, so callers never parse error text.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._retry_after = retry_after

    @property
    def retry_after(self) -> float | None:
        return self._retry_after


class EmbeddingError(ChunkwiseError):
    """Raised when an embedding call fails for a reason other than rate limiting."""

    def __init__(
        self,
        message: str = "Embedding call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(ChunkwiseError):
    """Raised when a completion call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence errors
# ---------------------------------------------------------------------------

class StoreError(ChunkwiseError):
    """Raised when a progress store query or commit fails.

    A failed commit must leave previously committed records intact, so the
    pipeline can skip the affected chunk and pick it up on a later run.
    """

    def __init__(
        self,
        message: str = "Progress store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class PipelineError(ChunkwiseError):
    """Raised when pipeline orchestration fails (invalid state transition, etc.)."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionInputError(PipelineError):
    """Raised when the source document is unreadable or empty before splitting."""

    def __init__(
        self,
        message: str = "Source document is empty or unreadable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(ChunkwiseError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
