"""Shared pytest fixtures for the chunkwise test suite."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from chunkwise.interfaces.embedding_provider import IEmbeddingProvider
from chunkwise.interfaces.llm_provider import ILLMProvider
from chunkwise.models.chat import ChatMessage
from chunkwise.providers.store.memory_progress_store import MemoryProgressStore
from chunkwise.providers.store.sqlite_progress_store import SQLiteProgressStore
from chunkwise.services.ingestion.splitter import ChunkSplitter, SplitterConfig
from chunkwise.utils.logging import configure_logging
from chunkwise.utils.rate_limiter import TokenBucketLimiter
from chunkwise.utils.retry import RetryExecutor

# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested delays and advances a :class:`FakeClock` instead of waiting.

    The coroutine yields to the event loop before moving the clock, so other
    tasks observe the time at which the sleep started.
    """

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)
        self.clock.advance(seconds)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class ScriptedEmbeddingProvider(IEmbeddingProvider):
    """Deterministic embedder whose failures are scripted per input text.

    ``fail(text, *errors)`` queues exceptions raised by the next calls for
    *text*, in order.  Every call is recorded in ``calls``.
    """

    def __init__(self, dimension: int = 4) -> None:
        self._dimension = dimension
        self._failures: dict[str, list[Exception]] = {}
        self.calls: list[str] = []

    def fail(self, text: str, *errors: Exception) -> None:
        self._failures.setdefault(text, []).extend(errors)

    def vector_for(self, text: str) -> list[float]:
        return [float(len(text)), float(sum(map(ord, text)) % 97), 1.0, float(text.count(" "))][
            : self._dimension
        ]

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(text) for text in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        queued = self._failures.get(text)
        if queued:
            raise queued.pop(0)
        return self.vector_for(text)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "scripted_embedding"

    def is_available(self) -> bool:
        return True


class ScriptedLLMProvider(ILLMProvider):
    """Returns queued responses (or raises queued exceptions) in call order."""

    def __init__(self, responses: list[str | Exception] | None = None) -> None:
        self._responses = list(responses or [])
        self.prompts: list[str] = []
        self.histories: list[list[ChatMessage] | None] = []

    def queue(self, *responses: str | Exception) -> None:
        self._responses.extend(responses)

    async def complete(self, prompt: str, history: list[ChatMessage] | None = None) -> str:
        self.prompts.append(prompt)
        self.histories.append(history)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get_provider_name(self) -> str:
        return "scripted_llm"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session", autouse=True)
def _configure_test_logging() -> None:
    configure_logging(log_level="DEBUG")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep(clock: FakeClock) -> FakeSleep:
    return FakeSleep(clock)


@pytest.fixture
def sample_text() -> str:
    """1200 characters of space-separated four-letter words (w000 .. w239)."""
    return "".join(f"w{i:03d} " for i in range(240))


@pytest.fixture
def splitter() -> ChunkSplitter:
    return ChunkSplitter(SplitterConfig(max_chunk_size=500, overlap=50))


@pytest.fixture
def embedder() -> ScriptedEmbeddingProvider:
    return ScriptedEmbeddingProvider()


@pytest.fixture
def memory_store() -> MemoryProgressStore:
    return MemoryProgressStore()


@pytest.fixture
async def sqlite_store(tmp_path: Path) -> SQLiteProgressStore:
    store = SQLiteProgressStore(db_path=tmp_path / "progress.db")
    await store.initialize()
    return store


@pytest.fixture
def limiter(clock: FakeClock, fake_sleep: FakeSleep) -> TokenBucketLimiter:
    """A limiter large enough that ingestion tests never wait on it."""
    return TokenBucketLimiter(
        capacity=100, window_seconds=60.0, name="test", clock=clock, sleep=fake_sleep
    )


@pytest.fixture
def retry(fake_sleep: FakeSleep) -> RetryExecutor:
    return RetryExecutor(max_attempts=3, base_delay=20.0, sleep=fake_sleep)
