"""Token-bucket admission control for provider calls.

Provider quotas (e.g. 3 embedding requests per minute on a free tier) are
respected by making every call site ``await limiter.acquire()`` first.
The bucket refills continuously at ``capacity / window_seconds`` tokens per
second, capped at ``capacity``.  Refill is computed lazily on each
acquire from the elapsed monotonic time, so there is no background timer.

Waiting callers queue in arrival order.  A caller never waits longer than
one full window: when that bound elapses it is let through anyway
(fail-open) and ``acquire`` returns ``False``.  Liveness wins over strict
admission in that case, and the provider's own rate-limit signal is then
handled by :class:`~chunkwise.utils.retry.RetryExecutor`.

Limiters are plain objects with no module-level instance.  Build one per
quota scope (e.g. one for ingestion, one for chat) and inject it.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

from chunkwise.models.pipeline import RateBucket

logger = structlog.get_logger(logger_name=__name__)

# Float refill arithmetic can leave a bucket at 0.9999999 after an exact wait.
_EPSILON = 1e-9


class TokenBucketLimiter:
    """Continuous-refill token bucket with FIFO waiters and a fail-open bound.

    Parameters
    ----------
    capacity:
        Maximum number of tokens (requests) per window.  The bucket starts full.
    window_seconds:
        Length of the quota window in seconds.
    name:
        Label used in log events, e.g. ``"embedding"`` or ``"chat"``.
    clock:
        Monotonic time source, injectable for tests.
    sleep:
        Coroutine used to suspend waiters, injectable for tests.
    """

    def __init__(
        self,
        capacity: int,
        window_seconds: float,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")

        self._capacity = capacity
        self._window = float(window_seconds)
        self._rate = capacity / self._window
        self._name = name
        self._clock = clock
        self._sleep = sleep

        self._tokens = float(capacity)
        self._last_refill = clock()
        # asyncio.Lock wakes waiters in the order they blocked.
        self._queue_lock = asyncio.Lock()
        self._waiting = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def window_seconds(self) -> float:
        return self._window

    @property
    def tokens_available(self) -> float:
        """Current token balance after a lazy refill."""
        self._refill()
        return self._tokens

    def snapshot(self) -> RateBucket:
        """Return the bucket state after a lazy refill."""
        self._refill()
        return RateBucket(
            capacity=self._capacity,
            tokens_available=self._tokens,
            last_refill_timestamp=self._last_refill,
        )

    async def acquire(self) -> bool:
        """Wait for a token and consume it.

        Returns ``True`` when a token was consumed, ``False`` when the
        one-window wait bound elapsed first and the caller was let through
        without one.
        """
        self._refill()
        if self._waiting == 0 and self._tokens >= 1.0 - _EPSILON:
            self._consume()
            return True

        deadline = self._clock() + self._window
        self._waiting += 1
        try:
            async with self._queue_lock:
                return await self._wait_for_token(deadline)
        finally:
            self._waiting -= 1

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _wait_for_token(self, deadline: float) -> bool:
        while True:
            self._refill()
            if self._tokens >= 1.0 - _EPSILON:
                self._consume()
                return True

            now = self._clock()
            remaining = deadline - now
            if remaining <= 0:
                logger.warning(
                    "limiter_fail_open",
                    limiter=self._name,
                    capacity=self._capacity,
                    window_s=self._window,
                    queued=self._waiting,
                )
                return False

            shortfall = (1.0 - self._tokens) / self._rate
            wait = min(shortfall, remaining)
            logger.debug(
                "limiter_waiting",
                limiter=self._name,
                wait_s=round(wait, 3),
                tokens=round(self._tokens, 3),
            )
            await self._sleep(wait)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(float(self._capacity), self._tokens + elapsed * self._rate)
            self._last_refill = now

    def _consume(self) -> None:
        self._tokens = max(0.0, self._tokens - 1.0)
