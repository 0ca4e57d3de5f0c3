"""Bounded retry with provider-aware backoff.

Only quota exhaustion is treated as transient.  Provider adapters raise
:class:`~chunkwise.utils.errors.RateLimitError` (optionally carrying the
provider's suggested ``retry_after``) and every other failure propagates on
the first attempt.

Delay before the next attempt:

* ``retry_after`` when the provider supplied one;
* otherwise ``base_delay * 2 ** attempt`` with a 0-based attempt number
  (20 s, 40 s, 80 s ... with the default base).

Attempts are strictly sequential.  When the attempts run out the last
:class:`RateLimitError` is re-raised as-is so callers can still see it was a
quota problem.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from chunkwise.utils.errors import RateLimitError

_T = TypeVar("_T")

logger = structlog.get_logger(logger_name=__name__)


class RetryExecutor:
    """Runs an async operation with bounded retries on rate-limit failures.

    Parameters
    ----------
    max_attempts:
        Default number of attempts (first call included).
    base_delay:
        Default exponential-backoff base in seconds.
    sleep:
        Coroutine used to wait between attempts, injectable for tests.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 20.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {base_delay}")
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def run(
        self,
        operation: Callable[[], Awaitable[_T]],
        max_attempts: int | None = None,
        base_delay: float | None = None,
        label: str = "operation",
    ) -> _T:
        """Await ``operation()`` until it succeeds or the attempts run out.

        Parameters
        ----------
        operation:
            Zero-argument callable returning a fresh awaitable per attempt.
        max_attempts:
            Overrides the executor default for this call.
        base_delay:
            Overrides the executor default backoff base for this call.
        label:
            Short name of the operation for log events.

        Raises
        ------
        RateLimitError
            The last rate-limit failure once every attempt was used.
        Exception
            Any non-rate-limit failure, immediately and unchanged.
        """
        attempts = self._max_attempts if max_attempts is None else max_attempts
        base = self._base_delay if base_delay is None else base_delay
        if attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {attempts}")

        attempt = 0
        while True:
            try:
                return await operation()
            except RateLimitError as exc:
                if attempt + 1 >= attempts:
                    logger.error(
                        "rate_limit_retries_exhausted",
                        operation=label,
                        attempts=attempts,
                        provider=exc.provider_name,
                    )
                    raise
                delay = self.backoff_delay(exc, attempt, base)
                logger.warning(
                    "rate_limit_backoff",
                    operation=label,
                    attempt=attempt + 1,
                    max_attempts=attempts,
                    wait_s=round(delay, 2),
                    provider_suggested=exc.retry_after is not None,
                    provider=exc.provider_name,
                )
                await self._sleep(delay)
            attempt += 1

    @staticmethod
    def backoff_delay(error: RateLimitError, attempt: int, base_delay: float) -> float:
        """Return the wait before the attempt following 0-based *attempt*."""
        if error.retry_after is not None and error.retry_after >= 0:
            return error.retry_after
        return base_delay * (2 ** attempt)
