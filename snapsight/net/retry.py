"""Linear-backoff retry for transient failures."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from snapsight.errors import SnapsightError
from snapsight.logging.logger import Log

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget: ``max_retries`` extra attempts, attempt n waits ``base_delay * n``."""

    max_retries: int = 3
    base_delay: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * attempt


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    phase: str,
) -> T:
    """Run ``operation`` until it succeeds or the retry budget is spent.

    Only errors flagged ``retryable`` (transport and 5xx) are retried; every
    other SnapsightError propagates on the first attempt. The raised error
    has ``attempts`` and ``phase`` filled in.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except SnapsightError as exc:
            exc.attempts = attempt
            exc.phase = exc.phase or phase
            if not exc.retryable or attempt > policy.max_retries:
                raise
            delay = policy.delay_for(attempt)
            Log.warning(
                f"{phase} failed (attempt {attempt}/{policy.max_retries + 1}): "
                f"{exc}; retrying in {delay:.1f}s"
            )
            await policy.sleep(delay)
