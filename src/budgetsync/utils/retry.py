"""Exponential backoff for retryable external calls."""

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from budgetsync.domain.errors import ExternalSystemError
from budgetsync.utils.deadline import Deadline

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded, capped, jittered exponential backoff."""

    max_attempts: int = 4
    base_delay: float = 0.5
    max_delay: float = 30.0
    jitter: bool = True

    def delay_for(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        delay = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        if self.jitter:
            # Full jitter: uniform in [0, delay]
            delay = delay * rng()
        return delay


def call_with_retry(
    func: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    deadline: Optional[Deadline] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call func, retrying ExternalSystemErrors that are marked retryable.

    A ``retry_after`` hint on the error takes precedence over the computed
    delay (still capped by ``max_delay``). Non-retryable errors and the last
    failure are re-raised unchanged.
    """
    policy = policy or RetryPolicy()
    deadline = deadline or Deadline()
    attempt = 1
    while True:
        try:
            return func()
        except ExternalSystemError as exc:
            if not exc.retryable or attempt >= policy.max_attempts:
                raise
            delay = policy.delay_for(attempt)
            retry_after = getattr(exc, "retry_after", None)
            if retry_after is not None:
                delay = min(float(retry_after), policy.max_delay)
            remaining = deadline.remaining()
            if remaining is not None and remaining <= delay:
                raise
            logger.warning(
                "Attempt %d/%d failed (%s); retrying in %.2fs",
                attempt,
                policy.max_attempts,
                exc,
                delay,
            )
            sleep(delay)
            attempt += 1
