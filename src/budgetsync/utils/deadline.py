"""Caller-supplied timeout and cancellation signal."""

import threading
import time
from typing import Optional


class Deadline:
    """Time budget for a batch operation that can also be cancelled.

    ``remaining()`` is what gets passed as the timeout of each store and port
    call made on behalf of the batch.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self._expires_at = None if timeout is None else time.monotonic() + timeout
        self._cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def expired(self) -> bool:
        if self.cancelled:
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self, cap: Optional[float] = None) -> Optional[float]:
        """Seconds left (never negative), optionally capped; None means unbounded."""
        if self.cancelled:
            return 0.0
        if self._expires_at is None:
            return cap
        left = max(self._expires_at - time.monotonic(), 0.0)
        return left if cap is None else min(left, cap)
