"""Per-key locking for processing state writes."""

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator, Optional

from budgetsync.domain.errors import LockTimeoutError

DEFAULT_SHARDS = 64


class KeyedLock:
    """Sharded lock map.

    Keys hash onto a fixed set of re-entrant locks, so operations on the same
    key are serialized while unrelated keys rarely contend.
    """

    def __init__(self, shards: int = DEFAULT_SHARDS):
        if shards <= 0:
            raise ValueError("Lock shard count must be positive")
        self._locks = [threading.RLock() for _ in range(shards)]

    def _lock_for(self, key: Hashable) -> threading.RLock:
        return self._locks[hash(key) % len(self._locks)]

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        """Hold the lock for key.

        Args:
            key: Lock key (e.g. a TransactionId)
            timeout: Seconds to wait; None waits without limit

        Raises:
            LockTimeoutError: If the lock was not acquired in time
        """
        lock = self._lock_for(key)
        if timeout is None:
            acquired = lock.acquire()
        else:
            acquired = lock.acquire(timeout=max(timeout, 0))
        if not acquired:
            raise LockTimeoutError(f"Timed out waiting for lock on {key}")
        try:
            yield
        finally:
            lock.release()
