"""Tests for keyed locks, deadlines and batch execution."""

import threading
import time

import pytest

from budgetsync.domain.errors import LockTimeoutError
from budgetsync.domain.identifiers import TransactionId
from budgetsync.utils.concurrency import run_batch
from budgetsync.utils.deadline import Deadline
from budgetsync.utils.locks import KeyedLock


def test_keyed_lock_is_reentrant():
    """Test the same thread can take a held lock again."""
    locks = KeyedLock(4)
    key = TransactionId("fio-1", "1")
    with locks.hold(key):
        with locks.hold(key, timeout=0.1):
            pass


def test_keyed_lock_times_out_across_threads():
    """Test a lock held by another thread times out."""
    locks = KeyedLock(4)
    key = TransactionId("fio-1", "1")
    held = threading.Event()
    release = threading.Event()

    def holder():
        with locks.hold(key):
            held.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert held.wait(5)
        with pytest.raises(LockTimeoutError):
            with locks.hold(key, timeout=0.05):
                pass
    finally:
        release.set()
        thread.join()

    with locks.hold(key, timeout=1):
        pass


def test_keyed_lock_requires_shards():
    """Test zero shards is rejected."""
    with pytest.raises(ValueError):
        KeyedLock(0)


def test_deadline_unbounded():
    """Test a deadline without timeout never expires on its own."""
    deadline = Deadline()
    assert deadline.remaining() is None
    assert deadline.remaining(cap=2.5) == 2.5
    assert not deadline.expired


def test_deadline_timeout_and_cap():
    """Test remaining time is capped and never negative."""
    deadline = Deadline(timeout=60)
    assert 0 < deadline.remaining() <= 60
    assert deadline.remaining(cap=1.0) == 1.0

    expired = Deadline(timeout=0)
    assert expired.expired
    assert expired.remaining() == 0.0


def test_deadline_cancel():
    """Test cancellation expires the deadline immediately."""
    event = threading.Event()
    deadline = Deadline(timeout=60, cancel_event=event)
    event.set()
    assert deadline.cancelled
    assert deadline.expired
    assert deadline.remaining(cap=5) == 0.0


@pytest.mark.parametrize("max_workers", [1, 4])
def test_run_batch_preserves_order(max_workers):
    """Test results come back in input order whatever finishes first."""

    def worker(n):
        time.sleep(0.001 * (10 - n))
        return n * 2

    results = run_batch(list(range(10)), worker, lambda n: None, max_workers=max_workers)
    assert results == [n * 2 for n in range(10)]


def test_run_batch_cancelled_mid_way():
    """Test items not started after cancellation get the cancelled result."""
    deadline = Deadline()

    def worker(n):
        if n == 2:
            deadline.cancel()
        return "done"

    results = run_batch(
        list(range(5)), worker, lambda n: "cancelled", max_workers=1, deadline=deadline
    )
    assert results == ["done", "done", "done", "cancelled", "cancelled"]
