"""Tests for retry with backoff."""

import pytest

from budgetsync.domain.errors import (
    AuthenticationFailed,
    RateLimitExceeded,
    SourceConnectionError,
    SourceRateLimitError,
)
from budgetsync.utils.deadline import Deadline
from budgetsync.utils.retry import RetryPolicy, call_with_retry


class Flaky:
    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_delay_is_exponential_and_capped():
    """Test backoff doubles up to max_delay."""
    policy = RetryPolicy(base_delay=1.0, max_delay=5.0, jitter=False)
    assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_delay_jitter_stays_within_bound():
    """Test full jitter scales the delay by the random factor."""
    policy = RetryPolicy(base_delay=2.0, max_delay=10.0)
    assert policy.delay_for(2, rng=lambda: 0.25) == 1.0


def test_retries_retryable_errors():
    """Test transient errors are retried and the sleeps recorded."""
    sleeps = []
    func = Flaky([SourceConnectionError("down"), RateLimitExceeded("busy")])
    policy = RetryPolicy(max_attempts=3, base_delay=0.1, jitter=False)

    assert call_with_retry(func, policy, sleep=sleeps.append) == "ok"
    assert func.calls == 3
    assert sleeps == [0.1, 0.2]


def test_retry_after_hint_wins():
    """Test a rate-limit hint replaces the computed delay."""
    sleeps = []
    func = Flaky([SourceRateLimitError(retry_after=3)])
    policy = RetryPolicy(base_delay=0.1, max_delay=10.0, jitter=False)

    call_with_retry(func, policy, sleep=sleeps.append)
    assert sleeps == [3.0]


def test_non_retryable_error_is_raised_at_once():
    """Test authentication failures are not retried."""
    func = Flaky([AuthenticationFailed("bad token")])
    with pytest.raises(AuthenticationFailed):
        call_with_retry(func, RetryPolicy(jitter=False), sleep=lambda _: None)
    assert func.calls == 1


def test_last_failure_is_raised():
    """Test the final error surfaces after max_attempts."""
    func = Flaky([SourceConnectionError(str(n)) for n in range(5)])
    with pytest.raises(SourceConnectionError, match="1"):
        call_with_retry(func, RetryPolicy(max_attempts=2, jitter=False), sleep=lambda _: None)
    assert func.calls == 2


def test_deadline_stops_retrying():
    """Test no retry is scheduled past the deadline."""
    func = Flaky([SourceConnectionError("down")])
    deadline = Deadline(timeout=0.01)
    policy = RetryPolicy(base_delay=5.0, jitter=False)
    with pytest.raises(SourceConnectionError):
        call_with_retry(func, policy, deadline=deadline, sleep=lambda _: None)
    assert func.calls == 1
