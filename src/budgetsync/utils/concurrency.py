"""Batch execution across independent transaction ids."""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence, TypeVar

from budgetsync.utils.deadline import Deadline

T = TypeVar("T")
R = TypeVar("R")


def run_batch(
    items: Sequence[T],
    worker: Callable[[T], R],
    on_cancelled: Callable[[T], R],
    max_workers: int = 1,
    deadline: Optional[Deadline] = None,
) -> list[R]:
    """Run worker over items and return results in input order.

    Items that have not started when the deadline expires get
    ``on_cancelled(item)`` instead. Work that already finished stays
    committed; nothing is rolled back.
    """
    deadline = deadline or Deadline()

    def guarded(item: T) -> R:
        if deadline.expired:
            return on_cancelled(item)
        return worker(item)

    if max_workers <= 1 or len(items) <= 1:
        return [guarded(item) for item in items]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(guarded, items))
