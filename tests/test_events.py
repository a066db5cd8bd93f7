"""Tests for domain event dispatch."""

from budgetsync.domain.events import (
    EventDispatcher,
    ImportCompleted,
    TransactionsSubmitted,
)


def test_dispatch_filters_by_type():
    """Test subscribers only receive the event types they asked for."""
    dispatcher = EventDispatcher()
    everything, imports = [], []
    dispatcher.subscribe(everything.append)
    dispatcher.subscribe(imports.append, ImportCompleted)

    events = [ImportCompleted(source_account_id="fio-1", count=2), TransactionsSubmitted(count=1)]
    delivered = dispatcher.dispatch(events)

    assert delivered == 3
    assert everything == events
    assert imports == events[:1]
    assert events[0].name == "ImportCompleted"


def test_failing_subscriber_is_counted():
    """Test a subscriber error is logged and does not stop delivery."""
    dispatcher = EventDispatcher()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    dispatcher.subscribe(broken)
    dispatcher.subscribe(received.append)

    delivered = dispatcher.dispatch([TransactionsSubmitted(count=0)])

    assert delivered == 1
    assert dispatcher.failures == 1
    assert len(received) == 1
