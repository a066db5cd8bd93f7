"""Domain events describing what each pipeline stage changed.

Services return events as plain data inside their results. Whether and how
they are delivered is up to the caller; ``EventDispatcher`` is a small
synchronous fan-out for callers that want one.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from decimal import Decimal
from typing import Callable, Optional

from budgetsync.domain.confidence import ConfidenceScore
from budgetsync.domain.identifiers import ImportBatchId, TransactionId

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for domain events."""

    occurred_at: datetime = field(default_factory=_now)

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, kw_only=True)
class TransactionImported(DomainEvent):
    transaction_id: TransactionId
    date: object
    amount: Decimal
    currency: str


@dataclass(frozen=True, kw_only=True)
class DuplicateTransactionDetected(DomainEvent):
    external_id: str
    source_account_id: str
    existing_transaction_id: TransactionId


@dataclass(frozen=True, kw_only=True)
class ImportCompleted(DomainEvent):
    source_account_id: str
    count: int
    batch_id: Optional[ImportBatchId] = None


@dataclass(frozen=True, kw_only=True)
class TransactionCategorized(DomainEvent):
    transaction_id: TransactionId
    category: str
    payee_name: Optional[str]
    confidence: Optional[ConfidenceScore]
    by_ai: bool


@dataclass(frozen=True, kw_only=True)
class TransactionsCategorized(DomainEvent):
    transaction_count: int
    average_confidence: Optional[ConfidenceScore]


@dataclass(frozen=True, kw_only=True)
class CategoryUpdated(DomainEvent):
    transaction_id: TransactionId
    old_category: Optional[str]
    new_category: str


@dataclass(frozen=True, kw_only=True)
class BulkCategoryUpdated(DomainEvent):
    count: int
    category: str
    filter_criteria: str


@dataclass(frozen=True, kw_only=True)
class TransactionSubmitted(DomainEvent):
    transaction_id: TransactionId
    ynab_transaction_id: str
    ynab_account_id: str


@dataclass(frozen=True, kw_only=True)
class TransactionsSubmitted(DomainEvent):
    count: int


@dataclass(frozen=True, kw_only=True)
class SubmissionFailed(DomainEvent):
    reason: str
    transaction_count: int


EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """Deliver events to subscribers, one event type at a time.

    Subscriber failures are logged and counted, never raised back into the
    pipeline.
    """

    def __init__(self):
        self._handlers: list[tuple[type, EventHandler]] = []
        self.failures = 0

    def subscribe(self, handler: EventHandler, event_type: type = DomainEvent) -> None:
        self._handlers.append((event_type, handler))

    def dispatch(self, events) -> int:
        """Deliver events in order. Returns the number of successful deliveries."""
        delivered = 0
        for event in events:
            for event_type, handler in self._handlers:
                if not isinstance(event, event_type):
                    continue
                try:
                    handler(event)
                    delivered += 1
                except Exception:
                    self.failures += 1
                    logger.exception("Event handler failed for %s", event.name)
        return delivered
