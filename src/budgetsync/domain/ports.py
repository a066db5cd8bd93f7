"""Boundary contracts the pipeline consumes.

Each port is a single-capability protocol; any object with the right method
can be injected into the services.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol

from budgetsync.domain.confidence import ConfidenceScore
from budgetsync.domain.entities import Category, RawTransaction, Transaction
from budgetsync.domain.processing_state import ProcessingState


@dataclass(frozen=True)
class CategorySuggestion:
    """What a categorization strategy proposes for one transaction."""

    category_id: Optional[str] = None
    payee_name: Optional[str] = None
    memo: Optional[str] = None
    confidence: Optional[ConfidenceScore] = None
    payee_confidence: Optional[ConfidenceScore] = None


@dataclass(frozen=True)
class SubmissionReceipt:
    """Destination system acknowledgement of one submitted transaction."""

    external_id: str
    status: str = "created"


class RawTransactionSource(Protocol):
    def fetch(
        self,
        account_id: str,
        start_date: date,
        end_date: date,
        timeout: Optional[float] = None,
    ) -> list[RawTransaction]:
        """Fetch raw transactions for an account and inclusive date range.

        Raises:
            SourceConnectionError: If the source cannot be reached
            SourceRateLimitError: If the source throttled the call
        """
        ...


class CategorizationStrategy(Protocol):
    def categorize(self, transaction: Transaction) -> CategorySuggestion:
        """Suggest category, payee and memo for a transaction.

        Raises:
            CategorizationError: If no suggestion could be computed
        """
        ...


class CategorySource(Protocol):
    def list_categories(self) -> list[Category]:
        ...


class SubmissionPort(Protocol):
    def submit(
        self,
        transaction: Transaction,
        state: ProcessingState,
        account_id: str,
        timeout: Optional[float] = None,
    ) -> SubmissionReceipt:
        """Submit one transaction to the destination system.

        Retrying transient failures is the port's responsibility.

        Raises:
            SubmissionPortError: Typed failure (auth, connection, rate limit,
                validation, unexpected)
        """
        ...
