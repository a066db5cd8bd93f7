"""Categorization domain service.

Automated categorization fills the *suggested* fields of a processing state;
user corrections fill the *override* fields. Neither ever overwrites the
other, and the effective value is resolved on every read.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from budgetsync.config import Config
from budgetsync.database.base import Database
from budgetsync.domain.confidence import ConfidenceScore
from budgetsync.domain.entities import Transaction
from budgetsync.domain.errors import (
    CategorizationError,
    LockTimeoutError,
    StoreTimeoutError,
    NotFoundError,
    PreconditionError,
    ValidationError,
    transaction_not_found,
)
from budgetsync.domain.events import (
    BulkCategoryUpdated,
    CategoryUpdated,
    DomainEvent,
    TransactionCategorized,
    TransactionsCategorized,
)
from budgetsync.domain.identifiers import TransactionId
from budgetsync.domain.ports import CategorizationStrategy
from budgetsync.domain.processing_state import (
    DUPLICATE,
    INVALID_STATUS,
    ProcessingState,
    TransactionStatus,
)
from budgetsync.utils.concurrency import run_batch
from budgetsync.utils.deadline import Deadline

logger = logging.getLogger(__name__)

# Reasons a transaction was left uncategorized
NOT_FOUND = "not_found"
NO_MATCH = "no_match"
LOW_CONFIDENCE = "low_confidence"
STRATEGY_FAILED = "strategy_failed"
LOCK_TIMEOUT = "lock_timeout"
STORE_TIMEOUT = "store_timeout"
CANCELLED = "cancelled"


@dataclass(frozen=True)
class CategorizationOutcome:
    """What happened to one transaction in a categorization batch."""

    transaction_id: TransactionId
    categorized: bool
    category: Optional[str] = None
    payee_name: Optional[str] = None
    confidence: Optional[ConfidenceScore] = None
    reason: Optional[str] = None
    detail: Optional[str] = None


@dataclass
class CategorizationResult:
    categorized_count: int = 0
    failed_count: int = 0
    average_confidence: Optional[ConfidenceScore] = None
    outcomes: list[CategorizationOutcome] = field(default_factory=list)
    events: list[DomainEvent] = field(default_factory=list)


@dataclass
class UpdateResult:
    state: ProcessingState
    events: list[DomainEvent] = field(default_factory=list)


@dataclass
class BulkUpdateResult:
    updated_count: int = 0
    events: list[DomainEvent] = field(default_factory=list)


@dataclass(frozen=True)
class TransactionFilter:
    """Predicate selecting transactions for a bulk override.

    All criteria that are set must match. Text criteria are case-insensitive
    substring matches.
    """

    source_account_id: Optional[str] = None
    description_contains: Optional[str] = None
    counterparty_contains: Optional[str] = None
    transaction_type: Optional[str] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def matches(self, transaction: Transaction) -> bool:
        if self.source_account_id and transaction.account_id != self.source_account_id:
            return False
        if self.description_contains:
            needle = self.description_contains.lower()
            texts = (transaction.message, transaction.comment, transaction.user_identification)
            if not any(text and needle in text.lower() for text in texts):
                return False
        if self.counterparty_contains:
            needle = self.counterparty_contains.lower()
            texts = (transaction.counter_bank_name, transaction.counter_account)
            if not any(text and needle in text.lower() for text in texts):
                return False
        if self.transaction_type and (
            (transaction.transaction_type or "").lower() != self.transaction_type.lower()
        ):
            return False
        if self.min_amount is not None and transaction.amount < self.min_amount:
            return False
        if self.max_amount is not None and transaction.amount > self.max_amount:
            return False
        if self.start_date is not None and transaction.date < self.start_date:
            return False
        if self.end_date is not None and transaction.date > self.end_date:
            return False
        return True

    def describe(self) -> str:
        """Human-readable criteria, used in events and logs."""
        parts = []
        if self.source_account_id:
            parts.append(f"account={self.source_account_id}")
        if self.description_contains:
            parts.append(f"description contains '{self.description_contains}'")
        if self.counterparty_contains:
            parts.append(f"counterparty contains '{self.counterparty_contains}'")
        if self.transaction_type:
            parts.append(f"type={self.transaction_type}")
        if self.min_amount is not None:
            parts.append(f"amount >= {self.min_amount}")
        if self.max_amount is not None:
            parts.append(f"amount <= {self.max_amount}")
        if self.start_date is not None:
            parts.append(f"from {self.start_date.isoformat()}")
        if self.end_date is not None:
            parts.append(f"to {self.end_date.isoformat()}")
        return ", ".join(parts) or "all transactions"


def calculate_average_confidence(
    categorizations: Iterable[Optional[ConfidenceScore]],
) -> Optional[ConfidenceScore]:
    """Mean of the confidence scores that are present; None when there are none."""
    return ConfidenceScore.average(score for score in categorizations if score is not None)


class CategorizationService:
    """Service for categorizing transactions automatically and by hand."""

    def __init__(
        self,
        db: Database,
        strategy: CategorizationStrategy,
        config: Optional[Config] = None,
    ):
        """Initialize categorization service.

        Args:
            db: Database instance
            strategy: Automated categorization strategy
            config: Application configuration (defaults when None)
        """
        self.db = db
        self.strategy = strategy
        self.config = config or Config()

    def categorize_transactions(
        self,
        transaction_ids: Sequence[TransactionId],
        *,
        deadline: Optional[Deadline] = None,
    ) -> CategorizationResult:
        """Run the categorization strategy over a batch of transactions.

        Only non-duplicate transactions in IMPORTED status are categorized.
        A suggestion without a category, or below the configured minimum
        confidence, leaves the transaction IMPORTED.

        Returns:
            CategorizationResult with one outcome per input id, in input order
        """
        deadline = deadline or Deadline()

        def cancelled(transaction_id: TransactionId) -> CategorizationOutcome:
            return CategorizationOutcome(transaction_id, False, reason=CANCELLED)

        outcomes = run_batch(
            list(transaction_ids),
            lambda transaction_id: self._categorize_one(transaction_id, deadline),
            cancelled,
            max_workers=self.config.pipeline.max_workers,
            deadline=deadline,
        )

        result = CategorizationResult(outcomes=outcomes)
        for outcome in outcomes:
            if not outcome.categorized:
                result.failed_count += 1
                continue
            result.categorized_count += 1
            result.events.append(
                TransactionCategorized(
                    transaction_id=outcome.transaction_id,
                    category=outcome.category,
                    payee_name=outcome.payee_name,
                    confidence=outcome.confidence,
                    by_ai=True,
                )
            )
        result.average_confidence = calculate_average_confidence(
            o.confidence for o in outcomes if o.categorized
        )
        result.events.append(
            TransactionsCategorized(
                transaction_count=result.categorized_count,
                average_confidence=result.average_confidence,
            )
        )
        logger.info(
            "Categorized %d of %d transactions",
            result.categorized_count,
            len(outcomes),
        )
        return result

    def categorize_transaction(
        self, transaction_id: TransactionId, *, deadline: Optional[Deadline] = None
    ) -> CategorizationResult:
        """Categorize a single transaction."""
        return self.categorize_transactions([transaction_id], deadline=deadline)

    def update_category(
        self,
        transaction_id: TransactionId,
        category_id: str,
        memo: Optional[str] = None,
        payee_name: Optional[str] = None,
    ) -> UpdateResult:
        """Apply a user override of category and optionally memo and payee.

        Args:
            transaction_id: Transaction to correct
            category_id: New category ID
            memo: New memo (None keeps the current override)
            payee_name: New payee name (None keeps the current override)

        Returns:
            UpdateResult with the new state and a CategoryUpdated event

        Raises:
            ValidationError: If category_id is blank
            NotFoundError: If the transaction doesn't exist
            PreconditionError: If the transaction was already submitted
        """
        if not category_id or not category_id.strip():
            raise ValidationError("Category ID must not be empty")
        self._warn_unknown_category(category_id)

        with self.db.transaction_lock(transaction_id, self.config.pipeline.lock_timeout_seconds):
            state = self.db.get_processing_state(transaction_id)
            if state is None:
                raise NotFoundError(transaction_not_found(transaction_id))
            if state.status == TransactionStatus.SUBMITTED:
                raise PreconditionError(
                    INVALID_STATUS, "Cannot change the category of a submitted transaction"
                )
            old_category = state.effective_category
            state = state.with_overrides(payee_name=payee_name, category=category_id, memo=memo)
            self.db.save_processing_state(state)

        logger.info("Category of %s set to %s", transaction_id, category_id)
        event = CategoryUpdated(
            transaction_id=transaction_id,
            old_category=old_category,
            new_category=state.effective_category,
        )
        return UpdateResult(state=state, events=[event])

    def bulk_update_category(
        self,
        transaction_filter: TransactionFilter,
        category_id: str,
        memo: Optional[str] = None,
        payee_name: Optional[str] = None,
    ) -> BulkUpdateResult:
        """Apply the same override to every transaction matching a filter.

        Submitted transactions are skipped.

        Raises:
            ValidationError: If category_id is blank
        """
        if not category_id or not category_id.strip():
            raise ValidationError("Category ID must not be empty")
        self._warn_unknown_category(category_id)

        candidates = self.db.list_transactions(
            account_id=transaction_filter.source_account_id,
            start_date=transaction_filter.start_date,
            end_date=transaction_filter.end_date,
        )
        result = BulkUpdateResult()
        for transaction in candidates:
            if not transaction_filter.matches(transaction):
                continue
            with self.db.transaction_lock(
                transaction.id, self.config.pipeline.lock_timeout_seconds
            ):
                state = self.db.get_processing_state(transaction.id)
                if state is None or state.status == TransactionStatus.SUBMITTED:
                    continue
                state = state.with_overrides(
                    payee_name=payee_name, category=category_id, memo=memo
                )
                self.db.save_processing_state(state)
                result.updated_count += 1

        criteria = transaction_filter.describe()
        logger.info(
            "Set category %s on %d transactions (%s)", category_id, result.updated_count, criteria
        )
        result.events.append(
            BulkCategoryUpdated(
                count=result.updated_count, category=category_id, filter_criteria=criteria
            )
        )
        return result

    def _warn_unknown_category(self, category_id: str) -> None:
        if self.db.get_category(category_id) is None:
            logger.warning("Category %s is not a known category; applying anyway", category_id)

    def _categorize_one(
        self, transaction_id: TransactionId, deadline: Deadline
    ) -> CategorizationOutcome:
        timeout = deadline.remaining(cap=self.config.pipeline.lock_timeout_seconds)
        try:
            with self.db.transaction_lock(transaction_id, timeout):
                return self._categorize_locked(transaction_id, deadline)
        except StoreTimeoutError as e:
            if deadline.expired:
                return CategorizationOutcome(transaction_id, False, reason=CANCELLED)
            logger.warning("Skipping %s: %s", transaction_id, e)
            return CategorizationOutcome(
                transaction_id, False, reason=STORE_TIMEOUT, detail=str(e)
            )
        except LockTimeoutError as e:
            logger.warning("Skipping %s: %s", transaction_id, e)
            return CategorizationOutcome(transaction_id, False, reason=LOCK_TIMEOUT, detail=str(e))

    def _categorize_locked(
        self, transaction_id: TransactionId, deadline: Deadline
    ) -> CategorizationOutcome:
        state = self.db.get_processing_state(transaction_id, timeout=deadline.remaining())
        transaction = self.db.get_transaction(transaction_id, timeout=deadline.remaining())
        if state is None or transaction is None:
            return CategorizationOutcome(transaction_id, False, reason=NOT_FOUND)
        if state.is_duplicate:
            return CategorizationOutcome(transaction_id, False, reason=DUPLICATE)
        if state.status != TransactionStatus.IMPORTED:
            return CategorizationOutcome(transaction_id, False, reason=INVALID_STATUS)

        try:
            suggestion = self.strategy.categorize(transaction)
        except CategorizationError as e:
            logger.warning("Categorization failed for %s: %s", transaction_id, e)
            return CategorizationOutcome(
                transaction_id, False, reason=STRATEGY_FAILED, detail=str(e)
            )

        category = suggestion.category_id
        reason = None
        if not category:
            reason = NO_MATCH
        elif suggestion.confidence is not None and (
            suggestion.confidence.value < self.config.categorization.min_category_confidence
        ):
            # Inconclusive: keep payee and memo hints, drop the category
            category = None
            reason = LOW_CONFIDENCE

        state = state.with_suggestions(
            payee_name=suggestion.payee_name,
            category=category,
            memo=suggestion.memo,
            category_confidence=suggestion.confidence,
            payee_confidence=suggestion.payee_confidence,
        )
        self.db.save_processing_state(state, timeout=deadline.remaining())

        if reason is not None:
            logger.debug("%s left uncategorized (%s)", transaction_id, reason)
            return CategorizationOutcome(
                transaction_id, False, confidence=suggestion.confidence, reason=reason
            )
        logger.debug("%s categorized as %s", transaction_id, category)
        return CategorizationOutcome(
            transaction_id,
            True,
            category=state.effective_category,
            payee_name=state.effective_payee_name,
            confidence=suggestion.confidence,
        )
