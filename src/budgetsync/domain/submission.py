"""Submission domain service.

Sends categorized transactions to the budgeting system through a
``SubmissionPort``. Every input id yields exactly one outcome; one failure
never aborts the rest of the batch. Retrying transient failures is the port's
job, so a failed transaction simply stays CATEGORIZED for a later run.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence

from budgetsync.config import Config
from budgetsync.database.base import Database
from budgetsync.domain.errors import (
    DependencyError,
    LockTimeoutError,
    StoreTimeoutError,
    SubmissionPortError,
)
from budgetsync.domain.events import (
    DomainEvent,
    SubmissionFailed,
    TransactionsSubmitted,
    TransactionSubmitted,
)
from budgetsync.domain.identifiers import TransactionId
from budgetsync.domain.ports import SubmissionPort
from budgetsync.domain.processing_state import (
    INVALID_STATUS,
    PROBLEM_MESSAGES,
    ProcessingState,
    TransactionStatus,
)
from budgetsync.utils.concurrency import run_batch
from budgetsync.utils.deadline import Deadline

logger = logging.getLogger(__name__)

NOT_FOUND = "not_found"
LOCK_TIMEOUT = "lock_timeout"
STORE_TIMEOUT = "store_timeout"
CANCELLED = "cancelled"


class SubmissionStatus(Enum):
    SUBMITTED = "submitted"
    ALREADY_SUBMITTED = "already_submitted"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of submitting one transaction.

    ``failure`` is a machine-readable code: a precondition code such as
    ``missing_payee``, a port failure kind such as ``rate_limit``, or one of
    ``not_found``, ``lock_timeout`` and ``cancelled``.
    """

    transaction_id: TransactionId
    status: SubmissionStatus
    external_id: Optional[str] = None
    destination_account_id: Optional[str] = None
    failure: Optional[str] = None
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == SubmissionStatus.SUBMITTED


@dataclass
class SubmissionBatchResult:
    outcomes: list[SubmissionOutcome] = field(default_factory=list)
    submitted_count: int = 0
    failed_count: int = 0
    events: list[DomainEvent] = field(default_factory=list)

    @property
    def already_submitted_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == SubmissionStatus.ALREADY_SUBMITTED)


@dataclass(frozen=True)
class SubmissionStatistics:
    imported: int
    categorized: int
    submitted: int
    duplicates: int
    ready: int

    @property
    def total(self) -> int:
        return self.imported + self.categorized + self.submitted


class SubmissionService:
    """Service for submitting categorized transactions."""

    def __init__(
        self,
        db: Database,
        port: Optional[SubmissionPort],
        config: Optional[Config] = None,
    ):
        """Initialize submission service.

        Args:
            db: Database instance
            port: Destination system adapter (None for read-only use)
            config: Application configuration (defaults when None)
        """
        self.db = db
        self.port = port
        self.config = config or Config()

    def resolve_destination_account(self, account_id: str) -> Optional[str]:
        """Destination account for a source account, or None when unmapped.

        The account record wins over ``submission.destination_accounts``.
        """
        account = self.db.get_account(account_id)
        if account is not None and account.destination_account_id:
            return account.destination_account_id
        return self.config.submission.destination_accounts.get(account_id)

    def submit_transactions(
        self,
        transaction_ids: Sequence[TransactionId],
        *,
        deadline: Optional[Deadline] = None,
    ) -> SubmissionBatchResult:
        """Submit a batch of transactions.

        Already-submitted, duplicate and ineligible transactions are rejected
        without being changed. Port failures leave the transaction CATEGORIZED.

        Returns:
            SubmissionBatchResult with one outcome per input id, in input order
        """
        if self.port is None:
            raise DependencyError("No submission port configured")
        deadline = deadline or Deadline()

        def cancelled(transaction_id: TransactionId) -> SubmissionOutcome:
            return SubmissionOutcome(
                transaction_id,
                SubmissionStatus.FAILED,
                failure=CANCELLED,
                reason="Cancelled before submission",
            )

        outcomes = run_batch(
            list(transaction_ids),
            lambda transaction_id: self._submit_one(transaction_id, deadline),
            cancelled,
            max_workers=self.config.pipeline.max_workers,
            deadline=deadline,
        )

        result = SubmissionBatchResult(outcomes=outcomes)
        failures: Counter[str] = Counter()
        for outcome in outcomes:
            if outcome.status == SubmissionStatus.SUBMITTED:
                result.submitted_count += 1
                result.events.append(
                    TransactionSubmitted(
                        transaction_id=outcome.transaction_id,
                        ynab_transaction_id=outcome.external_id,
                        ynab_account_id=outcome.destination_account_id,
                    )
                )
            elif outcome.status == SubmissionStatus.FAILED:
                result.failed_count += 1
                failures[outcome.failure] += 1

        result.events.append(TransactionsSubmitted(count=result.submitted_count))
        for reason, count in failures.items():
            result.events.append(SubmissionFailed(reason=reason, transaction_count=count))

        logger.info(
            "Submitted %d of %d transactions (%d already submitted, %d failed)",
            result.submitted_count,
            len(outcomes),
            result.already_submitted_count,
            result.failed_count,
        )
        return result

    def validate_for_submission(
        self, states: Iterable[ProcessingState]
    ) -> tuple[list[ProcessingState], list[tuple[ProcessingState, str]]]:
        """Partition states into submittable ones and (state, reason) rejections.

        The reason is the first violated precondition code.
        """
        valid: list[ProcessingState] = []
        invalid: list[tuple[ProcessingState, str]] = []
        for state in states:
            destination = self.resolve_destination_account(state.transaction_id.source_account_id)
            problems = state.submission_problems(destination)
            if problems:
                invalid.append((state, problems[0]))
            else:
                valid.append(state)
        return valid, invalid

    def find_submittable(self, account_id: Optional[str] = None) -> list[TransactionId]:
        """IDs of categorized, non-duplicate transactions awaiting submission."""
        states = self.db.list_processing_states(
            account_id=account_id, status=TransactionStatus.CATEGORIZED
        )
        return [s.transaction_id for s in states if not s.is_duplicate]

    def get_submission_statistics(self, account_id: Optional[str] = None) -> SubmissionStatistics:
        """Count transactions per status, plus duplicates and ready-to-submit."""
        states = self.db.list_processing_states(account_id=account_id)
        by_status = Counter(s.status for s in states)
        ready = sum(
            1
            for s in states
            if s.is_ready_for_submission(
                self.resolve_destination_account(s.transaction_id.source_account_id)
            )
        )
        return SubmissionStatistics(
            imported=by_status[TransactionStatus.IMPORTED],
            categorized=by_status[TransactionStatus.CATEGORIZED],
            submitted=by_status[TransactionStatus.SUBMITTED],
            duplicates=sum(1 for s in states if s.is_duplicate),
            ready=ready,
        )

    def _submit_one(self, transaction_id: TransactionId, deadline: Deadline) -> SubmissionOutcome:
        timeout = deadline.remaining(cap=self.config.pipeline.lock_timeout_seconds)
        try:
            with self.db.transaction_lock(transaction_id, timeout):
                return self._submit_locked(transaction_id, deadline)
        except StoreTimeoutError as e:
            failure = CANCELLED if deadline.expired else STORE_TIMEOUT
            logger.warning("Skipping %s: %s", transaction_id, e)
            return SubmissionOutcome(
                transaction_id, SubmissionStatus.FAILED, failure=failure, reason=str(e)
            )
        except LockTimeoutError as e:
            logger.warning("Skipping %s: %s", transaction_id, e)
            return SubmissionOutcome(
                transaction_id, SubmissionStatus.FAILED, failure=LOCK_TIMEOUT, reason=str(e)
            )

    def _submit_locked(self, transaction_id: TransactionId, deadline: Deadline) -> SubmissionOutcome:
        state = self.db.get_processing_state(transaction_id, timeout=deadline.remaining())
        transaction = self.db.get_transaction(transaction_id, timeout=deadline.remaining())
        if state is None or transaction is None:
            return SubmissionOutcome(
                transaction_id,
                SubmissionStatus.FAILED,
                failure=NOT_FOUND,
                reason=f"Transaction {transaction_id} not found",
            )
        if state.status == TransactionStatus.SUBMITTED:
            return SubmissionOutcome(
                transaction_id,
                SubmissionStatus.ALREADY_SUBMITTED,
                external_id=state.ynab_transaction_id,
            )

        destination = self.resolve_destination_account(transaction_id.source_account_id)
        problems = state.submission_problems(destination)
        if problems:
            code = problems[0]
            message = PROBLEM_MESSAGES[code]
            if code == INVALID_STATUS:
                message = f"Cannot submit transaction with status {state.status.value}"
            logger.warning("Not submitting %s: %s", transaction_id, message)
            return SubmissionOutcome(
                transaction_id, SubmissionStatus.FAILED, failure=code, reason=message
            )

        try:
            receipt = self.port.submit(
                transaction, state, destination, timeout=deadline.remaining()
            )
        except SubmissionPortError as e:
            logger.warning("Submission of %s failed (%s): %s", transaction_id, e.kind, e)
            return SubmissionOutcome(
                transaction_id, SubmissionStatus.FAILED, failure=e.kind, reason=str(e)
            )

        # The destination already holds the transaction; record it even past the deadline
        self.db.save_processing_state(
            state.with_submission(receipt.external_id, destination),
            timeout=self.config.pipeline.lock_timeout_seconds,
        )
        logger.debug("Submitted %s as %s", transaction_id, receipt.external_id)
        return SubmissionOutcome(
            transaction_id,
            SubmissionStatus.SUBMITTED,
            external_id=receipt.external_id,
            destination_account_id=destination,
        )
