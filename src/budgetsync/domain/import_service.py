"""Import domain service.

Turns raw transactions from a source into stored Transaction records, each
with an initial ProcessingState. Duplicate detection is an exact match on
TransactionId, so re-running an import is always safe: already stored ids are
reported as duplicates and nothing is written for them.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, UTC
from typing import Optional, Sequence

from budgetsync.config import Config
from budgetsync.database.base import Database
from budgetsync.domain.entities import ImportBatch, ImportStatus, RawTransaction, Transaction
from budgetsync.domain.errors import (
    ConflictError,
    LockTimeoutError,
    NotFoundError,
    PreconditionError,
    StoreTimeoutError,
    ValidationError,
    account_not_found,
    transaction_not_found,
)
from budgetsync.domain.events import (
    DomainEvent,
    DuplicateTransactionDetected,
    ImportCompleted,
    TransactionImported,
)
from budgetsync.domain.identifiers import ImportBatchId, TransactionId
from budgetsync.domain.ports import RawTransactionSource
from budgetsync.domain.processing_state import (
    INVALID_STATUS,
    ProcessingState,
    TransactionStatus,
)
from budgetsync.utils.concurrency import run_batch
from budgetsync.utils.date_parser import validate_date_range
from budgetsync.utils.deadline import Deadline
from budgetsync.utils.retry import RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

# Attempts at claiming a batch sequence number when imports race
_SEQUENCE_ATTEMPTS = 5

_IMPORTED = "imported"
_DUPLICATE = "duplicate"
_ERROR = "error"
_CANCELLED = "cancelled"


@dataclass(frozen=True)
class ImportItemError:
    """A raw transaction that was skipped because it could not be imported."""

    external_id: Optional[str]
    reason: str


@dataclass
class ImportResult:
    """Outcome of one import batch."""

    imported_count: int = 0
    duplicate_ids: list[str] = field(default_factory=list)
    errors: list[ImportItemError] = field(default_factory=list)
    batch_id: Optional[ImportBatchId] = None
    cancelled_count: int = 0
    events: list[DomainEvent] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        """True when the deadline stopped the batch before every item ran."""
        return self.cancelled_count > 0


@dataclass(frozen=True)
class _ItemOutcome:
    kind: str
    external_id: Optional[str]
    transaction: Optional[Transaction] = None
    reason: Optional[str] = None


class ImportService:
    """Service for importing raw transactions into the pipeline."""

    def __init__(self, db: Database, config: Optional[Config] = None):
        """Initialize import service.

        Args:
            db: Database instance
            config: Application configuration (defaults when None)
        """
        self.db = db
        self.config = config or Config()

    def import_transactions(
        self,
        account_id: str,
        raw_transactions: Sequence[RawTransaction],
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        deadline: Optional[Deadline] = None,
    ) -> ImportResult:
        """Import raw transactions for an account.

        Malformed items are skipped and reported in ``errors``; the rest of
        the batch continues. Copies of an external id repeated within the batch
        run one after another, so a later copy is a duplicate only when an
        earlier one was actually stored.

        Args:
            account_id: Source account ID
            raw_transactions: Raw transactions in source order
            start_date: Start of the fetched range, recorded on the batch
            end_date: End of the fetched range, recorded on the batch
            deadline: Time budget and cancellation signal for the batch

        Returns:
            ImportResult with counts, per-item errors and events

        Raises:
            NotFoundError: If the account doesn't exist
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        deadline = deadline or Deadline()

        batch = self._start_batch(account_id, start_date, end_date)
        logger.info(
            "Importing %d transactions for %s in batch %s",
            len(raw_transactions),
            account_id,
            batch.id,
        )

        waves = _occurrence_waves(raw_transactions)

        def worker(raw: RawTransaction) -> _ItemOutcome:
            return self._import_one(account_id, raw, batch.id, deadline)

        def cancelled(raw: RawTransaction) -> _ItemOutcome:
            return _ItemOutcome(_CANCELLED, raw.external_id)

        outcomes: list[_ItemOutcome] = []
        try:
            for wave in waves:
                outcomes.extend(
                    run_batch(
                        wave,
                        worker,
                        cancelled,
                        max_workers=self.config.pipeline.max_workers,
                        deadline=deadline,
                    )
                )
        except Exception as e:
            self._finish_batch(batch, ImportResult(), error_message=str(e))
            raise

        result = ImportResult(batch_id=batch.id)
        for outcome in outcomes:
            if outcome.kind == _IMPORTED:
                txn = outcome.transaction
                result.imported_count += 1
                result.events.append(
                    TransactionImported(
                        transaction_id=txn.id,
                        date=txn.date,
                        amount=txn.amount,
                        currency=txn.currency,
                    )
                )
            elif outcome.kind == _DUPLICATE:
                self._record_duplicate(result, account_id, outcome.external_id)
            elif outcome.kind == _ERROR:
                result.errors.append(ImportItemError(outcome.external_id, outcome.reason))
            else:
                result.cancelled_count += 1

        error_message = None
        if result.cancelled_count:
            error_message = (
                f"Cancelled before completion: {result.cancelled_count} "
                "transactions not processed"
            )
        self._finish_batch(batch, result, error_message=error_message)

        logger.info(
            "Batch %s: %d imported, %d duplicates, %d errors, %d cancelled",
            batch.id,
            result.imported_count,
            len(result.duplicate_ids),
            len(result.errors),
            result.cancelled_count,
        )
        return result

    def import_from_source(
        self,
        source: RawTransactionSource,
        account_id: str,
        start_date: date,
        end_date: date,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        deadline: Optional[Deadline] = None,
    ) -> ImportResult:
        """Fetch raw transactions from a source and import them.

        Connection and rate-limit failures are retried with backoff.

        Raises:
            ValidationError: If the date range is invalid
            NotFoundError: If the account doesn't exist
            SourceError: If the source keeps failing or fails permanently
        """
        validate_date_range(start_date, end_date)
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        deadline = deadline or Deadline()

        raw_transactions = call_with_retry(
            lambda: source.fetch(account_id, start_date, end_date, timeout=deadline.remaining()),
            policy=retry_policy or self.config.retry,
            deadline=deadline,
        )
        logger.debug("Fetched %d raw transactions for %s", len(raw_transactions), account_id)
        return self.import_transactions(
            account_id,
            raw_transactions,
            start_date=start_date,
            end_date=end_date,
            deadline=deadline,
        )

    def check_for_duplicate(self, transaction_id: TransactionId) -> bool:
        """Check whether a transaction with this ID was already imported."""
        return self.db.transaction_exists(transaction_id)

    @staticmethod
    def create_import_completed_event(
        account_id: str, count: int, batch_id: Optional[ImportBatchId] = None
    ) -> ImportCompleted:
        """Build the event announcing a finished import. Has no side effects."""
        return ImportCompleted(source_account_id=account_id, count=count, batch_id=batch_id)

    def mark_duplicate(self, transaction_id: TransactionId) -> ProcessingState:
        """Flag a transaction as a duplicate so it is never submitted.

        Raises:
            NotFoundError: If the transaction doesn't exist
            PreconditionError: If the transaction was already submitted
        """
        with self.db.transaction_lock(transaction_id, self.config.pipeline.lock_timeout_seconds):
            state = self.db.get_processing_state(transaction_id)
            if state is None:
                raise NotFoundError(transaction_not_found(transaction_id))
            if state.status == TransactionStatus.SUBMITTED:
                raise PreconditionError(
                    INVALID_STATUS, "Cannot mark a submitted transaction as duplicate"
                )
            state = state.mark_duplicate()
            self.db.save_processing_state(state)
        logger.info("Marked %s as duplicate", transaction_id)
        return state

    def list_batches(self, account_id: Optional[str] = None) -> list[ImportBatch]:
        """List import batches, newest first."""
        return self.db.list_import_batches(account_id)

    def _import_one(
        self,
        account_id: str,
        raw: RawTransaction,
        batch_id: ImportBatchId,
        deadline: Deadline,
    ) -> _ItemOutcome:
        try:
            transaction = Transaction.from_raw(account_id, raw, import_batch_id=batch_id)
        except ValidationError as e:
            logger.warning("Skipping transaction %r: %s", raw.external_id, e)
            return _ItemOutcome(_ERROR, raw.external_id, reason=str(e))

        timeout = deadline.remaining(cap=self.config.pipeline.lock_timeout_seconds)
        try:
            with self.db.transaction_lock(transaction.id, timeout):
                if self.db.transaction_exists(transaction.id, timeout=deadline.remaining()):
                    logger.debug("Duplicate transaction %s", transaction.id)
                    return _ItemOutcome(_DUPLICATE, transaction.external_id)
                self.db.create_transaction_with_state(
                    transaction,
                    ProcessingState.initial(transaction.id),
                    timeout=deadline.remaining(),
                )
        except ConflictError:
            return _ItemOutcome(_DUPLICATE, transaction.external_id)
        except StoreTimeoutError as e:
            if deadline.expired:
                return _ItemOutcome(_CANCELLED, transaction.external_id)
            logger.warning("Skipping transaction %s: %s", transaction.id, e)
            return _ItemOutcome(_ERROR, transaction.external_id, reason=str(e))
        except LockTimeoutError as e:
            logger.warning("Skipping transaction %s: %s", transaction.id, e)
            return _ItemOutcome(_ERROR, transaction.external_id, reason=str(e))

        logger.debug("Imported transaction %s", transaction.id)
        return _ItemOutcome(_IMPORTED, transaction.external_id, transaction=transaction)

    def _record_duplicate(self, result: ImportResult, account_id: str, external_id: str) -> None:
        result.duplicate_ids.append(external_id)
        result.events.append(
            DuplicateTransactionDetected(
                external_id=external_id,
                source_account_id=account_id,
                existing_transaction_id=TransactionId(account_id, external_id),
            )
        )

    def _start_batch(
        self, account_id: str, start_date: Optional[date], end_date: Optional[date]
    ) -> ImportBatch:
        for _ in range(_SEQUENCE_ATTEMPTS):
            sequence = self.db.next_import_sequence(account_id)
            batch = ImportBatch(
                id=ImportBatchId(account_id, sequence),
                account_id=account_id,
                start_date=start_date,
                end_date=end_date,
                status=ImportStatus.IN_PROGRESS,
                transaction_count=0,
                duplicate_count=0,
                error_count=0,
                error_message=None,
                started_at=datetime.now(UTC),
                finished_at=None,
            )
            try:
                self.db.create_import_batch(batch)
                return batch
            except ConflictError:
                logger.debug("Import batch sequence %d for %s taken, retrying", sequence, account_id)
        raise ConflictError(f"Could not allocate an import batch for account {account_id}")

    def _finish_batch(
        self, batch: ImportBatch, result: ImportResult, error_message: Optional[str]
    ) -> None:
        self.db.save_import_batch(
            ImportBatch(
                id=batch.id,
                account_id=batch.account_id,
                start_date=batch.start_date,
                end_date=batch.end_date,
                status=ImportStatus.ERROR if error_message else ImportStatus.COMPLETED,
                transaction_count=result.imported_count,
                duplicate_count=len(result.duplicate_ids),
                error_count=len(result.errors),
                error_message=error_message,
                started_at=batch.started_at,
                finished_at=datetime.now(UTC),
            )
        )


def _occurrence_waves(raw_transactions: Sequence[RawTransaction]) -> list[list[RawTransaction]]:
    """Split raw transactions so each wave holds at most one copy of an external id.

    Wave n holds the (n+1)-th occurrence of every id, in source order. Items
    without an id can't collide and all go in the first wave.
    """
    waves: list[list[RawTransaction]] = []
    seen: dict[str, int] = {}
    for raw in raw_transactions:
        key = (raw.external_id or "").strip()
        index = seen.get(key, 0) if key else 0
        if key:
            seen[key] = index + 1
        if index == len(waves):
            waves.append([])
        waves[index].append(raw)
    return waves
