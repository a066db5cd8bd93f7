"""Domain model entities for budgetsync.

These are pure data classes representing business concepts, independent of
database schema. Transactions are what the bank reported and never change
after import; everything that changes while a transaction moves through the
pipeline lives in ``ProcessingState`` (see ``processing_state.py``).
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, UTC
from decimal import Decimal
from enum import Enum
from typing import Optional

from budgetsync.domain.errors import ValidationError
from budgetsync.domain.identifiers import ImportBatchId, TransactionId

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


@dataclass(frozen=True)
class Account:
    """Source bank account domain entity."""

    id: str
    name: str
    bank_name: str
    currency: str
    destination_account_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Destination category with optional parent."""

    id: str
    name: str
    parent_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class RawTransaction:
    """Transaction as delivered by a source, before validation."""

    external_id: str
    date: Optional[date]
    amount: Optional[Decimal]
    currency: Optional[str]
    counter_account: Optional[str] = None
    counter_bank_code: Optional[str] = None
    counter_bank_name: Optional[str] = None
    variable_symbol: Optional[str] = None
    constant_symbol: Optional[str] = None
    specific_symbol: Optional[str] = None
    user_identification: Optional[str] = None
    message: Optional[str] = None
    transaction_type: Optional[str] = None
    comment: Optional[str] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class Transaction:
    """Immutable record of a financial movement observed at the source."""

    id: TransactionId
    date: date
    amount: Decimal
    currency: str
    counter_account: Optional[str]
    counter_bank_code: Optional[str]
    counter_bank_name: Optional[str]
    variable_symbol: Optional[str]
    constant_symbol: Optional[str]
    specific_symbol: Optional[str]
    user_identification: Optional[str]
    message: Optional[str]
    transaction_type: Optional[str]
    comment: Optional[str]
    imported_at: datetime
    import_batch_id: Optional[ImportBatchId] = None

    @property
    def account_id(self) -> str:
        return self.id.source_account_id

    @property
    def external_id(self) -> str:
        return self.id.transaction_id

    @property
    def description(self) -> Optional[str]:
        """Best human-readable text for the transaction."""
        for text in (self.message, self.comment, self.user_identification, self.transaction_type):
            if text:
                return text
        return None

    @classmethod
    def from_raw(
        cls,
        account_id: str,
        raw: RawTransaction,
        imported_at: Optional[datetime] = None,
        import_batch_id: Optional[ImportBatchId] = None,
        today: Optional[date] = None,
    ) -> "Transaction":
        """Validate a raw transaction and build the immutable record.

        Args:
            account_id: Source account the raw transaction was fetched from
            raw: Raw transaction data
            imported_at: Import timestamp (defaults to now)
            import_batch_id: Batch the transaction is imported in
            today: Reference date for the future-date check (defaults to today)

        Returns:
            Transaction entity

        Raises:
            ValidationError: If a required field is missing or invalid
        """
        transaction_id = TransactionId(account_id, raw.external_id)

        if raw.date is None:
            raise ValidationError("Transaction date is required")
        txn_date = raw.date.date() if isinstance(raw.date, datetime) else raw.date
        if txn_date > (today or date.today()):
            raise ValidationError(f"Transaction date {txn_date.isoformat()} is in the future")

        if raw.amount is None:
            raise ValidationError("Transaction amount is required")
        try:
            amount = raw.amount if isinstance(raw.amount, Decimal) else Decimal(str(raw.amount))
        except ArithmeticError:
            raise ValidationError(f"Invalid amount '{raw.amount}'") from None
        if not amount.is_finite():
            raise ValidationError(f"Invalid amount '{raw.amount}'")

        currency = (raw.currency or "").strip().upper()
        if not _CURRENCY_RE.match(currency):
            raise ValidationError(f"Invalid currency code '{raw.currency}'")

        transaction = cls(
            id=transaction_id,
            date=txn_date,
            amount=amount,
            currency=currency,
            counter_account=_clean(raw.counter_account),
            counter_bank_code=_clean(raw.counter_bank_code),
            counter_bank_name=_clean(raw.counter_bank_name),
            variable_symbol=_clean(raw.variable_symbol),
            constant_symbol=_clean(raw.constant_symbol),
            specific_symbol=_clean(raw.specific_symbol),
            user_identification=_clean(raw.user_identification),
            message=_clean(raw.message),
            transaction_type=_clean(raw.transaction_type),
            comment=_clean(raw.comment),
            imported_at=imported_at or datetime.now(UTC),
            import_batch_id=import_batch_id,
        )
        if transaction.description is None:
            raise ValidationError("Transaction description must not be empty")
        return transaction


class ImportStatus(Enum):
    """Lifecycle of an import batch."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ImportBatch:
    """One import run for an account."""

    id: ImportBatchId
    account_id: str
    start_date: Optional[date]
    end_date: Optional[date]
    status: ImportStatus
    transaction_count: int
    duplicate_count: int
    error_count: int
    error_message: Optional[str]
    started_at: datetime
    finished_at: Optional[datetime]

    @property
    def completion_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def is_success(self) -> bool:
        return self.status == ImportStatus.COMPLETED and self.error_message is None
