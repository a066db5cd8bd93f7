"""Processing state: the mutable workflow record of one transaction.

The record itself is a frozen dataclass; every transition returns a new
instance and the caller persists it. Status only moves forward:

    IMPORTED -> CATEGORIZED -> SUBMITTED

A failed submission simply never leaves CATEGORIZED, so it can be retried.
"""

from dataclasses import dataclass, replace
from datetime import datetime, UTC
from enum import Enum
from typing import Optional

from budgetsync.domain.confidence import RELIABLE_THRESHOLD, ConfidenceScore
from budgetsync.domain.errors import PreconditionError
from budgetsync.domain.identifiers import TransactionId

DUPLICATE = "duplicate"
INVALID_STATUS = "invalid_status"
MISSING_CATEGORY = "missing_category"
MISSING_PAYEE = "missing_payee"
MISSING_TARGET = "missing_target"

PROBLEM_MESSAGES = {
    DUPLICATE: "Transaction is marked as duplicate",
    INVALID_STATUS: "Transaction is not categorized",
    MISSING_CATEGORY: "Missing category",
    MISSING_PAYEE: "Missing payee name",
    MISSING_TARGET: "No destination account configured",
}


class TransactionStatus(Enum):
    """Pipeline stage of a transaction."""

    IMPORTED = "imported"
    CATEGORIZED = "categorized"
    SUBMITTED = "submitted"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, TransactionStatus):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, TransactionStatus):
            return NotImplemented
        return self.rank <= other.rank


_STATUS_ORDER = [
    TransactionStatus.IMPORTED,
    TransactionStatus.CATEGORIZED,
    TransactionStatus.SUBMITTED,
]


def _present(value: Optional[str]) -> Optional[str]:
    """Treat blank strings as absent."""
    if value is None or not str(value).strip():
        return None
    return value


def resolve(override: Optional[str], suggestion: Optional[str]) -> Optional[str]:
    """Effective value: the override when present, else the suggestion."""
    return _present(override) or _present(suggestion)


@dataclass(frozen=True)
class ProcessingState:
    """Workflow record tracking one transaction through the pipeline."""

    transaction_id: TransactionId
    status: TransactionStatus = TransactionStatus.IMPORTED
    is_duplicate: bool = False

    suggested_payee_name: Optional[str] = None
    suggested_category: Optional[str] = None
    suggested_memo: Optional[str] = None
    category_confidence: Optional[ConfidenceScore] = None
    payee_confidence: Optional[ConfidenceScore] = None

    override_payee_name: Optional[str] = None
    override_category: Optional[str] = None
    override_memo: Optional[str] = None

    ynab_transaction_id: Optional[str] = None
    ynab_account_id: Optional[str] = None

    processed_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None

    @classmethod
    def initial(cls, transaction_id: TransactionId) -> "ProcessingState":
        """State of a freshly imported transaction."""
        return cls(transaction_id=transaction_id)

    # Effective values are computed on every read so a later override always wins.
    @property
    def effective_payee_name(self) -> Optional[str]:
        return resolve(self.override_payee_name, self.suggested_payee_name)

    @property
    def effective_category(self) -> Optional[str]:
        return resolve(self.override_category, self.suggested_category)

    @property
    def effective_memo(self) -> Optional[str]:
        return resolve(self.override_memo, self.suggested_memo)

    @property
    def is_manually_categorized(self) -> bool:
        return _present(self.override_category) is not None

    @property
    def has_reliable_category(self) -> bool:
        return self.category_confidence is not None and self.category_confidence.exceeds(
            RELIABLE_THRESHOLD
        )

    def is_ready_for_submission(self, destination_account_id: Optional[str]) -> bool:
        """True when nothing blocks submitting to the given destination account."""
        return not self.submission_problems(destination_account_id)

    def with_suggestions(
        self,
        payee_name: Optional[str],
        category: Optional[str],
        memo: Optional[str],
        category_confidence: Optional[ConfidenceScore] = None,
        payee_confidence: Optional[ConfidenceScore] = None,
        processed_at: Optional[datetime] = None,
    ) -> "ProcessingState":
        """Apply an automated categorization.

        Status advances to CATEGORIZED only when a category was suggested.
        Overrides are left untouched.
        """
        status = self.status
        if _present(category) and status == TransactionStatus.IMPORTED:
            status = TransactionStatus.CATEGORIZED
        return replace(
            self,
            status=status,
            suggested_payee_name=_present(payee_name),
            suggested_category=_present(category),
            suggested_memo=_present(memo),
            category_confidence=category_confidence,
            payee_confidence=payee_confidence,
            processed_at=processed_at or datetime.now(UTC),
        )

    def with_overrides(
        self,
        payee_name: Optional[str] = None,
        category: Optional[str] = None,
        memo: Optional[str] = None,
    ) -> "ProcessingState":
        """Apply user overrides; fields left as None keep their current override.

        Only a non-empty category advances IMPORTED to CATEGORIZED.
        """
        status = self.status
        if _present(category) and status == TransactionStatus.IMPORTED:
            status = TransactionStatus.CATEGORIZED
        return replace(
            self,
            status=status,
            override_payee_name=_present(payee_name) or self.override_payee_name,
            override_category=_present(category) or self.override_category,
            override_memo=_present(memo) or self.override_memo,
        )

    def submission_problems(self, destination_account_id: Optional[str]) -> list[str]:
        """Return violated submission preconditions in a fixed order.

        Duplicate status is checked independently of the nominal status path.
        """
        problems = []
        if self.is_duplicate:
            problems.append(DUPLICATE)
        if self.status != TransactionStatus.CATEGORIZED:
            problems.append(INVALID_STATUS)
        if self.effective_category is None:
            problems.append(MISSING_CATEGORY)
        if self.effective_payee_name is None:
            problems.append(MISSING_PAYEE)
        if not _present(destination_account_id):
            problems.append(MISSING_TARGET)
        return problems

    def with_submission(
        self,
        external_id: str,
        account_id: str,
        submitted_at: Optional[datetime] = None,
    ) -> "ProcessingState":
        """Record a successful submission.

        Raises:
            PreconditionError: If the state is not eligible for submission
        """
        problems = self.submission_problems(account_id)
        if problems:
            reason = problems[0]
            message = PROBLEM_MESSAGES[reason]
            if reason == INVALID_STATUS:
                message = f"Cannot submit transaction with status {self.status.value}"
            raise PreconditionError(reason, message)
        return replace(
            self,
            status=TransactionStatus.SUBMITTED,
            ynab_transaction_id=external_id,
            ynab_account_id=account_id,
            submitted_at=submitted_at or datetime.now(UTC),
        )

    def mark_duplicate(self) -> "ProcessingState":
        return replace(self, is_duplicate=True)
