"""Composite identifiers for accounts, transactions and import batches.

All identifiers are frozen value objects. They are validated on construction
and render to a stable string form (``value``) that is used as the storage key.
"""

from dataclasses import dataclass

from budgetsync.domain.errors import ValidationError


def _require_text(value, field_name: str) -> str:
    if value is None:
        raise ValidationError(f"{field_name} must not be None")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field_name} must not be empty")
    return text


def _require_key_part(value, field_name: str) -> str:
    """Text that can sit left of the ':' in a transaction key."""
    text = _require_text(value, field_name)
    if ":" in text:
        raise ValidationError(f"{field_name} must not contain ':'")
    return text


@dataclass(frozen=True)
class AccountId:
    """Source account identifier made of the bank id and the bank's account number."""

    bank_id: str
    bank_account_id: str

    def __post_init__(self):
        object.__setattr__(self, "bank_id", _require_key_part(self.bank_id, "Bank ID"))
        object.__setattr__(
            self, "bank_account_id", _require_key_part(self.bank_account_id, "Bank account ID")
        )

    @property
    def value(self) -> str:
        return f"{self.bank_id}-{self.bank_account_id}"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> "AccountId":
        """Parse ``bankId-bankAccountId``.

        Raises:
            ValidationError: If the string is not in the expected format
        """
        if not text or "-" not in text:
            raise ValidationError(
                f"Invalid account ID '{text}'. Expected format: 'bankId-bankAccountId'"
            )
        bank_id, bank_account_id = text.split("-", 1)
        return cls(bank_id, bank_account_id)


@dataclass(frozen=True)
class TransactionId:
    """Globally unique transaction key: (source account, bank transaction id).

    The source account must not contain ':', so ``value`` is unambiguous;
    the bank transaction id may.
    """

    source_account_id: str
    transaction_id: str

    def __post_init__(self):
        object.__setattr__(
            self,
            "source_account_id",
            _require_key_part(self.source_account_id, "Source account ID"),
        )
        object.__setattr__(
            self, "transaction_id", _require_text(self.transaction_id, "Transaction ID")
        )

    @property
    def value(self) -> str:
        return f"{self.source_account_id}:{self.transaction_id}"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> "TransactionId":
        """Parse ``account:transactionId`` (split on the first colon)."""
        if not text or ":" not in text:
            raise ValidationError(
                f"Invalid transaction ID '{text}'. Expected format: 'account:transactionId'"
            )
        account, txn = text.split(":", 1)
        return cls(account, txn)


@dataclass(frozen=True)
class ImportBatchId:
    """One import run: (account, per-account sequence number)."""

    account_id: str
    sequence_number: int

    def __post_init__(self):
        object.__setattr__(self, "account_id", _require_text(self.account_id, "Account ID"))
        if isinstance(self.sequence_number, bool) or not isinstance(self.sequence_number, int):
            raise ValidationError("Sequence number must be an integer")
        if self.sequence_number <= 0:
            raise ValidationError("Sequence number must be positive")

    @property
    def value(self) -> str:
        return f"{self.account_id}-{self.sequence_number}"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> "ImportBatchId":
        """Parse ``accountId-sequence`` (split on the last dash)."""
        if not text or "-" not in text:
            raise ValidationError(
                f"Invalid import batch ID '{text}'. Expected format: 'accountId-sequenceNumber'"
            )
        account, seq = text.rsplit("-", 1)
        try:
            number = int(seq)
        except ValueError:
            raise ValidationError(
                f"Invalid sequence number '{seq}'. Expected a positive number."
            ) from None
        return cls(account, number)
