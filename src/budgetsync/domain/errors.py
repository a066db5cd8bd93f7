"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class PreconditionError(DomainError):
    """A state transition was attempted without its preconditions.

    Attributes:
        reason: Machine-readable violation code (e.g. "missing_payee")
    """

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


class LockTimeoutError(DomainError):
    """A per-transaction lock could not be acquired in time."""


class StoreTimeoutError(DomainError):
    """A store call ran out of its caller-supplied time budget."""


class CategorizationError(Exception):
    """The categorization strategy could not produce a suggestion."""


class ExternalSystemError(Exception):
    """Failure reported by a bank feed or budgeting system.

    Attributes:
        retryable: Whether retrying the same call later may succeed
    """

    retryable = False


class SourceError(ExternalSystemError):
    """Raw transaction source failed."""


class SourceConnectionError(SourceError):
    """The raw transaction source could not be reached."""

    retryable = True


class SourceRateLimitError(SourceError):
    """The raw transaction source rejected the call due to rate limiting."""

    retryable = True

    def __init__(self, message: str = "Rate limit exceeded", retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class SubmissionPortError(ExternalSystemError):
    """Destination system rejected or failed a submission."""

    kind = "unexpected"


class AuthenticationFailed(SubmissionPortError):
    """Credentials for the destination system were rejected."""

    kind = "auth"


class ConnectionFailed(SubmissionPortError):
    """The destination system could not be reached."""

    kind = "connection"
    retryable = True


class RateLimitExceeded(SubmissionPortError):
    """The destination system throttled the request."""

    kind = "rate_limit"
    retryable = True


class SubmissionValidationFailed(SubmissionPortError):
    """The destination system rejected one or more transactions as invalid."""

    kind = "validation"

    def __init__(self, message: str, transaction_ids: list | None = None):
        super().__init__(message)
        self.transaction_ids = list(transaction_ids or [])


class UnexpectedSubmissionError(SubmissionPortError):
    """Any other destination-system failure."""

    kind = "unexpected"


def account_not_found(account_id: str) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: str) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def transaction_not_found(transaction_id) -> str:
    """Return message for missing transaction or processing state."""
    return f"Transaction {transaction_id} not found"


def duplicate_transaction(transaction_id) -> str:
    """Return message for a transaction that already exists."""
    return f"Transaction {transaction_id} already exists"


def account_delete_blocked(account_id: str, transaction_count: int) -> str:
    """Return message when account has dependent transactions."""
    return (
        f"Cannot delete account {account_id}: it has "
        f"{transaction_count} transaction{'s' if transaction_count != 1 else ''}. "
        "Please delete them first."
    )
