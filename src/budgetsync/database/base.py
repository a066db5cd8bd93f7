"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from typing import Optional

# Import entities directly to avoid circular import through domain/__init__.py
from budgetsync.domain.entities import Account, Category, ImportBatch, Transaction
from budgetsync.domain.identifiers import ImportBatchId, TransactionId
from budgetsync.domain.processing_state import ProcessingState, TransactionStatus


class Database(ABC):
    """Abstract database interface for budgetsync.

    Calls made on behalf of a batch take an optional ``timeout`` in seconds.
    A timeout of zero or less fails immediately with StoreTimeoutError; None
    uses the store default.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction_lock(
        self, transaction_id: TransactionId, timeout: Optional[float] = None
    ) -> AbstractContextManager[None]:
        """Serialize processing-state changes for one transaction id.

        Raises:
            LockTimeoutError: If the lock was not acquired within timeout
        """
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        account_id: str,
        name: str,
        bank_name: str,
        currency: str,
        destination_account_id: Optional[str] = None,
    ) -> str:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: str,
        name: Optional[str] = None,
        bank_name: Optional[str] = None,
        destination_account_id: Optional[str] = None,
    ) -> None:
        """Update account fields that are not None."""
        pass

    @abstractmethod
    def delete_account(self, account_id: str) -> None:
        """Delete an account."""
        pass

    @abstractmethod
    def get_account_transaction_count(self, account_id: str) -> int:
        """Get count of transactions associated with an account."""
        pass

    # Category operations
    @abstractmethod
    def create_category(self, category_id: str, name: str, parent_id: Optional[str] = None) -> str:
        """Create a new category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: str) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def list_categories(self, parent_id: Optional[str] = None) -> list[Category]:
        """List categories, optionally filtered by parent."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction_with_state(
        self,
        transaction: Transaction,
        state: ProcessingState,
        timeout: Optional[float] = None,
    ) -> None:
        """Persist a transaction and its processing state in one database transaction.

        Raises:
            ConflictError: If a transaction with the same ID already exists
            StoreTimeoutError: If the call did not finish within timeout
        """
        pass

    @abstractmethod
    def get_transaction(
        self, transaction_id: TransactionId, timeout: Optional[float] = None
    ) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def transaction_exists(
        self, transaction_id: TransactionId, timeout: Optional[float] = None
    ) -> bool:
        """Check whether a transaction with this ID was already imported."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        import_batch_id: Optional[ImportBatchId] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters, ordered by date."""
        pass

    # Processing state operations
    @abstractmethod
    def get_processing_state(
        self, transaction_id: TransactionId, timeout: Optional[float] = None
    ) -> Optional[ProcessingState]:
        """Get processing state for a transaction."""
        pass

    @abstractmethod
    def save_processing_state(
        self, state: ProcessingState, timeout: Optional[float] = None
    ) -> None:
        """Persist a processing state.

        Raises:
            NotFoundError: If the transaction has no processing state row
            StoreTimeoutError: If the call did not finish within timeout
        """
        pass

    @abstractmethod
    def list_processing_states(
        self,
        account_id: Optional[str] = None,
        status: Optional[TransactionStatus] = None,
    ) -> list[ProcessingState]:
        """List processing states with optional filters."""
        pass

    # Import batch operations
    @abstractmethod
    def next_import_sequence(self, account_id: str) -> int:
        """Return the next unused import batch sequence number for an account."""
        pass

    @abstractmethod
    def create_import_batch(self, batch: ImportBatch) -> None:
        """Insert a new import batch.

        Raises:
            ConflictError: If the batch ID is already taken
        """
        pass

    @abstractmethod
    def save_import_batch(self, batch: ImportBatch) -> None:
        """Update an existing import batch."""
        pass

    @abstractmethod
    def get_import_batch(self, batch_id: ImportBatchId) -> Optional[ImportBatch]:
        """Get import batch by ID."""
        pass

    @abstractmethod
    def list_import_batches(self, account_id: Optional[str] = None) -> list[ImportBatch]:
        """List import batches, newest first."""
        pass
