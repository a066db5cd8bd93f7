"""Account domain service."""

import re
from typing import Optional

from budgetsync.database.base import Database
from budgetsync.domain.entities import Account as AccountEntity
from budgetsync.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    account_delete_blocked,
    account_not_found,
)
from budgetsync.domain.identifiers import AccountId

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


class AccountService:
    """Service for managing source accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        account_id: AccountId,
        name: str,
        bank_name: str,
        currency: str,
        destination_account_id: Optional[str] = None,
    ) -> str:
        """Create a new account.

        Args:
            account_id: Bank-qualified account identifier
            name: Account name
            bank_name: Bank name
            currency: ISO 4217 currency code of the account
            destination_account_id: Account in the budgeting system that
                receives this account's transactions

        Returns:
            Account ID string

        Raises:
            ValidationError: If the currency code is invalid
            ConflictError: If the account ID or name already exists
        """
        currency = (currency or "").strip().upper()
        if not _CURRENCY_RE.match(currency):
            raise ValidationError(f"Invalid currency code '{currency}'")

        if self.db.get_account(account_id.value) is not None:
            raise ConflictError(f"Account '{account_id}' already exists")
        # Check if account with same name exists
        for acc in self.db.list_accounts():
            if acc.name == name:
                raise ConflictError(f"Account with name '{name}' already exists")

        return self.db.create_account(
            account_id=account_id.value,
            name=name,
            bank_name=bank_name,
            currency=currency,
            destination_account_id=destination_account_id,
        )

    def get_account(self, account_id: str) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts.

        Returns:
            List of account entities
        """
        return self.db.list_accounts()

    def rename_account(self, account_id: str, name: str, bank_name: Optional[str] = None) -> None:
        """Rename an account.

        Args:
            account_id: Account ID to rename
            name: New account name
            bank_name: Optional new bank name (if None, bank_name is not updated)

        Raises:
            NotFoundError: If account not found
            ConflictError: If name already exists
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        # Check for duplicate names (excluding current account)
        for acc in self.db.list_accounts():
            if acc.id != account_id and acc.name == name:
                raise ConflictError(f"Account with name '{name}' already exists")

        self.db.update_account(account_id=account_id, name=name, bank_name=bank_name)

    def set_destination_account(self, account_id: str, destination_account_id: str) -> None:
        """Map an account onto an account in the budgeting system.

        Raises:
            NotFoundError: If account not found
            ValidationError: If destination account ID is blank
        """
        if not destination_account_id or not destination_account_id.strip():
            raise ValidationError("Destination account ID must not be empty")
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        self.db.update_account(
            account_id=account_id, destination_account_id=destination_account_id.strip()
        )

    def delete_account(self, account_id: str) -> None:
        """Delete an account.

        Args:
            account_id: Account ID to delete

        Raises:
            NotFoundError: If account not found
            DependencyError: If account has imported transactions
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        transaction_count = self.db.get_account_transaction_count(account_id)
        if transaction_count > 0:
            raise DependencyError(account_delete_blocked(account_id, transaction_count))

        self.db.delete_account(account_id)
