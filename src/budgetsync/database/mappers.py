"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic: identifiers become their string
keys, enums their values and confidence scores plain floats.
"""

from datetime import datetime, UTC
from typing import Optional

from budgetsync.domain import entities as domain
from budgetsync.domain.confidence import ConfidenceScore
from budgetsync.domain.identifiers import ImportBatchId, TransactionId
from budgetsync.domain.processing_state import ProcessingState, TransactionStatus
from budgetsync.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    ImportBatch as ORMImportBatch,
    Transaction as ORMTransaction,
    ProcessingState as ORMProcessingState,
)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; all stored timestamps are UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _score(value: Optional[float]) -> Optional[ConfidenceScore]:
    return None if value is None else ConfidenceScore(value)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        currency=orm_account.currency,
        destination_account_id=orm_account.destination_account_id,
        created_at=_aware(orm_account.created_at),
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        created_at=_aware(orm_category.created_at),
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    batch_id = orm_transaction.import_batch_id
    return domain.Transaction(
        id=TransactionId(orm_transaction.account_id, orm_transaction.external_id),
        date=orm_transaction.date,
        amount=orm_transaction.amount,
        currency=orm_transaction.currency,
        counter_account=orm_transaction.counter_account,
        counter_bank_code=orm_transaction.counter_bank_code,
        counter_bank_name=orm_transaction.counter_bank_name,
        variable_symbol=orm_transaction.variable_symbol,
        constant_symbol=orm_transaction.constant_symbol,
        specific_symbol=orm_transaction.specific_symbol,
        user_identification=orm_transaction.user_identification,
        message=orm_transaction.message,
        transaction_type=orm_transaction.transaction_type,
        comment=orm_transaction.comment,
        imported_at=_aware(orm_transaction.imported_at),
        import_batch_id=ImportBatchId.parse(batch_id) if batch_id else None,
    )


def transaction_to_orm(transaction: domain.Transaction) -> ORMTransaction:
    """Build a new SQLAlchemy Transaction row from a domain Transaction."""
    return ORMTransaction(
        id=transaction.id.value,
        account_id=transaction.id.source_account_id,
        external_id=transaction.id.transaction_id,
        date=transaction.date,
        amount=transaction.amount,
        currency=transaction.currency,
        counter_account=transaction.counter_account,
        counter_bank_code=transaction.counter_bank_code,
        counter_bank_name=transaction.counter_bank_name,
        variable_symbol=transaction.variable_symbol,
        constant_symbol=transaction.constant_symbol,
        specific_symbol=transaction.specific_symbol,
        user_identification=transaction.user_identification,
        message=transaction.message,
        transaction_type=transaction.transaction_type,
        comment=transaction.comment,
        import_batch_id=transaction.import_batch_id.value if transaction.import_batch_id else None,
        imported_at=transaction.imported_at,
    )


def state_to_domain(orm_state: ORMProcessingState) -> ProcessingState:
    """Convert SQLAlchemy ProcessingState model to the domain ProcessingState."""
    # Key is "<account>:<external id>"; external ids may themselves contain ':'
    external_id = orm_state.transaction_id[len(orm_state.account_id) + 1 :]
    return ProcessingState(
        transaction_id=TransactionId(orm_state.account_id, external_id),
        status=TransactionStatus(orm_state.status),
        is_duplicate=orm_state.is_duplicate,
        suggested_payee_name=orm_state.suggested_payee_name,
        suggested_category=orm_state.suggested_category,
        suggested_memo=orm_state.suggested_memo,
        category_confidence=_score(orm_state.category_confidence),
        payee_confidence=_score(orm_state.payee_confidence),
        override_payee_name=orm_state.override_payee_name,
        override_category=orm_state.override_category,
        override_memo=orm_state.override_memo,
        ynab_transaction_id=orm_state.ynab_transaction_id,
        ynab_account_id=orm_state.ynab_account_id,
        processed_at=_aware(orm_state.processed_at),
        submitted_at=_aware(orm_state.submitted_at),
    )


def apply_state_to_orm(state: ProcessingState, orm_state: ORMProcessingState) -> None:
    """Copy every mutable field of a domain state onto its row."""
    orm_state.account_id = state.transaction_id.source_account_id
    orm_state.status = state.status.value
    orm_state.is_duplicate = state.is_duplicate
    orm_state.suggested_payee_name = state.suggested_payee_name
    orm_state.suggested_category = state.suggested_category
    orm_state.suggested_memo = state.suggested_memo
    orm_state.category_confidence = (
        None if state.category_confidence is None else state.category_confidence.value
    )
    orm_state.payee_confidence = (
        None if state.payee_confidence is None else state.payee_confidence.value
    )
    orm_state.override_payee_name = state.override_payee_name
    orm_state.override_category = state.override_category
    orm_state.override_memo = state.override_memo
    orm_state.ynab_transaction_id = state.ynab_transaction_id
    orm_state.ynab_account_id = state.ynab_account_id
    orm_state.processed_at = state.processed_at
    orm_state.submitted_at = state.submitted_at


def import_batch_to_domain(orm_batch: ORMImportBatch) -> domain.ImportBatch:
    """Convert SQLAlchemy ImportBatch model to domain ImportBatch entity."""
    return domain.ImportBatch(
        id=ImportBatchId(orm_batch.account_id, orm_batch.sequence_number),
        account_id=orm_batch.account_id,
        start_date=orm_batch.start_date,
        end_date=orm_batch.end_date,
        status=domain.ImportStatus(orm_batch.status),
        transaction_count=orm_batch.transaction_count,
        duplicate_count=orm_batch.duplicate_count,
        error_count=orm_batch.error_count,
        error_message=orm_batch.error_message,
        started_at=_aware(orm_batch.started_at),
        finished_at=_aware(orm_batch.finished_at),
    )


def apply_import_batch_to_orm(batch: domain.ImportBatch, orm_batch: ORMImportBatch) -> None:
    """Copy the mutable fields of a domain import batch onto its row."""
    orm_batch.start_date = batch.start_date
    orm_batch.end_date = batch.end_date
    orm_batch.status = batch.status.value
    orm_batch.transaction_count = batch.transaction_count
    orm_batch.duplicate_count = batch.duplicate_count
    orm_batch.error_count = batch.error_count
    orm_batch.error_message = batch.error_message
    orm_batch.started_at = batch.started_at
    orm_batch.finished_at = batch.finished_at
