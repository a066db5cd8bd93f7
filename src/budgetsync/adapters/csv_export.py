"""Submission port writing transactions to a budgeting-app import CSV."""

import csv
import logging
import threading
import uuid
from pathlib import Path
from typing import Optional

from budgetsync.domain.entities import Transaction
from budgetsync.domain.errors import SubmissionValidationFailed, UnexpectedSubmissionError
from budgetsync.domain.ports import SubmissionReceipt
from budgetsync.domain.processing_state import ProcessingState

logger = logging.getLogger(__name__)

COLUMNS = ["Date", "Payee", "Category", "Memo", "Outflow", "Inflow", "Account", "Import ID"]

# Namespace for deterministic export ids
_EXPORT_NAMESPACE = uuid.UUID("6f1c2d4e-8a0b-5c3d-9e7f-1a2b3c4d5e6f")


class CSVExportSubmissionPort:
    """Append submitted transactions to a CSV file.

    Each transaction gets a stable import id derived from its TransactionId,
    so submitting the same transaction twice writes one row and returns the
    same external id.
    """

    def __init__(self, csv_path: str | Path):
        self.csv_path = Path(csv_path)
        self._lock = threading.Lock()

    @staticmethod
    def external_id_for(transaction: Transaction) -> str:
        return str(uuid.uuid5(_EXPORT_NAMESPACE, transaction.id.value))

    def submit(
        self,
        transaction: Transaction,
        state: ProcessingState,
        account_id: str,
        timeout: Optional[float] = None,
    ) -> SubmissionReceipt:
        payee = state.effective_payee_name
        category = state.effective_category
        if not payee or not category:
            raise SubmissionValidationFailed(
                "Payee and category are required", [transaction.id.value]
            )

        external_id = self.external_id_for(transaction)
        amount = transaction.amount
        row = {
            "Date": transaction.date.isoformat(),
            "Payee": payee,
            "Category": category,
            "Memo": state.effective_memo or "",
            "Outflow": f"{-amount:.2f}" if amount < 0 else "",
            "Inflow": f"{amount:.2f}" if amount > 0 else "",
            "Account": account_id,
            "Import ID": external_id,
        }

        acquired = self._lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            raise UnexpectedSubmissionError(f"Timed out waiting for {self.csv_path}")
        try:
            if external_id in self._existing_ids():
                logger.debug("%s already exported as %s", transaction.id, external_id)
                return SubmissionReceipt(external_id=external_id, status="duplicate")
            write_header = not self.csv_path.exists() or self.csv_path.stat().st_size == 0
            with open(self.csv_path, "a", encoding="utf-8", newline="") as f:
                writer = csv.DictWriter(f, fieldnames=COLUMNS)
                if write_header:
                    writer.writeheader()
                writer.writerow(row)
        except OSError as e:
            raise UnexpectedSubmissionError(f"Cannot write {self.csv_path}: {e}") from e
        finally:
            self._lock.release()

        return SubmissionReceipt(external_id=external_id)

    def _existing_ids(self) -> set[str]:
        if not self.csv_path.exists():
            return set()
        with open(self.csv_path, "r", encoding="utf-8", newline="") as f:
            return {row.get("Import ID") for row in csv.DictReader(f)}
