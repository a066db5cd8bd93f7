"""Raw transaction source backed by a bank CSV export."""

import csv
import logging
from datetime import date
from pathlib import Path
from typing import Optional

from budgetsync.domain.entities import RawTransaction
from budgetsync.domain.errors import SourceConnectionError, SourceError, ValidationError
from budgetsync.utils.amount_parser import parse_amount
from budgetsync.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("id", "date", "amount", "currency")
OPTIONAL_COLUMNS = (
    "counter_account",
    "counter_bank_code",
    "counter_bank_name",
    "variable_symbol",
    "constant_symbol",
    "specific_symbol",
    "user_identification",
    "message",
    "transaction_type",
    "comment",
)


class CSVTransactionSource:
    """Read raw transactions from a CSV file.

    The header must contain ``id``, ``date``, ``amount`` and ``currency``;
    the detail columns in ``OPTIONAL_COLUMNS`` are read when present. Rows
    whose date or amount cannot be parsed are still returned (with the field
    left empty) so the import reports them instead of losing them silently.
    """

    def __init__(self, csv_path: str | Path, dayfirst: bool = True):
        self.csv_path = Path(csv_path)
        self.dayfirst = dayfirst

    def fetch(
        self,
        account_id: str,
        start_date: date,
        end_date: date,
        timeout: Optional[float] = None,
    ) -> list[RawTransaction]:
        """Return rows dated within [start_date, end_date].

        Raises:
            SourceConnectionError: If the file cannot be read
            SourceError: If the header is missing required columns
        """
        try:
            with open(self.csv_path, "r", encoding="utf-8-sig", newline="") as f:
                # Try to detect delimiter
                sample = f.read(1024)
                f.seek(0)
                try:
                    delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
                except csv.Error:
                    delimiter = ","
                reader = csv.DictReader(f, delimiter=delimiter)
                rows = list(reader)
                columns = [c.strip().lower() for c in reader.fieldnames or []]
        except OSError as e:
            raise SourceConnectionError(f"Cannot read {self.csv_path}: {e}") from e

        missing = [c for c in REQUIRED_COLUMNS if c not in columns]
        if missing:
            raise SourceError(f"CSV file missing required columns: {', '.join(missing)}")

        transactions = []
        for row_num, row in enumerate(rows, start=2):  # Start at 2 (header is row 1)
            values = {
                (key or "").strip().lower(): (value.strip() if value else None)
                for key, value in row.items()
            }
            raw = self._to_raw(values, row_num)
            if raw.date is not None and not start_date <= raw.date <= end_date:
                continue
            transactions.append(raw)

        logger.debug(
            "Read %d transactions for %s from %s", len(transactions), account_id, self.csv_path
        )
        return transactions

    def _to_raw(self, values: dict[str, Optional[str]], row_num: int) -> RawTransaction:
        txn_date = None
        if values.get("date"):
            try:
                txn_date = parse_date(values["date"], dayfirst=self.dayfirst)
            except ValidationError as e:
                logger.warning("Row %d: %s", row_num, e)

        amount = None
        if values.get("amount"):
            try:
                amount = parse_amount(values["amount"])
            except ValidationError as e:
                logger.warning("Row %d: %s", row_num, e)

        return RawTransaction(
            external_id=values.get("id") or "",
            date=txn_date,
            amount=amount,
            currency=values.get("currency"),
            **{column: values.get(column) for column in OPTIONAL_COLUMNS},
        )
