"""Tests for the CSV raw transaction source."""

from datetime import date
from decimal import Decimal

import pytest

from budgetsync.adapters.csv_source import CSVTransactionSource
from budgetsync.domain.errors import SourceConnectionError, SourceError

ACCOUNT = "fio-2100012345"
MARCH = (date(2024, 3, 1), date(2024, 3, 31))


def test_fetch_reads_rows_in_range(fixtures_dir):
    """Test rows are parsed and filtered by date."""
    source = CSVTransactionSource(fixtures_dir / "bank_export.csv")
    raws = source.fetch(ACCOUNT, *MARCH)

    assert [r.external_id for r in raws] == ["100001", "100002", "100003", "100004"]
    first = raws[0]
    assert first.date == date(2024, 3, 15)
    assert first.amount == Decimal("-1250.50")
    assert first.currency == "CZK"
    assert first.counter_bank_name == "Albert"
    assert first.transaction_type == "Card payment"
    assert first.comment is None
    assert raws[1].comment == "March"


def test_unparseable_date_is_kept(fixtures_dir):
    """Test broken rows are returned so the import can report them."""
    source = CSVTransactionSource(fixtures_dir / "bank_export.csv")
    broken = source.fetch(ACCOUNT, *MARCH)[3]
    assert broken.date is None
    assert broken.message == "Broken row"


def test_semicolon_delimiter(tmp_path):
    """Test semicolon-separated exports are detected."""
    path = tmp_path / "export.csv"
    path.write_text(
        "ID;Date;Amount;Currency;Message\n"
        "1;2024-03-02;-250.50;CZK;Pharmacy\n"
        "2;2024-03-03;-99.00;CZK;Fuel station\n",
        encoding="utf-8",
    )
    raws = CSVTransactionSource(path).fetch(ACCOUNT, *MARCH)
    assert [(r.external_id, r.amount, r.message) for r in raws] == [
        ("1", Decimal("-250.50"), "Pharmacy"),
        ("2", Decimal("-99.00"), "Fuel station"),
    ]


def test_missing_file():
    """Test an unreadable file is a connection failure."""
    with pytest.raises(SourceConnectionError):
        CSVTransactionSource("/nonexistent/export.csv").fetch(ACCOUNT, *MARCH)


def test_missing_required_columns(tmp_path):
    """Test the header must name the required columns."""
    path = tmp_path / "export.csv"
    path.write_text("id,date,message\n1,2024-03-02,Coffee\n", encoding="utf-8")
    with pytest.raises(SourceError, match="amount, currency"):
        CSVTransactionSource(path).fetch(ACCOUNT, *MARCH)
