"""Tests for identifier value objects."""

import pytest

from budgetsync.domain.errors import ValidationError
from budgetsync.domain.identifiers import AccountId, ImportBatchId, TransactionId


def test_account_id_value_and_parse():
    """Test account ID renders and parses as bankId-bankAccountId."""
    account_id = AccountId("fio", "2100012345")
    assert account_id.value == "fio-2100012345"
    assert str(account_id) == "fio-2100012345"
    assert AccountId.parse("fio-2100012345") == account_id


def test_account_id_parse_splits_on_first_dash():
    """Test bank account numbers may contain dashes."""
    parsed = AccountId.parse("csob-123-456")
    assert parsed.bank_id == "csob"
    assert parsed.bank_account_id == "123-456"


@pytest.mark.parametrize("bank_id,account", [("", "123"), ("fio", "   "), (None, "123")])
def test_account_id_rejects_blank_parts(bank_id, account):
    """Test empty or missing components are rejected."""
    with pytest.raises(ValidationError):
        AccountId(bank_id, account)


def test_account_id_parse_invalid():
    """Test parsing a string without a dash fails."""
    with pytest.raises(ValidationError, match="Expected format"):
        AccountId.parse("fio2100012345")


def test_transaction_id_value_and_equality():
    """Test transaction IDs compare by value and are hashable."""
    first = TransactionId("fio-1", "100")
    second = TransactionId("fio-1", "100")
    assert first == second
    assert hash(first) == hash(second)
    assert first.value == "fio-1:100"
    assert first != TransactionId("fio-2", "100")


def test_transaction_id_parse_splits_on_first_colon():
    """Test bank transaction ids may contain colons."""
    parsed = TransactionId.parse("fio-1:ref:7")
    assert parsed.source_account_id == "fio-1"
    assert parsed.transaction_id == "ref:7"
    assert TransactionId.parse(parsed.value) == parsed


def test_colon_in_account_part_is_rejected():
    """Test keys stay unambiguous: account ids cannot contain colons."""
    with pytest.raises(ValidationError):
        TransactionId("a:b", "c")
    with pytest.raises(ValidationError):
        AccountId("fio", "21:00")
    assert TransactionId("a", "b:c").value == "a:b:c"


def test_transaction_id_rejects_empty():
    """Test blank parts are rejected."""
    with pytest.raises(ValidationError):
        TransactionId("fio-1", "")
    with pytest.raises(ValidationError):
        TransactionId.parse("no-colon")


def test_import_batch_id_value_and_parse():
    """Test batch IDs render as accountId-sequence and parse on the last dash."""
    batch_id = ImportBatchId("fio-2100012345", 3)
    assert batch_id.value == "fio-2100012345-3"
    assert ImportBatchId.parse("fio-2100012345-3") == batch_id


@pytest.mark.parametrize("sequence", [0, -1, "2", True, 1.5])
def test_import_batch_id_rejects_bad_sequence(sequence):
    """Test the sequence number must be a positive integer."""
    with pytest.raises(ValidationError):
        ImportBatchId("fio-1", sequence)


def test_import_batch_id_parse_non_numeric():
    """Test parsing a non-numeric sequence fails."""
    with pytest.raises(ValidationError, match="Invalid sequence number"):
        ImportBatchId.parse("fio-1-abc")
