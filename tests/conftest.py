"""Shared pytest fixtures for budgetsync tests."""

import sqlite3
import tempfile
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest

from budgetsync.config import Config
from budgetsync.database.factories import create_sqlite_database
from budgetsync.domain.account import AccountService
from budgetsync.domain.category import CategoryService
from budgetsync.domain.entities import RawTransaction
from budgetsync.domain.identifiers import AccountId
from budgetsync.domain.import_service import ImportService

ACCOUNT_ID = "fio-2100012345"


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def locked_store(temp_db):
    """Hold an exclusive SQLite lock on the test database from another connection."""
    conn = sqlite3.connect(temp_db.database_path, isolation_level=None)
    conn.execute("BEGIN EXCLUSIVE")
    yield temp_db
    conn.execute("ROLLBACK")
    conn.close()


@pytest.fixture
def config():
    """Configuration with a small worker pool and short lock timeout."""
    cfg = Config()
    cfg.pipeline.max_workers = 4
    cfg.pipeline.lock_timeout_seconds = 2.0
    return cfg


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def import_service(temp_db, config):
    """Create an ImportService with a temporary database."""
    return ImportService(temp_db, config)


@pytest.fixture
def sample_account(account_service):
    """Create a sample account with a destination account."""
    account_id = account_service.create_account(
        account_id=AccountId.parse(ACCOUNT_ID),
        name="Test Account",
        bank_name="Test Bank",
        currency="CZK",
        destination_account_id="ynab-checking",
    )
    return account_service.get_account(account_id)


@pytest.fixture
def sample_categories(category_service):
    """Load the default category tree and return the category IDs."""
    category_service.load_defaults()
    return {cat.id for cat in category_service.list_categories()}


@pytest.fixture
def make_raw():
    """Factory building a valid RawTransaction, overridable per field."""

    def build(external_id, message="Payment", amount="-100.00", when=None, **kwargs):
        return RawTransaction(
            external_id=external_id,
            date=when or date(2024, 3, 15),
            amount=Decimal(amount),
            currency=kwargs.pop("currency", "CZK"),
            message=message,
            **kwargs,
        )

    return build


@pytest.fixture
def imported(import_service, sample_account, make_raw):
    """Import three transactions and return their IDs in input order."""
    raws = [
        make_raw("100001", message="Grocery store Albert", counter_bank_name="Albert"),
        make_raw("100002", message="Monthly rent", amount="-15000.00"),
        make_raw("100003", message="Transfer to friend"),
    ]
    import_service.import_transactions(sample_account.id, raws)
    return [t.id for t in import_service.db.list_transactions(account_id=sample_account.id)]


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
