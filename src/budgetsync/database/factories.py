"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from budgetsync.database.sqlalchemy_db import SQLAlchemyDatabase
from budgetsync.utils.locks import DEFAULT_SHARDS

DB_PATH_ENV_VAR = "BUDGETSYNC_DB_PATH"


def default_database_path() -> str:
    """Return ~/.budgetsync/budgetsync.db, creating the directory if needed."""
    db_dir = Path.home() / ".budgetsync"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "budgetsync.db")


def create_sqlite_database(
    database_path: Optional[str] = None, lock_shards: int = DEFAULT_SHARDS
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks BUDGETSYNC_DB_PATH
            environment variable, then defaults to ~/.budgetsync/budgetsync.db
        lock_shards: Number of per-transaction lock shards

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        # Check environment variable
        database_path = os.environ.get(DB_PATH_ENV_VAR)

    if database_path is None:
        database_path = default_database_path()

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url, lock_shards=lock_shards)
