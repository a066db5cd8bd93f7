"""SQLAlchemy models for budgetsync database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Float,
    Index,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Source bank account model."""

    __tablename__ = "accounts"

    id = Column(String, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    bank_name = Column(String, nullable=False)
    currency = Column(String(3), nullable=False)
    destination_account_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="account")
    import_batches = relationship("ImportBatch", back_populates="account")


class Category(Base):
    """Destination category model with hierarchical structure."""

    __tablename__ = "categories"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(String, ForeignKey("categories.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    # Relationships
    parent = relationship("Category", remote_side=[id], backref="children")


class ImportBatch(Base):
    """Import run model."""

    __tablename__ = "import_batches"

    id = Column(String, primary_key=True)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False)
    sequence_number = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False)
    transaction_count = Column(Integer, default=0, nullable=False)
    duplicate_count = Column(Integer, default=0, nullable=False)
    error_count = Column(Integer, default=0, nullable=False)
    error_message = Column(String, nullable=True)
    started_at = Column(DateTime, default=_utcnow, nullable=False)
    finished_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("account_id", "sequence_number", name="uq_batch_account_sequence"),
    )

    # Relationships
    account = relationship("Account", back_populates="import_batches")


class Transaction(Base):
    """Immutable imported transaction model."""

    __tablename__ = "transactions"

    id = Column(String, primary_key=True)
    account_id = Column(String, ForeignKey("accounts.id"), nullable=False)
    external_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(19, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    counter_account = Column(String, nullable=True)
    counter_bank_code = Column(String, nullable=True)
    counter_bank_name = Column(String, nullable=True)
    variable_symbol = Column(String, nullable=True)
    constant_symbol = Column(String, nullable=True)
    specific_symbol = Column(String, nullable=True)
    user_identification = Column(String, nullable=True)
    message = Column(String, nullable=True)
    transaction_type = Column(String, nullable=True)
    comment = Column(String, nullable=True)
    import_batch_id = Column(String, ForeignKey("import_batches.id"), nullable=True)
    imported_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("account_id", "external_id", name="uq_account_external_id"),
        Index("ix_transactions_account_date", "account_id", "date"),
        Index("ix_transactions_import_batch", "import_batch_id"),
    )

    # Relationships
    account = relationship("Account", back_populates="transactions")
    state = relationship(
        "ProcessingState", back_populates="transaction", uselist=False, cascade="all, delete-orphan"
    )


class ProcessingState(Base):
    """Mutable processing state model, one row per transaction."""

    __tablename__ = "processing_states"

    transaction_id = Column(String, ForeignKey("transactions.id"), primary_key=True)
    account_id = Column(String, nullable=False)
    status = Column(String(20), nullable=False)
    is_duplicate = Column(Boolean, default=False, nullable=False)
    suggested_payee_name = Column(String, nullable=True)
    suggested_category = Column(String, nullable=True)
    suggested_memo = Column(String, nullable=True)
    category_confidence = Column(Float, nullable=True)
    payee_confidence = Column(Float, nullable=True)
    override_payee_name = Column(String, nullable=True)
    override_category = Column(String, nullable=True)
    override_memo = Column(String, nullable=True)
    ynab_transaction_id = Column(String, nullable=True)
    ynab_account_id = Column(String, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    submitted_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_states_account_status", "account_id", "status"),)

    # Relationships
    transaction = relationship("Transaction", back_populates="state")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are opened from batch worker threads
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
