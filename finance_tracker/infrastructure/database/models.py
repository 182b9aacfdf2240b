"""SQLAlchemy ORM models for users, accounts, ledger postings, borrowings and work shifts"""

import uuid
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

# Exchange rates: units of currency per 1 unit of reference currency
RATE = Numeric(18, 8)


class User(Base):
    """Application user; owner of every other record"""

    __tablename__ = "app_user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Account(Base):
    """Bank or cash account; balance is kept in integer minor units"""

    __tablename__ = "account"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    account_type = Column(String(20), nullable=False)
    balance_minor = Column(BigInteger, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    institution = Column(String(100), nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    # Float major-unit balance from before the minor-units migration
    legacy_balance_major = Column(Float, nullable=True)

    transactions = relationship("LedgerTransaction", back_populates="account", passive_deletes=True)


class LedgerTransaction(Base):
    """Income, expense or transfer leg posted against one account"""

    __tablename__ = "ledger_transaction"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id = Column(Uuid, ForeignKey("account.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String(20), nullable=False)
    direction = Column(String(3), nullable=True)  # "out" | "in" for transfer legs
    transfer_id = Column(Uuid, nullable=True, index=True)
    work_shift_id = Column(Uuid, ForeignKey("work_shift.id", ondelete="SET NULL"), nullable=True)
    category = Column(String(50), nullable=False)
    amount_minor = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False)
    exchange_rate_to_reference = Column(RATE, nullable=False)
    reference_amount_minor = Column(BigInteger, nullable=False)
    account_rate_to_reference = Column(RATE, nullable=False)
    account_amount_minor = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=False, default="")
    effective_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    legacy_amount_major = Column(Float, nullable=True)
    legacy_reference_amount_major = Column(Float, nullable=True)

    account = relationship("Account", back_populates="transactions")


class Borrowing(Base):
    """Money borrowed from or lent to a counterparty"""

    __tablename__ = "borrowing"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    direction = Column(String(10), nullable=False)  # "borrowed" | "lent"
    counterparty = Column(String(100), nullable=False)
    principal_minor = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False)
    exchange_rate_to_reference = Column(RATE, nullable=False)
    reference_amount_minor = Column(BigInteger, nullable=False)
    paid_minor = Column(BigInteger, nullable=False, default=0)
    description = Column(Text, nullable=False, default="")
    borrowed_on = Column(Date, nullable=False, index=True)
    due_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    legacy_principal_major = Column(Float, nullable=True)
    legacy_paid_major = Column(Float, nullable=True)

    @property
    def outstanding_minor(self) -> int:
        return max(self.principal_minor - (self.paid_minor or 0), 0)


class WorkShift(Base):
    """Single worked shift and the pay it earned"""

    __tablename__ = "work_shift"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id = Column(Uuid, ForeignKey("account.id", ondelete="SET NULL"), nullable=True)
    shift_date = Column(Date, nullable=False, index=True)
    position = Column(String(100), nullable=False)
    hourly_rate_minor = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    hours_worked = Column(Numeric(5, 2), nullable=False)
    regular_earnings_minor = Column(BigInteger, nullable=False)
    tips_minor = Column(BigInteger, nullable=False, default=0)
    total_earnings_minor = Column(BigInteger, nullable=False)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    transactions = relationship("LedgerTransaction")


class SchemaMigration(Base):
    """Data migrations that have run to completion"""

    __tablename__ = "schema_migration"

    version = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    applied_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
