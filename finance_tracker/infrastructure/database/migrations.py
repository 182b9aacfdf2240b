"""Versioned data migrations.

Each migration runs once; completion is recorded in `schema_migration`.
Version 1 moves the legacy float major-unit columns into integer minor
units. Rows are picked up while their legacy column is still populated and
processed in batches that commit on their own, so an interrupted run resumes
where it stopped.

Run with: python -m finance_tracker.infrastructure.database.migrations
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Set

from sqlalchemy.orm import Query, Session
from finance_tracker.config import settings
from finance_tracker.domain.borrowing import compute_status
from finance_tracker.domain.currency import REFERENCE_CURRENCY, RateProvider, RateTable, convert
from finance_tracker.domain.ledger import price_amount
from finance_tracker.domain.money import MINOR_UNITS_PER_MAJOR, SUPPORTED_CURRENCIES, round_half_up
from finance_tracker.infrastructure.database.models import (
    Account,
    Borrowing,
    LedgerTransaction,
    SchemaMigration,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    apply: Callable[[Session, RateProvider, int], Dict[str, int]]


def major_to_minor(value: float) -> int:
    """Legacy float major units to integer minor units, half-up"""
    return round_half_up(Decimal(str(value)) * MINOR_UNITS_PER_MAJOR)


def _in_batches(db: Session, query: Query, process: Callable[[object], None], batch_size: int) -> int:
    """
    Process rows matched by query until none are left, committing per batch.

    process() must clear whatever makes a row match, or the loop never ends.
    """
    migrated = 0
    while True:
        rows = query.limit(batch_size).all()
        if not rows:
            return migrated
        try:
            for row in rows:
                process(row)
            db.commit()
        except Exception:
            db.rollback()
            raise
        migrated += len(rows)
        logger.info("Migrated batch", extra={"rows": len(rows), "total": migrated})


def migrate_to_minor_units(db: Session, rates: RateProvider, batch_size: int) -> Dict[str, int]:
    """Version 1: float major-unit amounts to integer minor units"""

    def migrate_account(account: Account) -> None:
        account.balance_minor = major_to_minor(account.legacy_balance_major)
        if account.currency not in SUPPORTED_CURRENCIES:
            account.currency = REFERENCE_CURRENCY
        account.legacy_balance_major = None

    def migrate_transaction(posting: LedgerTransaction) -> None:
        account = db.get(Account, posting.account_id)
        currency = posting.currency if posting.currency in SUPPORTED_CURRENCIES else account.currency
        priced = price_amount(
            major_to_minor(posting.legacy_amount_major),
            currency,
            account.currency,
            rates,
            posting.effective_date,
        )
        posting.amount_minor = priced.amount_minor
        posting.currency = priced.currency
        posting.exchange_rate_to_reference = priced.exchange_rate_to_reference
        posting.account_rate_to_reference = priced.account_rate_to_reference
        posting.account_amount_minor = priced.account_amount_minor
        # Prefer a reference amount recorded at the time over a freshly priced one
        if posting.legacy_reference_amount_major is not None:
            posting.reference_amount_minor = major_to_minor(posting.legacy_reference_amount_major)
        else:
            posting.reference_amount_minor = priced.reference_amount_minor
        posting.legacy_amount_major = None
        posting.legacy_reference_amount_major = None

    def migrate_borrowing(borrowing: Borrowing) -> None:
        if borrowing.currency not in SUPPORTED_CURRENCIES:
            borrowing.currency = REFERENCE_CURRENCY
        borrowing.principal_minor = major_to_minor(borrowing.legacy_principal_major)
        if borrowing.legacy_paid_major is not None:
            borrowing.paid_minor = major_to_minor(borrowing.legacy_paid_major)
        to_reference = convert(
            borrowing.principal_minor, borrowing.currency, REFERENCE_CURRENCY, rates, borrowing.borrowed_on
        )
        borrowing.exchange_rate_to_reference = to_reference.rate_to_reference
        borrowing.reference_amount_minor = to_reference.amount_minor
        borrowing.status = compute_status(borrowing.paid_minor, borrowing.principal_minor, borrowing.due_date)
        borrowing.legacy_principal_major = None
        borrowing.legacy_paid_major = None

    return {
        "accounts": _in_batches(
            db,
            db.query(Account).filter(Account.legacy_balance_major.isnot(None)).order_by(Account.id),
            migrate_account,
            batch_size,
        ),
        "transactions": _in_batches(
            db,
            db.query(LedgerTransaction)
            .filter(LedgerTransaction.legacy_amount_major.isnot(None))
            .order_by(LedgerTransaction.id),
            migrate_transaction,
            batch_size,
        ),
        "borrowings": _in_batches(
            db,
            db.query(Borrowing).filter(Borrowing.legacy_principal_major.isnot(None)).order_by(Borrowing.id),
            migrate_borrowing,
            batch_size,
        ),
    }


MIGRATIONS = (
    Migration(version=1, name="float_major_to_integer_minor", apply=migrate_to_minor_units),
)


def applied_versions(db: Session) -> Set[int]:
    return {version for (version,) in db.query(SchemaMigration.version).all()}


def run_migrations(
    db: Session,
    rates: Optional[RateProvider] = None,
    batch_size: Optional[int] = None,
) -> List[int]:
    """
    Apply pending migrations in version order; returns the versions applied.

    Raises:
        MissingRateError: a legacy row needs a rate the table does not have.
            Batches committed before the failure stay committed.
    """
    rates = rates or RateTable.default()
    batch_size = batch_size or settings.migration_batch_size
    done = applied_versions(db)

    applied = []
    for migration in MIGRATIONS:
        if migration.version in done:
            logger.info("Migration already applied", extra={"version": migration.version})
            continue

        counts = migration.apply(db, rates, batch_size)
        db.add(SchemaMigration(version=migration.version, name=migration.name))
        db.commit()
        applied.append(migration.version)
        logger.info(
            "Migration applied",
            extra={"version": migration.version, "migration": migration.name, **counts},
        )
    return applied


if __name__ == "__main__":
    from finance_tracker.infrastructure.database.models import Base
    from finance_tracker.infrastructure.database.session import SessionLocal, engine
    from finance_tracker.infrastructure.observability.logging import setup_logging

    setup_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        run_migrations(session)
