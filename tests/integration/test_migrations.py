"""Integration tests for the float-to-minor-units data migration"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from finance_tracker.domain.currency import RateTable
from finance_tracker.domain.exceptions import MissingRateError
from finance_tracker.domain.models import RateSnapshot
from finance_tracker.infrastructure.database.migrations import applied_versions, major_to_minor, run_migrations
from finance_tracker.infrastructure.database.models import Account, Borrowing, LedgerTransaction, SchemaMigration

RATE_DAY = date(2025, 8, 19)


def _legacy_account(db: Session, user, name: str, balance: float, currency: str = "USD") -> Account:
    account = Account(
        owner_id=user.id,
        name=name,
        account_type="checking",
        balance_minor=0,
        currency=currency,
        legacy_balance_major=balance,
    )
    db.add(account)
    db.flush()
    return account


def _legacy_posting(db: Session, user, account: Account, amount: float, currency: str, reference=None):
    posting = LedgerTransaction(
        owner_id=user.id,
        account_id=account.id,
        kind="expense",
        category="Food",
        amount_minor=0,
        currency=currency,
        exchange_rate_to_reference=Decimal("1"),
        reference_amount_minor=0,
        account_rate_to_reference=Decimal("1"),
        account_amount_minor=0,
        effective_date=RATE_DAY,
        legacy_amount_major=amount,
        legacy_reference_amount_major=reference,
    )
    db.add(posting)
    db.flush()
    return posting


@pytest.mark.parametrize(
    "value,expected",
    [(10.005, 1001), (0.1 + 0.2, 30), (-2.675, -267), (1000, 100000)],
)
def test_major_to_minor(value, expected):
    assert major_to_minor(value) == expected


def test_migration_converts_legacy_rows(db: Session, user, rate_table: RateTable):
    main = _legacy_account(db, user, "Main", 1000.5)
    pounds = _legacy_account(db, user, "Pounds", 20, currency="GBP")
    euro_spend = _legacy_posting(db, user, main, 100.0, "EUR")
    recorded = _legacy_posting(db, user, main, 10.0, "USD", reference=9.99)
    borrowing = Borrowing(
        owner_id=user.id,
        direction="borrowed",
        counterparty="Bob",
        principal_minor=0,
        currency="EUR",
        exchange_rate_to_reference=Decimal("1"),
        reference_amount_minor=0,
        borrowed_on=RATE_DAY,
        legacy_principal_major=100.0,
        legacy_paid_major=100.0,
    )
    db.add(borrowing)
    db.commit()

    applied = run_migrations(db, rate_table, batch_size=1)

    assert applied == [1]
    assert applied_versions(db) == {1}

    for row in (main, pounds, euro_spend, recorded, borrowing):
        db.refresh(row)

    assert main.balance_minor == 100050
    assert main.legacy_balance_major is None
    assert (pounds.currency, pounds.balance_minor) == ("USD", 2000)

    assert (euro_spend.amount_minor, euro_spend.currency) == (10000, "EUR")
    assert euro_spend.reference_amount_minor == 10870
    assert euro_spend.account_amount_minor == 10870
    assert euro_spend.legacy_amount_major is None

    assert recorded.amount_minor == 1000
    assert recorded.reference_amount_minor == 999

    assert (borrowing.principal_minor, borrowing.paid_minor) == (10000, 10000)
    assert borrowing.reference_amount_minor == 10870
    assert borrowing.status == "paid"


def test_second_run_is_a_no_op(db: Session, user, rate_table: RateTable):
    _legacy_account(db, user, "Main", 12.34)
    db.commit()

    assert run_migrations(db, rate_table) == [1]
    assert run_migrations(db, rate_table) == []
    assert db.query(SchemaMigration).count() == 1


def test_missing_rate_stops_migration(db: Session, user):
    usd_only = RateTable([RateSnapshot(RATE_DAY, {"USD": Decimal("1")})])
    account = _legacy_account(db, user, "Euro", 50.0, currency="EUR")
    posting = _legacy_posting(db, user, account, 5.0, "EUR")
    db.commit()

    with pytest.raises(MissingRateError):
        run_migrations(db, usd_only, batch_size=1)

    db.refresh(account)
    db.refresh(posting)
    # The account batch committed before the posting failed
    assert account.balance_minor == 5000
    assert posting.legacy_amount_major == 5.0
    assert applied_versions(db) == set()
