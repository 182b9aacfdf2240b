"""Data access layer; every query is scoped to the owning user"""

import uuid
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session
from finance_tracker.domain.models import Posting
from finance_tracker.infrastructure.database.models import (
    Account,
    Borrowing,
    LedgerTransaction,
    User,
    WorkShift,
)


class UserRepository:
    """Repository for users"""

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, email: str, password_hash: str, name: Optional[str] = None) -> User:
        user = User(email=email.lower(), password_hash=password_hash, name=name)
        self.db.add(user)
        self.db.flush()
        return user

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()


class AccountRepository:
    """Repository for accounts"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, account: Account) -> Account:
        self.db.add(account)
        self.db.flush()  # Get ID without committing
        return account

    def get(self, owner_id: uuid.UUID, account_id: uuid.UUID) -> Optional[Account]:
        return (
            self.db.query(Account)
            .filter(Account.id == account_id, Account.owner_id == owner_id)
            .first()
        )

    def find_by_name(self, owner_id: uuid.UUID, name: str) -> Optional[Account]:
        """Case-insensitive name lookup"""
        return (
            self.db.query(Account)
            .filter(Account.owner_id == owner_id, func.lower(Account.name) == name.strip().lower())
            .first()
        )

    def list(
        self,
        owner_id: uuid.UUID,
        is_active: Optional[bool] = None,
        account_type: Optional[str] = None,
    ) -> List[Account]:
        query = self.db.query(Account).filter(Account.owner_id == owner_id)
        if is_active is not None:
            query = query.filter(Account.is_active == is_active)
        if account_type:
            query = query.filter(Account.account_type == account_type)
        return query.order_by(Account.name).all()

    def delete(self, account: Account) -> None:
        self.db.delete(account)
        self.db.flush()


class TransactionRepository:
    """Repository for ledger postings"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, transaction: LedgerTransaction) -> LedgerTransaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def get(self, owner_id: uuid.UUID, transaction_id: uuid.UUID) -> Optional[LedgerTransaction]:
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.id == transaction_id, LedgerTransaction.owner_id == owner_id)
            .first()
        )

    def get_transfer_legs(self, owner_id: uuid.UUID, transfer_id: uuid.UUID) -> List[LedgerTransaction]:
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.owner_id == owner_id, LedgerTransaction.transfer_id == transfer_id)
            .order_by(LedgerTransaction.direction.desc())  # "out" before "in"
            .all()
        )

    def search(
        self,
        owner_id: uuid.UUID,
        account_id: Optional[uuid.UUID] = None,
        kind: Optional[str] = None,
        category: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[LedgerTransaction], int]:
        """Filtered, newest-first page of postings plus the total match count"""
        query = self.db.query(LedgerTransaction).filter(LedgerTransaction.owner_id == owner_id)
        if account_id is not None:
            query = query.filter(LedgerTransaction.account_id == account_id)
        if kind:
            query = query.filter(LedgerTransaction.kind == kind)
        if category:
            query = query.filter(LedgerTransaction.category.ilike(f"%{category}%"))
        if start_date is not None:
            query = query.filter(LedgerTransaction.effective_date >= start_date)
        if end_date is not None:
            query = query.filter(LedgerTransaction.effective_date <= end_date)

        total = query.count()
        query = query.order_by(
            LedgerTransaction.effective_date.desc(), LedgerTransaction.created_at.desc()
        ).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all(), total

    def count_for_account(self, owner_id: uuid.UUID, account_id: uuid.UUID) -> int:
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.owner_id == owner_id, LedgerTransaction.account_id == account_id)
            .count()
        )

    def delete_for_account(self, owner_id: uuid.UUID, account_id: uuid.UUID) -> int:
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.owner_id == owner_id, LedgerTransaction.account_id == account_id)
            .delete(synchronize_session="fetch")
        )

    def postings_between(self, owner_id: uuid.UUID, start: date, end: date) -> List[Posting]:
        """Postings with start <= effective_date < end, shaped for reporting"""
        rows = (
            self.db.query(LedgerTransaction)
            .filter(
                LedgerTransaction.owner_id == owner_id,
                LedgerTransaction.effective_date >= start,
                LedgerTransaction.effective_date < end,
            )
            .all()
        )
        return [
            Posting(
                kind=row.kind,
                category=row.category,
                reference_amount_minor=row.reference_amount_minor,
                effective_date=row.effective_date,
                direction=row.direction,
            )
            for row in rows
        ]

    def delete(self, transaction: LedgerTransaction) -> None:
        self.db.delete(transaction)
        self.db.flush()


class BorrowingRepository:
    """Repository for borrowings"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, borrowing: Borrowing) -> Borrowing:
        self.db.add(borrowing)
        self.db.flush()
        return borrowing

    def get(self, owner_id: uuid.UUID, borrowing_id: uuid.UUID) -> Optional[Borrowing]:
        return (
            self.db.query(Borrowing)
            .filter(Borrowing.id == borrowing_id, Borrowing.owner_id == owner_id)
            .first()
        )

    def list(
        self,
        owner_id: uuid.UUID,
        direction: Optional[str] = None,
    ) -> List[Borrowing]:
        query = self.db.query(Borrowing).filter(Borrowing.owner_id == owner_id)
        if direction:
            query = query.filter(Borrowing.direction == direction)
        return query.order_by(Borrowing.borrowed_on.desc()).all()

    def delete(self, borrowing: Borrowing) -> None:
        self.db.delete(borrowing)
        self.db.flush()


class WorkShiftRepository:
    """Repository for work shifts"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, shift: WorkShift) -> WorkShift:
        self.db.add(shift)
        self.db.flush()
        return shift

    def get(self, owner_id: uuid.UUID, shift_id: uuid.UUID) -> Optional[WorkShift]:
        return (
            self.db.query(WorkShift)
            .filter(WorkShift.id == shift_id, WorkShift.owner_id == owner_id)
            .first()
        )

    def list(
        self,
        owner_id: uuid.UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[WorkShift]:
        query = self.db.query(WorkShift).filter(WorkShift.owner_id == owner_id)
        if start_date is not None:
            query = query.filter(WorkShift.shift_date >= start_date)
        if end_date is not None:
            query = query.filter(WorkShift.shift_date <= end_date)
        return query.order_by(WorkShift.shift_date.desc()).all()
