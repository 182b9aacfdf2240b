"""Borrowings: creation at a captured rate, payments and status upkeep"""

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session
from finance_tracker.domain.borrowing import apply_payment, compute_status, outstanding_minor
from finance_tracker.domain.currency import REFERENCE_CURRENCY, RateProvider, apply_rates, convert
from finance_tracker.domain.exceptions import BorrowingNotFoundError, InvalidAmountError, ValidationError
from finance_tracker.domain.models import BORROWING_DIRECTIONS, BORROWING_STATUSES, BorrowingBalance
from finance_tracker.domain.money import normalize_currency, require_minor_units
from finance_tracker.infrastructure.database.models import Borrowing
from finance_tracker.infrastructure.database.repositories import BorrowingRepository


class BorrowingService:
    """Keeps paid amounts within the principal and status in step with them"""

    def __init__(self, db: Session, rates: RateProvider):
        self.db = db
        self.rates = rates
        self.borrowings = BorrowingRepository(db)

    def refresh_status(self, borrowing: Borrowing, today: Optional[date] = None) -> Borrowing:
        borrowing.status = compute_status(
            borrowing.paid_minor, borrowing.principal_minor, borrowing.due_date, today
        )
        return borrowing

    def get(self, owner_id: uuid.UUID, borrowing_id: uuid.UUID, today: Optional[date] = None) -> Borrowing:
        borrowing = self.borrowings.get(owner_id, borrowing_id)
        if borrowing is None:
            raise BorrowingNotFoundError("Borrowing not found")
        return self.refresh_status(borrowing, today)

    def list(
        self,
        owner_id: uuid.UUID,
        direction: Optional[str] = None,
        status: Optional[str] = None,
        today: Optional[date] = None,
    ) -> List[Borrowing]:
        """List borrowings with status recomputed; the status filter applies after recomputation"""
        if status is not None and status not in BORROWING_STATUSES:
            raise ValidationError(f"Status must be one of {', '.join(BORROWING_STATUSES)}")

        borrowings = [self.refresh_status(b, today) for b in self.borrowings.list(owner_id, direction)]
        self.db.flush()
        if status:
            borrowings = [b for b in borrowings if b.status == status]
        return borrowings

    def create(
        self,
        owner_id: uuid.UUID,
        direction: str,
        counterparty: str,
        principal_minor: int,
        currency: str,
        borrowed_on: Optional[date] = None,
        due_date: Optional[date] = None,
        description: str = "",
        today: Optional[date] = None,
    ) -> Borrowing:
        if direction not in BORROWING_DIRECTIONS:
            raise ValidationError(f"Direction must be one of {', '.join(BORROWING_DIRECTIONS)}")
        require_minor_units(principal_minor)
        if principal_minor <= 0:
            raise InvalidAmountError("Amount must be positive")

        currency = normalize_currency(currency)
        borrowed_on = borrowed_on or date.today()
        if due_date is not None and due_date < borrowed_on:
            raise ValidationError("Due date cannot be before the borrowing date")

        to_reference = convert(principal_minor, currency, REFERENCE_CURRENCY, self.rates, borrowed_on)
        borrowing = Borrowing(
            owner_id=owner_id,
            direction=direction,
            counterparty=counterparty.strip(),
            principal_minor=principal_minor,
            currency=currency,
            exchange_rate_to_reference=to_reference.rate_to_reference,
            reference_amount_minor=to_reference.amount_minor,
            paid_minor=0,
            description=description or "",
            borrowed_on=borrowed_on,
            due_date=due_date,
        )
        self.refresh_status(borrowing, today)
        return self.borrowings.add(borrowing)

    def update(
        self,
        owner_id: uuid.UUID,
        borrowing_id: uuid.UUID,
        counterparty: Optional[str] = None,
        description: Optional[str] = None,
        due_date: Optional[date] = None,
        clear_due_date: bool = False,
        today: Optional[date] = None,
    ) -> Borrowing:
        borrowing = self.get(owner_id, borrowing_id, today)
        if counterparty is not None:
            borrowing.counterparty = counterparty.strip()
        if description is not None:
            borrowing.description = description
        if clear_due_date:
            borrowing.due_date = None
        elif due_date is not None:
            if due_date < borrowing.borrowed_on:
                raise ValidationError("Due date cannot be before the borrowing date")
            borrowing.due_date = due_date

        self.refresh_status(borrowing, today)
        self.db.flush()
        return borrowing

    def record_payment(
        self,
        owner_id: uuid.UUID,
        borrowing_id: uuid.UUID,
        amount_minor: int,
        today: Optional[date] = None,
    ) -> Borrowing:
        """
        Raises:
            BorrowingAlreadyPaidError: nothing left to pay
            PaymentExceedsPrincipalError: payment larger than the outstanding amount
        """
        borrowing = self.get(owner_id, borrowing_id, today)
        borrowing.paid_minor = apply_payment(borrowing.paid_minor, borrowing.principal_minor, amount_minor)
        self.refresh_status(borrowing, today)
        self.db.flush()
        return borrowing

    def settle(self, owner_id: uuid.UUID, borrowing_id: uuid.UUID, today: Optional[date] = None) -> Borrowing:
        """Pay off whatever is still outstanding"""
        borrowing = self.get(owner_id, borrowing_id, today)
        remaining = outstanding_minor(borrowing.paid_minor, borrowing.principal_minor)
        return self.record_payment(owner_id, borrowing_id, remaining, today)

    def delete(self, owner_id: uuid.UUID, borrowing_id: uuid.UUID) -> None:
        borrowing = self.get(owner_id, borrowing_id)
        self.borrowings.delete(borrowing)

    def open_balances(self, owner_id: uuid.UUID, today: Optional[date] = None) -> List[BorrowingBalance]:
        """Outstanding amounts, in reference currency at each borrowing's captured rate"""
        balances = []
        for borrowing in self.list(owner_id, today=today):
            if borrowing.status == "paid":
                continue
            remaining = outstanding_minor(borrowing.paid_minor, borrowing.principal_minor)
            balances.append(
                BorrowingBalance(
                    direction=borrowing.direction,
                    outstanding_reference_minor=apply_rates(
                        remaining, Decimal(borrowing.exchange_rate_to_reference), Decimal("1")
                    ),
                )
            )
        return balances
