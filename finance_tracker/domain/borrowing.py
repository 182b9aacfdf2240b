"""Borrowing repayment state machine"""

from datetime import date
from typing import Optional

from finance_tracker.domain.exceptions import (
    BorrowingAlreadyPaidError,
    InvalidAmountError,
    PaymentExceedsPrincipalError,
)
from finance_tracker.domain.money import require_minor_units


def compute_status(
    paid_minor: int,
    principal_minor: int,
    due_date: Optional[date],
    today: Optional[date] = None,
) -> str:
    """
    Derive borrowing status from payments and the due date.

    pending -> partially_paid -> paid, with overdue reachable from pending
    once the due date passes. Overdue is not terminal: further payments move
    the borrowing to partially_paid or paid.
    """
    if today is None:
        today = date.today()

    if paid_minor >= principal_minor:
        return "paid"
    if paid_minor > 0:
        return "partially_paid"
    if due_date is not None and due_date < today:
        return "overdue"
    return "pending"


def apply_payment(paid_minor: int, principal_minor: int, increment_minor: int) -> int:
    """
    Add a payment to the paid-so-far amount.

    Raises:
        InvalidAmountError: increment is not a positive integer
        BorrowingAlreadyPaidError: nothing is outstanding
        PaymentExceedsPrincipalError: payment would overshoot the principal
    """
    require_minor_units(increment_minor)
    if paid_minor >= principal_minor:
        raise BorrowingAlreadyPaidError("Borrowing is already paid")
    if increment_minor <= 0:
        raise InvalidAmountError("Payment must be a positive amount")

    new_paid = paid_minor + increment_minor
    if new_paid > principal_minor:
        outstanding = principal_minor - paid_minor
        raise PaymentExceedsPrincipalError(
            f"Payment of {increment_minor} exceeds outstanding amount of {outstanding}"
        )
    return new_paid


def outstanding_minor(paid_minor: int, principal_minor: int) -> int:
    return max(principal_minor - paid_minor, 0)
