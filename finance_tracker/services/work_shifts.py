"""Work shifts and the income postings they produce"""

import uuid
from datetime import date
from typing import List, Optional

from finance_tracker.domain.exceptions import ValidationError, WorkShiftNotFoundError
from finance_tracker.domain.money import normalize_currency, require_minor_units
from finance_tracker.domain.work_shifts import compute_earnings
from finance_tracker.infrastructure.database.models import WorkShift
from finance_tracker.infrastructure.database.repositories import WorkShiftRepository
from finance_tracker.services.ledger import LedgerService

SALARY_CATEGORY = "Salary"
TIPS_CATEGORY = "Tips"


class WorkShiftService:
    def __init__(self, ledger: LedgerService):
        self.ledger = ledger
        self.shifts = WorkShiftRepository(ledger.db)

    def get(self, owner_id: uuid.UUID, shift_id: uuid.UUID) -> WorkShift:
        shift = self.shifts.get(owner_id, shift_id)
        if shift is None:
            raise WorkShiftNotFoundError("Work shift not found")
        return shift

    def list(
        self,
        owner_id: uuid.UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[WorkShift]:
        return self.shifts.list(owner_id, start_date, end_date)

    def create(
        self,
        owner_id: uuid.UUID,
        shift_date: date,
        position: str,
        start_time: str,
        end_time: str,
        hourly_rate_minor: int,
        tips_minor: int = 0,
        currency: Optional[str] = None,
        account_id: Optional[uuid.UUID] = None,
        notes: str = "",
    ) -> WorkShift:
        """
        Record a shift and, when an account is given, post its pay.

        Regular pay lands as a "Salary" income posting and tips as a separate
        "Tips" posting, both dated on the shift and linked back to it. The
        shift currency defaults to the account's currency, or USD without one.
        """
        require_minor_units(hourly_rate_minor)
        require_minor_units(tips_minor)
        if not position or not position.strip():
            raise ValidationError("Position is required")

        earnings = compute_earnings(start_time, end_time, hourly_rate_minor, tips_minor)

        account = self.ledger.get_account(owner_id, account_id) if account_id else None
        if currency:
            currency = normalize_currency(currency)
        else:
            currency = account.currency if account is not None else "USD"

        shift = self.shifts.add(
            WorkShift(
                owner_id=owner_id,
                account_id=account.id if account is not None else None,
                shift_date=shift_date,
                position=position.strip(),
                hourly_rate_minor=hourly_rate_minor,
                currency=currency,
                start_time=start_time.strip(),
                end_time=end_time.strip(),
                hours_worked=earnings.hours_worked,
                regular_earnings_minor=earnings.regular_earnings_minor,
                tips_minor=earnings.tips_minor,
                total_earnings_minor=earnings.total_earnings_minor,
                notes=notes or "",
            )
        )

        if account is not None:
            for category, amount in (
                (SALARY_CATEGORY, earnings.regular_earnings_minor),
                (TIPS_CATEGORY, earnings.tips_minor),
            ):
                if amount <= 0:
                    continue
                self.ledger.create_transaction(
                    owner_id=owner_id,
                    account_id=account.id,
                    kind="income",
                    category=category,
                    amount_minor=amount,
                    currency=currency,
                    effective_date=shift_date,
                    description=f"{position.strip()} shift {start_time.strip()}-{end_time.strip()}",
                    work_shift_id=shift.id,
                )

        return shift
