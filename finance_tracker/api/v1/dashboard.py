"""/v1/dashboard - monthly and yearly summaries in reference currency"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from finance_tracker.api.dependencies import get_current_user_id, get_ledger_service
from finance_tracker.api.v1.schemas import (
    BorrowingPosition,
    CategoryTotalSchema,
    DashboardSummary,
    PeriodTotalsSchema,
    YearlyDashboard,
)
from finance_tracker.domain.currency import REFERENCE_CURRENCY, convert
from finance_tracker.domain.exceptions import ValidationError
from finance_tracker.domain.reporting import borrowing_position, summarize_month, summarize_year, totals_by_currency
from finance_tracker.infrastructure.database.session import atomic
from finance_tracker.services.borrowings import BorrowingService
from finance_tracker.services.ledger import LedgerService
from finance_tracker.utils.date_utils import month_bounds, parse_month, year_bounds

router = APIRouter()


@router.get("/dashboard/summary", response_model=DashboardSummary)
def monthly_summary(
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to the current month"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    """
    Month at a glance.

    Income and expenses come from reference equivalents captured on each
    posting. Account balances are listed per currency and folded into the
    net position at today's rates, together with open borrowings.
    """
    today = date.today()
    if month:
        try:
            year, month_number = parse_month(month)
        except ValueError as e:
            raise ValidationError("month must be formatted as YYYY-MM") from e
    else:
        year, month_number = today.year, today.month

    start, end = month_bounds(year, month_number)
    summary = summarize_month(ledger.transactions.postings_between(user_id, start, end), year, month_number)

    active = ledger.accounts.list(user_id, is_active=True)
    account_totals = totals_by_currency((a.currency, a.balance_minor) for a in active)
    accounts_reference = sum(
        convert(amount, currency, REFERENCE_CURRENCY, ledger.rates, today).amount_minor
        for currency, amount in account_totals.items()
    )

    with atomic(ledger.db):
        balances = BorrowingService(ledger.db, ledger.rates).open_balances(user_id, today)
    borrowed, lent = borrowing_position(balances)

    return DashboardSummary(
        reference_currency=REFERENCE_CURRENCY,
        period_start=summary.period_start,
        period_end=summary.period_end,
        income_minor=summary.income_minor,
        expenses_minor=summary.expenses_minor,
        net_minor=summary.net_minor,
        savings_rate=summary.savings_rate,
        account_totals_by_currency=account_totals,
        borrowings=BorrowingPosition(borrowed_minor=borrowed, lent_minor=lent),
        net_position_minor=accounts_reference + lent - borrowed,
        top_categories=[CategoryTotalSchema.model_validate(c) for c in summary.top_categories],
        daily_trend=[PeriodTotalsSchema.model_validate(d) for d in summary.daily_trend],
    )


@router.get("/dashboard/yearly", response_model=YearlyDashboard)
def yearly_summary(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    user_id: uuid.UUID = Depends(get_current_user_id),
    ledger: LedgerService = Depends(get_ledger_service),
):
    year = year or date.today().year
    start, end = year_bounds(year)
    summary = summarize_year(ledger.transactions.postings_between(user_id, start, end), year)

    return YearlyDashboard(
        reference_currency=REFERENCE_CURRENCY,
        year=summary.year,
        income_minor=summary.income_minor,
        expenses_minor=summary.expenses_minor,
        net_minor=summary.net_minor,
        savings_rate=summary.savings_rate,
        average_monthly_income_minor=summary.average_monthly_income_minor,
        average_monthly_expenses_minor=summary.average_monthly_expenses_minor,
        monthly_trend=[PeriodTotalsSchema.model_validate(m) for m in summary.monthly_trend],
    )
