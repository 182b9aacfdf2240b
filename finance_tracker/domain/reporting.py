"""Dashboard aggregation over ledger postings (reference-currency minor units)"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Tuple

from finance_tracker.domain.models import (
    BorrowingBalance,
    CategoryTotal,
    MonthlySummary,
    PeriodTotals,
    Posting,
    YearlySummary,
)
from finance_tracker.domain.money import round_half_up
from finance_tracker.utils.date_utils import month_bounds, year_bounds

TOP_CATEGORY_LIMIT = 5


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(Decimal(part) * 100 / Decimal(whole))


def _add_posting(totals: PeriodTotals, posting: Posting) -> None:
    totals.transaction_count += 1
    if posting.kind == "income":
        totals.income_minor += posting.reference_amount_minor
    elif posting.kind == "expense":
        totals.expenses_minor += posting.reference_amount_minor


def summarize_month(postings: Iterable[Posting], year: int, month: int) -> MonthlySummary:
    """
    Income, expenses, top expense categories and daily trend for one month.

    Transfer legs count toward activity but not toward income or expenses.
    """
    start, end = month_bounds(year, month)
    in_period = [p for p in postings if start <= p.effective_date < end]

    totals = PeriodTotals(label=start.strftime("%Y-%m"))
    by_category: Dict[str, int] = defaultdict(int)
    by_day: Dict[date, PeriodTotals] = {}

    for posting in in_period:
        _add_posting(totals, posting)
        if posting.kind == "expense":
            by_category[posting.category] += posting.reference_amount_minor

        day = by_day.setdefault(
            posting.effective_date, PeriodTotals(label=posting.effective_date.isoformat())
        )
        _add_posting(day, posting)

    ranked = sorted(by_category.items(), key=lambda item: (-item[1], item[0]))
    top_categories = [
        CategoryTotal(
            category=category,
            amount_minor=amount,
            percentage=_percent(amount, totals.expenses_minor),
        )
        for category, amount in ranked[:TOP_CATEGORY_LIMIT]
    ]

    return MonthlySummary(
        period_start=start,
        period_end=end,
        income_minor=totals.income_minor,
        expenses_minor=totals.expenses_minor,
        savings_rate=_percent(totals.net_minor, totals.income_minor),
        top_categories=top_categories,
        daily_trend=[by_day[d] for d in sorted(by_day)],
    )


def summarize_year(postings: Iterable[Posting], year: int) -> YearlySummary:
    """Twelve monthly buckets plus yearly totals and monthly averages"""
    start, end = year_bounds(year)
    buckets = [PeriodTotals(label=f"{year}-{month:02d}") for month in range(1, 13)]

    for posting in postings:
        if start <= posting.effective_date < end:
            _add_posting(buckets[posting.effective_date.month - 1], posting)

    income = sum(b.income_minor for b in buckets)
    expenses = sum(b.expenses_minor for b in buckets)

    return YearlySummary(
        year=year,
        income_minor=income,
        expenses_minor=expenses,
        savings_rate=_percent(income - expenses, income),
        average_monthly_income_minor=round_half_up(Decimal(income) / 12),
        average_monthly_expenses_minor=round_half_up(Decimal(expenses) / 12),
        monthly_trend=buckets,
    )


def borrowing_position(balances: Iterable[BorrowingBalance]) -> Tuple[int, int]:
    """Outstanding (borrowed, lent) totals"""
    borrowed = lent = 0
    for balance in balances:
        if balance.direction == "borrowed":
            borrowed += balance.outstanding_reference_minor
        elif balance.direction == "lent":
            lent += balance.outstanding_reference_minor
    return borrowed, lent


def totals_by_currency(balances: Iterable[Tuple[str, int]]) -> Dict[str, int]:
    totals: Dict[str, int] = defaultdict(int)
    for currency, balance_minor in balances:
        totals[currency] += balance_minor
    return dict(totals)
