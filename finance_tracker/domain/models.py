"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

ACCOUNT_TYPES = ("checking", "savings", "credit", "investment", "cash")
TRANSACTION_KINDS = ("income", "expense", "transfer")
BORROWING_DIRECTIONS = ("borrowed", "lent")
BORROWING_STATUSES = ("pending", "partially_paid", "paid", "overdue")

# Account types allowed to carry a negative balance
CREDIT_ACCOUNT_TYPES = ("credit",)


@dataclass(frozen=True)
class RateSnapshot:
    """Exchange rates valid on a given date, quoted per 1 unit of reference currency"""

    effective_date: date
    rates: Dict[str, Decimal]


@dataclass(frozen=True)
class Conversion:
    """Result of converting a minor-unit amount between two currencies"""

    amount_minor: int
    rate: Decimal  # target units per source unit
    rate_to_reference: Optional[Decimal]  # source units per reference unit
    source_currency: str
    target_currency: str
    effective_date: date


@dataclass(frozen=True)
class PricedAmount:
    """Amount of a posting with the rates captured when it was priced"""

    amount_minor: int
    currency: str
    exchange_rate_to_reference: Decimal
    reference_amount_minor: int
    account_rate_to_reference: Decimal
    account_amount_minor: int


@dataclass
class Posting:
    """Ledger posting as seen by reporting"""

    kind: str  # "income", "expense" or "transfer"
    category: str
    reference_amount_minor: int
    effective_date: date
    direction: Optional[str] = None  # "out" or "in" for transfer legs


@dataclass
class BorrowingBalance:
    """Outstanding part of a borrowing in reference currency"""

    direction: str  # "borrowed" or "lent"
    outstanding_reference_minor: int


@dataclass
class ShiftEarnings:
    """Computed pay for a single work shift"""

    minutes_worked: int
    hours_worked: Decimal
    regular_earnings_minor: int
    tips_minor: int
    total_earnings_minor: int


@dataclass
class CategoryTotal:
    category: str
    amount_minor: int
    percentage: int


@dataclass
class PeriodTotals:
    """Income/expense totals for a day or month"""

    label: str
    income_minor: int = 0
    expenses_minor: int = 0
    transaction_count: int = 0

    @property
    def net_minor(self) -> int:
        return self.income_minor - self.expenses_minor


@dataclass
class MonthlySummary:
    period_start: date
    period_end: date
    income_minor: int
    expenses_minor: int
    savings_rate: int
    top_categories: List[CategoryTotal] = field(default_factory=list)
    daily_trend: List[PeriodTotals] = field(default_factory=list)

    @property
    def net_minor(self) -> int:
        return self.income_minor - self.expenses_minor


@dataclass
class YearlySummary:
    year: int
    income_minor: int
    expenses_minor: int
    savings_rate: int
    average_monthly_income_minor: int = 0
    average_monthly_expenses_minor: int = 0
    monthly_trend: List[PeriodTotals] = field(default_factory=list)

    @property
    def net_minor(self) -> int:
        return self.income_minor - self.expenses_minor
