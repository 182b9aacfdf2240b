"""Pydantic schemas for API request/response validation.

Requests carry money in major units (e.g. 12.34) and are converted to integer
minor units at this boundary; responses carry `*_minor` integers only.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from finance_tracker.config import settings
from finance_tracker.domain.exceptions import InvalidAmountError
from finance_tracker.domain.money import to_minor_units
from finance_tracker.utils.date_utils import add_years

AccountType = Literal["checking", "savings", "credit", "investment", "cash"]
TransactionKind = Literal["income", "expense", "transfer"]
BorrowingDirection = Literal["borrowed", "lent"]
Currency = Literal["USD", "EUR", "AZN"]

MAX_FUTURE_YEARS = 10


def _check_amount(value: Optional[Decimal], positive: bool = True) -> Optional[Decimal]:
    if value is None:
        return value
    try:
        minor = to_minor_units(value, max_major=settings.max_amount_major)
    except InvalidAmountError as e:
        raise ValueError(str(e)) from e
    if positive and minor <= 0:
        raise ValueError("Amount must be a positive number")
    return value


def _check_date(value: Optional[date]) -> Optional[date]:
    if value is not None and value > add_years(date.today(), MAX_FUTURE_YEARS):
        raise ValueError(f"Date cannot be more than {MAX_FUTURE_YEARS} years in the future")
    return value


def _minor(value: Optional[Decimal]) -> Optional[int]:
    return None if value is None else to_minor_units(value, max_major=settings.max_amount_major)


# Auth


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: Optional[str] = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not any(c.islower() for c in value) or not any(c.isupper() for c in value):
            raise ValueError("Password must contain upper and lower case letters")
        if not any(c.isdigit() for c in value):
            raise ValueError("Password must contain a digit")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None


# Accounts


class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    account_type: AccountType
    balance: Decimal = Decimal("0")
    currency: Currency = "USD"
    institution: str = Field("", max_length=100)

    @field_validator("balance")
    @classmethod
    def valid_balance(cls, value: Decimal) -> Decimal:
        return _check_amount(value, positive=False)

    @property
    def balance_minor(self) -> int:
        return _minor(self.balance)


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    account_type: Optional[AccountType] = None
    currency: Optional[Currency] = None
    institution: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    balance: Optional[Decimal] = None

    @field_validator("balance")
    @classmethod
    def valid_balance(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        return _check_amount(value, positive=False)

    @property
    def balance_minor(self) -> Optional[int]:
        return _minor(self.balance)


class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    account_type: str
    balance_minor: int
    currency: str
    institution: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AccountSummary(BaseModel):
    total_accounts: int
    active_accounts: int
    totals_by_currency: Dict[str, int]


class AccountListResponse(BaseModel):
    accounts: List[AccountResponse]
    summary: AccountSummary


class AccountStats(BaseModel):
    income_minor: int
    expenses_minor: int
    transaction_count: int


class AccountDetailResponse(BaseModel):
    account: AccountResponse
    recent_transactions: List["TransactionResponse"]
    last_30_days: AccountStats


class AccountUpdateResponse(BaseModel):
    account: AccountResponse
    adjustment: Optional["TransactionResponse"] = None


class AccountDeleteResponse(BaseModel):
    outcome: Literal["deactivated", "deleted"]
    deleted_transactions: int


# Transactions


class TransactionCreate(BaseModel):
    account_id: uuid.UUID
    kind: Literal["income", "expense"]
    category: str = Field(..., min_length=1, max_length=50)
    amount: Decimal
    currency: Optional[Currency] = None
    description: str = Field("", max_length=500)
    effective_date: Optional[date] = None

    @field_validator("amount")
    @classmethod
    def valid_amount(cls, value: Decimal) -> Decimal:
        return _check_amount(value)

    @field_validator("effective_date")
    @classmethod
    def valid_date(cls, value: Optional[date]) -> Optional[date]:
        return _check_date(value)

    @property
    def amount_minor(self) -> int:
        return _minor(self.amount)


class TransactionUpdate(BaseModel):
    kind: Optional[Literal["income", "expense"]] = None
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    amount: Optional[Decimal] = None
    currency: Optional[Currency] = None
    description: Optional[str] = Field(None, max_length=500)
    effective_date: Optional[date] = None

    @field_validator("amount")
    @classmethod
    def valid_amount(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        return _check_amount(value)

    @field_validator("effective_date")
    @classmethod
    def valid_date(cls, value: Optional[date]) -> Optional[date]:
        return _check_date(value)

    @property
    def amount_minor(self) -> Optional[int]:
        return _minor(self.amount)


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    account_id: uuid.UUID
    kind: str
    direction: Optional[str] = None
    transfer_id: Optional[uuid.UUID] = None
    work_shift_id: Optional[uuid.UUID] = None
    category: str
    amount_minor: int
    currency: str
    exchange_rate_to_reference: Decimal
    reference_amount_minor: int
    account_amount_minor: int
    description: str
    effective_date: date
    created_at: Optional[datetime] = None


class TransactionPage(BaseModel):
    transactions: List[TransactionResponse]
    page: int
    limit: int
    total: int
    pages: int


class TransactionWriteResponse(BaseModel):
    transaction: TransactionResponse
    account_balance_minor: int


class TransactionDeleteResponse(BaseModel):
    deleted: List[uuid.UUID]
    account_balances: Dict[str, int]


class TransferCreate(BaseModel):
    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
    amount: Decimal
    currency: Optional[Currency] = None
    category: str = Field("Transfer", min_length=1, max_length=50)
    description: str = Field("", max_length=500)
    effective_date: Optional[date] = None

    @field_validator("amount")
    @classmethod
    def valid_amount(cls, value: Decimal) -> Decimal:
        return _check_amount(value)

    @field_validator("effective_date")
    @classmethod
    def valid_date(cls, value: Optional[date]) -> Optional[date]:
        return _check_date(value)

    @property
    def amount_minor(self) -> int:
        return _minor(self.amount)


class TransferResponse(BaseModel):
    transfer_id: uuid.UUID
    outgoing: TransactionResponse
    incoming: TransactionResponse


# Borrowings


class BorrowingCreate(BaseModel):
    direction: BorrowingDirection
    counterparty: str = Field(..., min_length=1, max_length=100)
    amount: Decimal
    currency: Currency = "USD"
    description: str = Field("", max_length=500)
    borrowed_on: Optional[date] = None
    due_date: Optional[date] = None

    @field_validator("amount")
    @classmethod
    def valid_amount(cls, value: Decimal) -> Decimal:
        return _check_amount(value)

    @field_validator("borrowed_on", "due_date")
    @classmethod
    def valid_date(cls, value: Optional[date]) -> Optional[date]:
        return _check_date(value)

    @property
    def amount_minor(self) -> int:
        return _minor(self.amount)


class BorrowingUpdate(BaseModel):
    counterparty: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    due_date: Optional[date] = None
    clear_due_date: bool = False

    @field_validator("due_date")
    @classmethod
    def valid_date(cls, value: Optional[date]) -> Optional[date]:
        return _check_date(value)


class PaymentRequest(BaseModel):
    amount: Decimal

    @field_validator("amount")
    @classmethod
    def valid_amount(cls, value: Decimal) -> Decimal:
        return _check_amount(value)

    @property
    def amount_minor(self) -> int:
        return _minor(self.amount)


class BorrowingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    direction: str
    counterparty: str
    principal_minor: int
    currency: str
    exchange_rate_to_reference: Decimal
    reference_amount_minor: int
    paid_minor: int
    outstanding_minor: int
    description: str
    borrowed_on: date
    due_date: Optional[date] = None
    status: str


# Work shifts

_CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class WorkShiftCreate(BaseModel):
    shift_date: date
    position: str = Field(..., min_length=1, max_length=100)
    start_time: str = Field(..., pattern=_CLOCK_PATTERN)
    end_time: str = Field(..., pattern=_CLOCK_PATTERN)
    hourly_rate: Decimal
    tips: Decimal = Decimal("0")
    currency: Optional[Currency] = None
    account_id: Optional[uuid.UUID] = None
    notes: str = Field("", max_length=500)

    @field_validator("hourly_rate", "tips")
    @classmethod
    def valid_money(cls, value: Decimal) -> Decimal:
        _check_amount(value, positive=False)
        if value < 0:
            raise ValueError("Amount cannot be negative")
        return value

    @field_validator("shift_date")
    @classmethod
    def valid_date(cls, value: date) -> date:
        return _check_date(value)

    @property
    def hourly_rate_minor(self) -> int:
        return _minor(self.hourly_rate)

    @property
    def tips_minor(self) -> int:
        return _minor(self.tips)


class WorkShiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    account_id: Optional[uuid.UUID] = None
    shift_date: date
    position: str
    hourly_rate_minor: int
    currency: str
    start_time: str
    end_time: str
    hours_worked: Decimal
    regular_earnings_minor: int
    tips_minor: int
    total_earnings_minor: int
    notes: str


# Dashboard


class CategoryTotalSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: str
    amount_minor: int
    percentage: int


class PeriodTotalsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    income_minor: int
    expenses_minor: int
    net_minor: int
    transaction_count: int


class BorrowingPosition(BaseModel):
    borrowed_minor: int
    lent_minor: int


class DashboardSummary(BaseModel):
    reference_currency: str
    period_start: date
    period_end: date
    income_minor: int
    expenses_minor: int
    net_minor: int
    savings_rate: int
    account_totals_by_currency: Dict[str, int]
    borrowings: BorrowingPosition
    net_position_minor: int
    top_categories: List[CategoryTotalSchema]
    daily_trend: List[PeriodTotalsSchema]


class YearlyDashboard(BaseModel):
    reference_currency: str
    year: int
    income_minor: int
    expenses_minor: int
    net_minor: int
    savings_rate: int
    average_monthly_income_minor: int
    average_monthly_expenses_minor: int
    monthly_trend: List[PeriodTotalsSchema]


# Rates


class RateSnapshotSchema(BaseModel):
    effective_date: date
    rates: Dict[str, str]


class RateTableResponse(BaseModel):
    version: int
    reference_currency: str
    snapshots: List[RateSnapshotSchema]


class ConversionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    amount_minor: int
    rate: Decimal
    rate_to_reference: Optional[Decimal] = None
    source_currency: str
    target_currency: str
    effective_date: date


AccountDetailResponse.model_rebuild()
AccountUpdateResponse.model_rebuild()
