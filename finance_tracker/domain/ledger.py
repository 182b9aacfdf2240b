"""Ledger rules - signed balance effects and posting prices"""

from datetime import date
from decimal import Decimal
from typing import Optional

from finance_tracker.domain.currency import REFERENCE_CURRENCY, RateProvider, apply_rates, convert
from finance_tracker.domain.exceptions import InsufficientFundsError, ValidationError
from finance_tracker.domain.models import CREDIT_ACCOUNT_TYPES, PricedAmount
from finance_tracker.domain.money import require_minor_units


def signed_effect(kind: str, amount_minor: int, direction: Optional[str] = None) -> int:
    """
    Balance delta a posting has on its account.

    Income and incoming transfer legs credit the account, expenses and
    outgoing transfer legs debit it.
    """
    if kind == "income":
        return amount_minor
    if kind == "expense":
        return -amount_minor
    if kind == "transfer":
        if direction == "in":
            return amount_minor
        if direction == "out":
            return -amount_minor
        raise ValidationError("Transfer postings need a direction of 'in' or 'out'")
    raise ValidationError(f"Invalid transaction kind: {kind!r}")


def apply_effect(balance_minor: int, effect_minor: int, account_type: str) -> int:
    """
    Add a signed effect to a balance.

    Raises:
        InsufficientFundsError: the result leaves a non-credit account below
            zero, whatever the sign of the effect
    """
    new_balance = balance_minor + effect_minor
    if new_balance < 0 and account_type not in CREDIT_ACCOUNT_TYPES:
        raise InsufficientFundsError("Insufficient funds")
    return new_balance


def reference_rate(currency: str, rates: RateProvider, effective_date: date) -> Decimal:
    if currency == REFERENCE_CURRENCY:
        return Decimal("1")
    return rates.rate_at(currency, effective_date)


def price_amount(
    amount_minor: int,
    currency: str,
    account_currency: str,
    rates: RateProvider,
    effective_date: date,
) -> PricedAmount:
    """Price a posting at the rates valid on its effective date"""
    require_minor_units(amount_minor)
    to_reference = convert(amount_minor, currency, REFERENCE_CURRENCY, rates, effective_date)
    to_account = convert(amount_minor, currency, account_currency, rates, effective_date)

    return PricedAmount(
        amount_minor=amount_minor,
        currency=currency,
        exchange_rate_to_reference=to_reference.rate_to_reference,
        reference_amount_minor=to_reference.amount_minor,
        account_rate_to_reference=reference_rate(account_currency, rates, effective_date),
        account_amount_minor=to_account.amount_minor,
    )


def reprice_amount(
    amount_minor: int,
    currency: str,
    exchange_rate_to_reference: Decimal,
    account_rate_to_reference: Decimal,
) -> PricedAmount:
    """Price a new amount at rates captured earlier for the same currency and date"""
    require_minor_units(amount_minor)
    return PricedAmount(
        amount_minor=amount_minor,
        currency=currency,
        exchange_rate_to_reference=exchange_rate_to_reference,
        reference_amount_minor=apply_rates(amount_minor, exchange_rate_to_reference, Decimal("1")),
        account_rate_to_reference=account_rate_to_reference,
        account_amount_minor=apply_rates(amount_minor, exchange_rate_to_reference, account_rate_to_reference),
    )
