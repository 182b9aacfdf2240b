"""Minor-unit money helpers.

Every stored amount is an integer count of minor units (cents). Major-unit
values only exist at the API boundary and are converted here.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_DOWN, ROUND_HALF_UP
from typing import Union

from finance_tracker.domain.exceptions import InvalidAmountError, UnsupportedCurrencyError

SUPPORTED_CURRENCIES = ("USD", "EUR", "AZN")
MINOR_UNITS_PER_MAJOR = 100
MAX_DECIMAL_PLACES = 2
MAX_AMOUNT_MAJOR = 1_000_000_000


def normalize_currency(code: str) -> str:
    """Upper-case and validate a currency code"""
    normalized = (code or "").strip().upper()
    if normalized not in SUPPORTED_CURRENCIES:
        raise UnsupportedCurrencyError(
            f"Currency must be one of {', '.join(SUPPORTED_CURRENCIES)}, got {code!r}"
        )
    return normalized


def require_minor_units(amount: object) -> int:
    """Reject anything that is not a plain integer amount"""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError("Amount must be an integer (in minor units)")
    return amount


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves toward positive infinity (-2.5 -> -2)"""
    rounding = ROUND_HALF_UP if value >= 0 else ROUND_HALF_DOWN
    return int(value.quantize(Decimal("1"), rounding=rounding))


def to_minor_units(
    amount: Union[Decimal, int, str],
    max_major: int = MAX_AMOUNT_MAJOR,
) -> int:
    """
    Convert a major-unit amount (e.g. dollars) to integer minor units.

    Raises:
        InvalidAmountError: non-numeric input, more than two decimal places,
            or a magnitude above max_major
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmountError(f"Amount is not a number: {amount!r}") from e

    if not value.is_finite():
        raise InvalidAmountError("Amount must be a finite number")
    if value.normalize().as_tuple().exponent < -MAX_DECIMAL_PLACES:
        raise InvalidAmountError(f"Amount cannot have more than {MAX_DECIMAL_PLACES} decimal places")
    if abs(value) > max_major:
        raise InvalidAmountError("Amount exceeds maximum allowed value")

    return int(value * MINOR_UNITS_PER_MAJOR)


def to_positive_minor_units(amount: Union[Decimal, int, str], max_major: int = MAX_AMOUNT_MAJOR) -> int:
    minor = to_minor_units(amount, max_major=max_major)
    if minor <= 0:
        raise InvalidAmountError("Amount must be a positive number")
    return minor


def to_major_units(amount_minor: int) -> Decimal:
    """Render minor units as a two-decimal major-unit amount"""
    return (Decimal(amount_minor) / MINOR_UNITS_PER_MAJOR).quantize(Decimal("0.01"))
