"""Unit tests for minor-unit money helpers"""

import pytest
from decimal import Decimal
from finance_tracker.domain.exceptions import InvalidAmountError, UnsupportedCurrencyError
from finance_tracker.domain.money import (
    normalize_currency,
    round_half_up,
    to_major_units,
    to_minor_units,
    to_positive_minor_units,
)


def test_to_minor_units():
    assert to_minor_units(Decimal("75.25")) == 7525
    assert to_minor_units("1000") == 100000
    assert to_minor_units(Decimal("-12.5")) == -1250
    assert to_minor_units(0) == 0


def test_too_many_decimals_rejected():
    with pytest.raises(InvalidAmountError, match="decimal places"):
        to_minor_units(Decimal("1.005"))


def test_trailing_zeros_are_not_extra_decimals():
    assert to_minor_units(Decimal("1.500")) == 150


def test_maximum_amount():
    assert to_minor_units(Decimal("1000000000")) == 100_000_000_000
    with pytest.raises(InvalidAmountError, match="maximum"):
        to_minor_units(Decimal("1000000000.01"))


@pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
def test_non_numeric_rejected(value):
    with pytest.raises(InvalidAmountError):
        to_minor_units(value)


def test_positive_amount_required():
    with pytest.raises(InvalidAmountError):
        to_positive_minor_units("0")
    assert to_positive_minor_units("0.01") == 1


def test_to_major_units():
    assert to_major_units(92475) == Decimal("924.75")
    assert str(to_major_units(100)) == "1.00"


def test_normalize_currency():
    assert normalize_currency(" eur ") == "EUR"
    with pytest.raises(UnsupportedCurrencyError):
        normalize_currency("GBP")
    with pytest.raises(UnsupportedCurrencyError):
        normalize_currency("")


@pytest.mark.parametrize(
    "value,expected",
    [("2.5", 3), ("2.4", 2), ("-2.5", -2), ("-2.6", -3), ("-0.5", 0), ("0", 0)],
)
def test_round_half_up_goes_toward_positive_infinity(value, expected):
    assert round_half_up(Decimal(value)) == expected
