"""Work shift pay calculation"""

from datetime import datetime
from decimal import Decimal

from finance_tracker.domain.exceptions import ValidationError
from finance_tracker.domain.models import ShiftEarnings
from finance_tracker.domain.money import round_half_up

MINUTES_PER_DAY = 24 * 60


def parse_clock_time(value: str) -> int:
    """Minutes since midnight for an HH:MM string"""
    try:
        parsed = datetime.strptime(value.strip(), "%H:%M")
    except (ValueError, AttributeError) as e:
        raise ValidationError(f"Time must be in HH:MM format, got {value!r}") from e
    return parsed.hour * 60 + parsed.minute


def shift_minutes(start_time: str, end_time: str) -> int:
    """
    Length of a shift in minutes.

    An end time earlier than the start time means the shift ran past
    midnight (22:00 -> 06:00 is 8 hours).
    """
    start = parse_clock_time(start_time)
    end = parse_clock_time(end_time)
    if start == end:
        raise ValidationError("Shift start and end times must differ")

    minutes = end - start
    if minutes < 0:
        minutes += MINUTES_PER_DAY
    return minutes


def compute_earnings(
    start_time: str,
    end_time: str,
    hourly_rate_minor: int,
    tips_minor: int = 0,
) -> ShiftEarnings:
    """Regular pay is minutes x rate / 60, rounded to the nearest minor unit"""
    if hourly_rate_minor < 0 or tips_minor < 0:
        raise ValidationError("Hourly rate and tips cannot be negative")

    minutes = shift_minutes(start_time, end_time)
    regular = round_half_up(Decimal(minutes * hourly_rate_minor) / 60)
    hours = (Decimal(minutes) / 60).quantize(Decimal("0.01"))

    return ShiftEarnings(
        minutes_worked=minutes,
        hours_worked=hours,
        regular_earnings_minor=regular,
        tips_minor=tips_minor,
        total_earnings_minor=regular + tips_minor,
    )
