"""Date manipulation utilities"""

from datetime import date, datetime
from typing import Tuple


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First day of the month and first day of the following month (exclusive end)"""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def year_bounds(year: int) -> Tuple[date, date]:
    return date(year, 1, 1), date(year + 1, 1, 1)


def parse_month(value: str) -> Tuple[int, int]:
    """Parse a YYYY-MM string into (year, month)"""
    parsed = datetime.strptime(value, "%Y-%m")
    return parsed.year, parsed.month


def add_years(from_date: date, years: int) -> date:
    """Same calendar day `years` later (Feb 29 falls back to Feb 28)"""
    try:
        return from_date.replace(year=from_date.year + years)
    except ValueError:
        return from_date.replace(year=from_date.year + years, day=28)
