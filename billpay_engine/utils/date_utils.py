"""Date manipulation utilities"""

import calendar
from datetime import date
from typing import Tuple

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month"""
    return calendar.monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, pulling day 29-31 back to the last day of short months"""
    return date(year, month, min(day, days_in_month(year, month)))


def add_months(year: int, month: int, months: int) -> Tuple[int, int]:
    """Shift a (year, month) pair by a number of months, rolling the year as needed"""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def month_index(name: str) -> int:
    """1-based month number for an English month name (case-insensitive)"""
    lowered = name.strip().lower()
    for i, month_name in enumerate(MONTH_NAMES):
        if month_name.lower() == lowered:
            return i + 1
    raise ValueError(f"Unknown month name: {name!r}")
