"""Date manipulation utilities"""

import calendar
from datetime import date
from typing import Tuple


def shift_month(month: int, year: int, delta: int) -> Tuple[int, int]:
    """Move (month, year) by delta months, wrapping the year"""
    index = year * 12 + (month - 1) + delta
    return index % 12 + 1, index // 12


def clamped_date(year: int, month: int, day: int) -> date:
    """Build a date, pulling days past the end of the month back to its last day"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def month_bounds(month: int, year: int) -> Tuple[date, date]:
    """First and last day of a calendar month (inclusive)"""
    return date(year, month, 1), clamped_date(year, month, 31)
