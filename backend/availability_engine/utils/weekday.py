"""
Weekday index conventions.

The engine indexes weekdays Sunday-first (Sunday = 0 ... Saturday = 6).
Some editor screens lay the week out Monday-first (Monday = 0 ... Sunday = 6);
those indexes are converted here and nowhere else.
"""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum
from typing import List

from ..core.constants import DAYS_PER_WEEK
from ..core.exceptions import ValidationException


class WeekdayConvention(str, Enum):
    SUNDAY_FIRST = "sunday_first"
    MONDAY_FIRST = "monday_first"


def sunday_index(day: date) -> int:
    """Sunday-first weekday index of a calendar date."""
    # date.weekday() is Monday-first
    return (day.weekday() + 1) % DAYS_PER_WEEK


def _check(index: int) -> int:
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < DAYS_PER_WEEK:
        raise ValidationException(
            f"Weekday index must be between 0 and {DAYS_PER_WEEK - 1}",
            code="INVALID_WEEKDAY",
            details={"day": index},
        )
    return index


def to_sunday_first(index: int, convention: WeekdayConvention) -> int:
    """Convert a presentation weekday index into the engine's Sunday-first index."""
    _check(index)
    if convention is WeekdayConvention.MONDAY_FIRST:
        return (index + 1) % DAYS_PER_WEEK
    return index


def from_sunday_first(index: int, convention: WeekdayConvention) -> int:
    """Convert an engine weekday index into a presentation index."""
    _check(index)
    if convention is WeekdayConvention.MONDAY_FIRST:
        return (index + DAYS_PER_WEEK - 1) % DAYS_PER_WEEK
    return index


def week_start_sunday(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=sunday_index(day))


def week_dates(week_start: date) -> List[date]:
    """Seven consecutive dates starting at ``week_start``."""
    return [week_start + timedelta(days=offset) for offset in range(DAYS_PER_WEEK)]
