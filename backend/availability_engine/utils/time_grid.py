"""
Half-hour time grid: 48 slots per day.

Slot ``i`` starts at ``i // 2`` hours and ``0`` or ``30`` minutes. The
conversions below are exact inverses over ``range(SLOTS_PER_DAY)``.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
import re
from typing import Tuple

import pytz

from ..core.constants import MINUTES_PER_DAY, SLOT_MINUTES, SLOTS_PER_DAY
from ..core.exceptions import ValidationException
from ..core.timezone_utils import localize

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

SLOT_DELTA = timedelta(minutes=SLOT_MINUTES)


def slot_index_to_time(index: int) -> Tuple[int, int]:
    """Return ``(hour, minute)`` for a slot index."""
    return index // 2, (index % 2) * SLOT_MINUTES


def slot_index_to_label(index: int) -> str:
    hour, minute = slot_index_to_time(index)
    return f"{hour:02d}:{minute:02d}"


def minutes_since_midnight(hhmm: str) -> int:
    """Minutes since midnight for a well-formed ``"HH:mm"`` string."""
    hours, minutes = hhmm.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def time_to_slot_index(hhmm: str) -> int:
    """Slot containing ``hhmm`` (e.g. ``"09:30"`` -> 19)."""
    return minutes_since_midnight(hhmm) // SLOT_MINUTES


def minutes_to_label(minutes: int) -> str:
    """
    Convert minutes since midnight to HH:MM.

    1440 is rendered as "24:00".
    """
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    if minutes == MINUTES_PER_DAY:
        return "24:00"
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def slot_end_label(index: int) -> str:
    """Exclusive end of a ``[start, end)`` slot range ending after ``index - 1``."""
    return minutes_to_label(index * SLOT_MINUTES)


def slot_datetime(day: date, index: int, tz: pytz.BaseTzInfo) -> datetime:
    """Local start of slot ``index`` on ``day``."""
    hour, minute = slot_index_to_time(index)
    return localize(day, time(hour, minute), tz)


def floor_to_slot(dt: datetime) -> datetime:
    """Round down to the enclosing 30-minute boundary."""
    return dt.replace(minute=(dt.minute // SLOT_MINUTES) * SLOT_MINUTES, second=0, microsecond=0)


# Validation helpers for write boundaries


def validate_slot_index(index: int) -> int:
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < SLOTS_PER_DAY:
        raise ValidationException(
            f"Slot index must be between 0 and {SLOTS_PER_DAY - 1}",
            code="INVALID_SLOT_INDEX",
            details={"slot_index": index},
        )
    return index


def parse_time_of_day(value: str, *, allow_end_of_day: bool = False) -> int:
    """
    Validate an ``"HH:mm"`` string and return minutes since midnight.

    Args:
        value: Time-of-day string, 24-hour, zero-padded
        allow_end_of_day: Accept ``"24:00"`` as 1440 (exclusive block ends)

    Raises:
        ValidationException: If the string is not a valid time of day
    """
    if allow_end_of_day and value == "24:00":
        return MINUTES_PER_DAY
    if not isinstance(value, str) or not _HHMM.match(value):
        raise ValidationException(
            f"Invalid time of day: {value!r} (expected HH:mm)",
            code="INVALID_TIME_FORMAT",
            details={"value": value},
        )
    return minutes_since_midnight(value)
