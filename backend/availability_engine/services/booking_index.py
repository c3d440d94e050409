"""
Booked-slot index built from lessons, group classes and reschedule holds.

Every occupying interval is expanded into 30-minute keys in two shapes:

- ``"<day>-HH:mm"`` (Sunday-first weekday) for "busy on this weekday"
- ``"YYYY-MM-DD-HH:mm"`` for "busy on this specific date"

The occupied window is ``[start, end + buffer)`` with the start rounded down
to the enclosing slot, so a lesson starting at 10:05 still blocks 10:00.
When a window is given, only slots inside it get a weekday key: a lesson in
the following week must not mark the same weekday of the displayed week.
Slots past the window end (the rollover a duration check reads) get date
keys only.
The index is rebuilt from scratch whenever the booking list changes.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
import logging
from typing import Iterable, Optional, Set

import pytz

from ..core.constants import DEFAULT_BUFFER_MINUTES, LESSON_BUFFER_MINUTES
from ..core.exceptions import ValidationException
from ..core.timezone_utils import ensure_aware, get_timezone, to_timezone
from ..domain.types import BookedInterval, WeekWindow
from ..utils.time_grid import SLOT_DELTA, floor_to_slot
from ..utils.weekday import sunday_index

logger = logging.getLogger(__name__)


def buffer_minutes(duration_minutes: int) -> int:
    """Idle minutes required after a lesson of ``duration_minutes``."""
    if duration_minutes < 0:
        raise ValidationException(
            "Duration cannot be negative",
            code="INVALID_DURATION",
            details={"duration_minutes": duration_minutes},
        )
    return LESSON_BUFFER_MINUTES.get(duration_minutes, DEFAULT_BUFFER_MINUTES)


def day_key(local_dt: datetime) -> str:
    return f"{sunday_index(local_dt.date())}-{local_dt:%H:%M}"


def date_key(local_dt: datetime) -> str:
    return f"{local_dt:%Y-%m-%d}-{local_dt:%H:%M}"


def slot_keys(day: date, hhmm: str) -> tuple[str, str]:
    """Both key shapes for a calendar date and ``"HH:mm"`` slot label."""
    return f"{sunday_index(day)}-{hhmm}", f"{day.isoformat()}-{hhmm}"


def _inside(local_dt: datetime, window: Optional[WeekWindow]) -> bool:
    if window is None:
        return True
    return ensure_aware(window.start) <= local_dt < ensure_aware(window.end)


def occupied_end(interval: BookedInterval) -> datetime:
    return interval.end + timedelta(minutes=buffer_minutes(interval.duration_minutes))


class BookingIndex:
    """Builds booked-key sets in the viewer's timezone."""

    def __init__(self, tz: Optional[pytz.BaseTzInfo] = None):
        self.tz = tz or get_timezone()

    def interval_keys(
        self,
        interval: BookedInterval,
        weekday_window: Optional[WeekWindow] = None,
        weekday_keys: bool = True,
    ) -> Set[str]:
        """
        Keys occupied by a single interval (ignoring its status).

        Args:
            interval: The booking to expand
            weekday_window: When given, only slots inside it get a weekday key
            weekday_keys: False to emit date keys only
        """
        keys: Set[str] = set()
        end = to_timezone(occupied_end(interval), self.tz)
        current = floor_to_slot(to_timezone(interval.start, self.tz))
        while current < end:
            if weekday_keys and _inside(current, weekday_window):
                keys.add(day_key(current))
            keys.add(date_key(current))
            # Step in UTC so DST transitions neither skip nor repeat a slot
            current = self.tz.normalize((current.astimezone(pytz.UTC) + SLOT_DELTA).astimezone(self.tz))
        return keys

    def build_booked_set(
        self,
        intervals: Iterable[BookedInterval],
        week_window: Optional[WeekWindow] = None,
        rollover: timedelta = timedelta(0),
        weekday_keys: bool = True,
    ) -> Set[str]:
        """
        Booked keys of every occupying interval.

        Args:
            intervals: Bookings from the booking source
            week_window: Displayed range; intervals entirely outside it and
                its rollover are skipped
            rollover: Time after the window end covered by date keys only
            weekday_keys: False for a set that is checked by date keys only
        """
        booked: Set[str] = set()
        considered = 0
        for interval in intervals:
            if not interval.occupies_time:
                continue

            if week_window is not None:
                before = ensure_aware(occupied_end(interval)) < ensure_aware(week_window.start)
                after = ensure_aware(interval.start) >= ensure_aware(week_window.end) + rollover
                if before or after:
                    continue

            considered += 1
            booked |= self.interval_keys(interval, week_window, weekday_keys)

        logger.debug(
            "booked_set_built",
            extra={"intervals": considered, "keys": len(booked), "timezone": str(self.tz)},
        )
        return booked
