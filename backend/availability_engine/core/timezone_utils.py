"""
Timezone utilities for the availability engine.

Block times are local wall-clock strings; lesson instants are stored in UTC.
Everything is keyed in the viewer's timezone, so conversions go through here.
"""

from datetime import date, datetime, time
from typing import Optional

import pytz

from .config import settings


def get_timezone(name: Optional[str] = None) -> pytz.BaseTzInfo:
    """
    Resolve a timezone name, falling back to the configured default.

    Args:
        name: IANA timezone name (e.g. "Europe/Madrid")

    Returns:
        pytz timezone object
    """
    return pytz.timezone(name or settings.default_timezone)


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt


def to_timezone(dt: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """
    Convert a datetime into ``tz``.

    Args:
        dt: Datetime to convert (naive values are assumed to be UTC)
        tz: Target timezone

    Returns:
        Datetime in the target timezone
    """
    return ensure_aware(dt).astimezone(tz)


def localize(day: date, wall_time: time, tz: pytz.BaseTzInfo) -> datetime:
    """Attach ``tz`` to a local wall-clock moment, resolving DST gaps forward."""
    naive = datetime.combine(day, wall_time)
    try:
        return tz.localize(naive, is_dst=None)
    except pytz.NonExistentTimeError:
        return tz.normalize(tz.localize(naive, is_dst=False))
    except pytz.AmbiguousTimeError:
        return tz.localize(naive, is_dst=False)


def local_midnight(day: date, tz: pytz.BaseTzInfo) -> datetime:
    """Start of ``day`` in ``tz``."""
    return localize(day, time.min, tz)


def local_date(value: datetime | date, tz: pytz.BaseTzInfo) -> date:
    """
    Normalize a date or datetime to a calendar date in ``tz``.

    Aware datetimes are converted first; naive ones are taken as UTC.
    Plain dates pass through untouched.
    """
    if isinstance(value, datetime):
        return to_timezone(value, tz).date()
    return value
