# backend/availability_engine/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Every request gets services bound to its own session and to a Clock in the
viewer's timezone (``?tz=``, falling back to the configured default).
"""

import logging
from typing import Optional

from fastapi import Depends, Query
import pytz
from sqlalchemy.orm import Session

from ...core.clock import Clock
from ...core.exceptions import ValidationException
from ...services.availability_service import AvailabilityService
from ...services.conflict_checker import ConflictChecker
from ...services.reschedule_service import RescheduleService
from .database import get_db

logger = logging.getLogger(__name__)


def get_clock(
    tz: Optional[str] = Query(None, description="Viewer IANA timezone, e.g. Europe/Madrid"),
) -> Clock:
    """
    Get the request clock in the viewer's timezone.

    Raises:
        ValidationException: If the timezone name is unknown
    """
    try:
        return Clock(tz)
    except pytz.UnknownTimeZoneError:
        raise ValidationException(
            f"Unknown timezone: {tz}", code="INVALID_TIMEZONE", details={"tz": tz}
        )


def get_conflict_checker(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ConflictChecker:
    """
    Get conflict checker service instance.

    Args:
        db: Database session
        clock: Request clock

    Returns:
        ConflictChecker instance
    """
    return ConflictChecker(db, clock=clock)


def get_availability_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    conflict_checker: ConflictChecker = Depends(get_conflict_checker),
) -> AvailabilityService:
    """Get availability service instance sharing the request's conflict checker."""
    return AvailabilityService(db, conflict_checker=conflict_checker, clock=clock)


def get_reschedule_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    conflict_checker: ConflictChecker = Depends(get_conflict_checker),
) -> RescheduleService:
    """Get reschedule service instance."""
    return RescheduleService(db, conflict_checker=conflict_checker, clock=clock)
