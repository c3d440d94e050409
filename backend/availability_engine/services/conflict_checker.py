# backend/availability_engine/services/conflict_checker.py
"""
Conflict Checker Service for the availability engine

Handles booked-time lookups for tutors and students:
- Building booked-key sets for slot computation
- Building a student's busy set for reschedule pickers
- Finding bookings that collide with a proposed window

Booked sets are recomputed on every call from the booking source.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Optional, Set

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import LessonStatus
from ..core.timezone_utils import ensure_aware
from ..domain.types import BookedInterval, WeekWindow
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from .base import BaseService
from .booking_index import BookingIndex, buffer_minutes, occupied_end

logger = logging.getLogger(__name__)

# A student's own pending proposals are not busy time for their picker
STUDENT_BUSY_STATUSES = frozenset({LessonStatus.SCHEDULED.value, LessonStatus.IN_PROGRESS.value})

# Past the displayed range so a duration check can roll over the last midnight
BOOKED_SET_ROLLOVER = timedelta(days=1)


class ConflictChecker(BaseService):
    """
    Service for checking booking conflicts and building booked sets.

    Works entirely with booking-source intervals; availability blocks are
    the AvailabilityService's concern.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[BookingRepository] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional BookingRepository instance
            clock: Clock carrying "now" and the viewer timezone
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.clock = clock or Clock()
        self.index = BookingIndex(self.clock.tz)

    @BaseService.measure_operation("build_booked_set_for_tutor")
    def build_booked_set_for_tutor(
        self,
        tutor_id: str,
        window: WeekWindow,
        exclude_lesson_id: Optional[str] = None,
    ) -> Set[str]:
        """
        Booked keys of a tutor for the displayed window.

        Args:
            tutor_id: The tutor to check
            window: Displayed date range; intervals outside it are skipped
            exclude_lesson_id: Lesson being moved, left out of its own conflicts

        Returns:
            Set of ``"d-HH:mm"`` keys for slots inside the window and
            ``"YYYY-MM-DD-HH:mm"`` keys for the window plus one rollover day
        """
        with self.upstream_guard("build_booked_set_for_tutor"):
            intervals = self.repository.get_bookings_for_tutor(
                tutor_id, window.start, window.end + BOOKED_SET_ROLLOVER, exclude_lesson_id
            )
        return self.index.build_booked_set(intervals, window, rollover=BOOKED_SET_ROLLOVER)

    @BaseService.measure_operation("build_student_busy_set")
    def build_student_busy_set(
        self,
        student_id: str,
        window: Optional[WeekWindow] = None,
        exclude_lesson_id: Optional[str] = None,
    ) -> Set[str]:
        """
        Booked keys of a student's upcoming scheduled lessons and classes.

        Only future bookings are considered, within the configured lookahead
        unless an explicit window is given. The set holds date keys only: a
        lesson one Monday says nothing about the other Mondays of the range.
        """
        now = self.clock.now()
        if window is None:
            window = WeekWindow(start=now, end=now + timedelta(days=settings.reschedule_lookahead_days))

        with self.upstream_guard("build_student_busy_set"):
            intervals = self.repository.get_bookings_for_student(
                student_id, window.start, window.end, exclude_lesson_id
            )
        upcoming = [
            interval
            for interval in intervals
            if getattr(interval.status, "value", interval.status) in STUDENT_BUSY_STATUSES
            and interval.start >= now
        ]
        return self.index.build_booked_set(upcoming, window, weekday_keys=False)

    @BaseService.measure_operation("find_conflicts")
    def find_conflicts(
        self,
        tutor_id: str,
        start: datetime,
        end: datetime,
        exclude_lesson_id: Optional[str] = None,
    ) -> List[BookedInterval]:
        """
        Occupying bookings of a tutor that collide with ``[start, end)``.

        Both sides carry their buffers: an existing booking occupies
        ``[start, end + buffer)`` and so does the candidate window.

        Returns:
            Colliding intervals, empty when the window is free
        """
        start, end = ensure_aware(start), ensure_aware(end)
        candidate_minutes = int((end - start).total_seconds() // 60)
        candidate_end = end + timedelta(minutes=buffer_minutes(candidate_minutes))

        with self.upstream_guard("find_conflicts"):
            intervals = self.repository.get_bookings_for_tutor(
                tutor_id, start, candidate_end, exclude_lesson_id
            )

        conflicts = [
            interval
            for interval in intervals
            if interval.occupies_time
            and interval.start < candidate_end
            and start < occupied_end(interval)
        ]
        if conflicts:
            self.logger.warning(
                "booking_conflicts_found",
                extra={
                    "tutor_id": tutor_id,
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "conflicts": len(conflicts),
                },
            )
        return conflicts
