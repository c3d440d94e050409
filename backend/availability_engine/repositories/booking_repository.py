# backend/availability_engine/repositories/booking_repository.py
"""
Booking Repository

The booking source. Turns lessons, group classes and pending reschedule
proposals into BookedInterval records for a tutor or a student. Cancelled
classes are filtered here; lesson statuses are passed through untouched so
the booking index decides what occupies time.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.constants import DEFAULT_BUFFER_MINUTES, LESSON_BUFFER_MINUTES
from ..core.enums import ClassStatus, LessonStatus, ProposalStatus
from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_aware
from ..domain.types import BookedInterval
from ..models.group_class import ClassAttendee, GroupClass
from ..models.lesson import Lesson
from .base_repository import BaseRepository, to_utc

logger = logging.getLogger(__name__)

# Widest buffer any booking can carry; rows ending this close before the range still spill into it
_MAX_BUFFER = timedelta(minutes=max([DEFAULT_BUFFER_MINUTES, *LESSON_BUFFER_MINUTES.values()]))


def _minutes_between(start: datetime, end: datetime) -> int:
    return int((ensure_aware(end) - ensure_aware(start)).total_seconds() // 60)


def lesson_to_interval(lesson: Lesson) -> BookedInterval:
    return BookedInterval(
        start=ensure_aware(lesson.start_time),
        end=ensure_aware(lesson.end_time),
        status=lesson.status,
        duration_minutes=lesson.duration_minutes,
        source="lesson",
        source_id=lesson.id,
    )


def hold_to_interval(lesson: Lesson) -> Optional[BookedInterval]:
    """The window a pending proposal reserves until it is accepted or rejected."""
    proposal = lesson.reschedule_proposal
    if lesson.status != LessonStatus.PENDING_RESCHEDULE.value or proposal is None:
        return None
    if proposal.status != ProposalStatus.PENDING.value:
        return None
    return BookedInterval(
        start=ensure_aware(proposal.proposed_start_time),
        end=ensure_aware(proposal.proposed_end_time),
        status=LessonStatus.PENDING_RESCHEDULE.value,
        duration_minutes=_minutes_between(proposal.proposed_start_time, proposal.proposed_end_time),
        source="hold",
        source_id=lesson.id,
    )


def class_to_interval(group_class: GroupClass) -> BookedInterval:
    return BookedInterval(
        start=ensure_aware(group_class.start_time),
        end=ensure_aware(group_class.end_time),
        status=group_class.status,
        duration_minutes=group_class.duration_minutes,
        source="class",
        source_id=group_class.id,
    )


def _lesson_window(start: datetime, end: datetime):
    """Lessons near the range, plus every pending proposal whose hold may fall inside it."""
    return or_(
        and_(Lesson.start_time < to_utc(end), Lesson.end_time > to_utc(start - _MAX_BUFFER)),
        Lesson.status == LessonStatus.PENDING_RESCHEDULE.value,
    )


def _overlaps(interval: BookedInterval, start: datetime, end: datetime) -> bool:
    return interval.start < end and interval.end + _MAX_BUFFER > start


class BookingRepository(BaseRepository[Lesson]):
    """Repository for booked time of tutors and students."""

    def __init__(self, db: Session):
        super().__init__(db, Lesson)

    def get_bookings_for_tutor(
        self,
        tutor_id: str,
        start: datetime,
        end: datetime,
        exclude_lesson_id: Optional[str] = None,
    ) -> List[BookedInterval]:
        """
        Lessons, reschedule holds and non-cancelled classes of a tutor near a range.

        Args:
            tutor_id: The tutor ID
            start: Range start (aware or UTC-naive)
            end: Range end
            exclude_lesson_id: Lesson whose own interval and hold are left out

        Returns:
            Booked intervals, lessons first then holds then classes
        """
        try:
            lesson_query = (
                self.db.query(Lesson)
                .options(selectinload(Lesson.reschedule_proposal))
                .filter(Lesson.tutor_id == tutor_id)
                .filter(_lesson_window(start, end))
            )
            if exclude_lesson_id:
                lesson_query = lesson_query.filter(Lesson.id != exclude_lesson_id)
            lessons = lesson_query.order_by(Lesson.start_time).all()

            classes = (
                self.db.query(GroupClass)
                .filter(
                    GroupClass.tutor_id == tutor_id,
                    GroupClass.status != ClassStatus.CANCELLED.value,
                    GroupClass.start_time < to_utc(end),
                    GroupClass.end_time > to_utc(start - _MAX_BUFFER),
                )
                .order_by(GroupClass.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for tutor {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to get tutor bookings: {str(e)}")

        intervals = self._lesson_intervals(lessons, start, end)
        intervals.extend(class_to_interval(group_class) for group_class in classes)
        logger.debug(
            "tutor_bookings_loaded",
            extra={"tutor_id": tutor_id, "lessons": len(lessons), "classes": len(classes)},
        )
        return intervals

    def get_bookings_for_student(
        self,
        student_id: str,
        start: datetime,
        end: datetime,
        exclude_lesson_id: Optional[str] = None,
    ) -> List[BookedInterval]:
        """Lessons, reschedule holds and non-cancelled attended classes of a student."""
        try:
            lesson_query = (
                self.db.query(Lesson)
                .options(selectinload(Lesson.reschedule_proposal))
                .filter(Lesson.student_id == student_id)
                .filter(_lesson_window(start, end))
            )
            if exclude_lesson_id:
                lesson_query = lesson_query.filter(Lesson.id != exclude_lesson_id)
            lessons = lesson_query.order_by(Lesson.start_time).all()

            classes = (
                self.db.query(GroupClass)
                .join(ClassAttendee, ClassAttendee.class_id == GroupClass.id)
                .filter(
                    ClassAttendee.student_id == student_id,
                    GroupClass.status != ClassStatus.CANCELLED.value,
                    GroupClass.start_time < to_utc(end),
                    GroupClass.end_time > to_utc(start - _MAX_BUFFER),
                )
                .order_by(GroupClass.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for student {student_id}: {str(e)}")
            raise RepositoryException(f"Failed to get student bookings: {str(e)}")

        intervals = self._lesson_intervals(lessons, start, end)
        intervals.extend(class_to_interval(group_class) for group_class in classes)
        return intervals

    @staticmethod
    def _lesson_intervals(lessons: List[Lesson], start: datetime, end: datetime) -> List[BookedInterval]:
        # Holds live outside the lesson's own time, so the range check runs after loading
        start, end = ensure_aware(start), ensure_aware(end)
        intervals: List[BookedInterval] = []
        holds: List[BookedInterval] = []
        for lesson in lessons:
            interval = lesson_to_interval(lesson)
            if _overlaps(interval, start, end):
                intervals.append(interval)
            hold = hold_to_interval(lesson)
            if hold is not None and _overlaps(hold, start, end):
                holds.append(hold)
        return intervals + holds
