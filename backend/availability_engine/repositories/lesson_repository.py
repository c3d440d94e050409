# backend/availability_engine/repositories/lesson_repository.py
"""
Lesson Repository

The lesson store used by reschedule negotiation. Each operation touches a
single lesson (and its proposal row) and flushes without committing; the
reschedule service owns the transaction.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import LessonStatus, ProposalStatus
from ..core.exceptions import NotFoundException, RepositoryException
from ..core.timezone_utils import ensure_aware
from ..domain.types import LessonSnapshot, RescheduleProposal
from ..models.lesson import Lesson, LessonRescheduleProposal
from .base_repository import BaseRepository, to_utc

logger = logging.getLogger(__name__)


def lesson_to_snapshot(lesson: Lesson) -> LessonSnapshot:
    proposal = None
    row = lesson.reschedule_proposal
    if row is not None:
        proposal = RescheduleProposal(
            proposed_start_time=ensure_aware(row.proposed_start_time),
            proposed_end_time=ensure_aware(row.proposed_end_time),
            proposed_by=row.proposed_by,
            status=ProposalStatus(row.status),
            proposed_at=ensure_aware(row.proposed_at) if row.proposed_at else None,
        )
    return LessonSnapshot(
        id=lesson.id,
        tutor_id=lesson.tutor_id,
        student_id=lesson.student_id,
        start_time=ensure_aware(lesson.start_time),
        end_time=ensure_aware(lesson.end_time),
        duration_minutes=lesson.duration_minutes,
        status=LessonStatus(lesson.status),
        proposal=proposal,
    )


class LessonRepository(BaseRepository[Lesson]):
    """Repository for single-lesson reads and writes."""

    def __init__(self, db: Session):
        super().__init__(db, Lesson)

    def get_lesson(self, lesson_id: str, *, for_update: bool = False) -> Optional[LessonSnapshot]:
        """
        Read a lesson and its proposal.

        Args:
            lesson_id: The lesson ID
            for_update: Take a row lock (SELECT ... FOR UPDATE) for the transaction

        Returns:
            Snapshot of the lesson, or None if it does not exist
        """
        lesson = self._load(lesson_id, for_update=for_update)
        return lesson_to_snapshot(lesson) if lesson is not None else None

    def update_lesson_time(self, lesson_id: str, start: datetime, end: datetime) -> None:
        lesson = self._require(lesson_id)
        lesson.start_time = to_utc(start)
        lesson.end_time = to_utc(end)
        self.flush()

    def set_lesson_status(self, lesson_id: str, status: LessonStatus) -> None:
        lesson = self._require(lesson_id)
        lesson.status = getattr(status, "value", status)
        self.flush()

    def set_reschedule_proposal(
        self, lesson_id: str, proposal: Optional[RescheduleProposal]
    ) -> None:
        """Replace (or with None, remove) the lesson's single proposal row."""
        lesson = self._require(lesson_id)
        if proposal is None:
            lesson.reschedule_proposal = None
            self.flush()
            return

        row = lesson.reschedule_proposal
        if row is None:
            row = LessonRescheduleProposal(lesson_id=lesson.id)
            lesson.reschedule_proposal = row
        row.proposed_start_time = to_utc(proposal.proposed_start_time)
        row.proposed_end_time = to_utc(proposal.proposed_end_time)
        row.proposed_by = proposal.proposed_by
        row.status = getattr(proposal.status, "value", proposal.status)
        if proposal.proposed_at is not None:
            row.proposed_at = to_utc(proposal.proposed_at)
        self.flush()

    def _load(self, lesson_id: str, *, for_update: bool = False) -> Optional[Lesson]:
        try:
            query = self.db.query(Lesson).filter(Lesson.id == lesson_id)
            if for_update:
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting lesson {lesson_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve lesson: {str(e)}")

    def _require(self, lesson_id: str) -> Lesson:
        lesson = self._load(lesson_id)
        if lesson is None:
            raise NotFoundException("Lesson not found", code="LESSON_NOT_FOUND", details={"lesson_id": lesson_id})
        return lesson
