# backend/availability_engine/services/reschedule_service.py
"""
Reschedule Service for the availability engine

Runs negotiation transitions for one lesson:
- Per-lesson Redis lock, then a row-locked re-read inside one transaction
- Participant checks (only the tutor or the student may negotiate, and
  nobody answers their own proposal)
- Booking collision check for proposed windows
"""

from datetime import datetime
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import LessonStatus, ProposalStatus
from ..core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    LockContentionException,
    NotFoundException,
)
from ..core.lesson_lock import lesson_lock
from ..domain.types import LessonSnapshot
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.lesson_repository import LessonRepository
from .base import BaseService
from .conflict_checker import ConflictChecker
from .reschedule_negotiator import RescheduleNegotiator

logger = logging.getLogger(__name__)


class RescheduleService(BaseService):
    """
    Service for lesson reschedule negotiation.

    The state machine itself lives in RescheduleNegotiator; this service
    adds locking, authorization and collision checks around it.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[LessonRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db)
        self.clock = clock or Clock()
        self.repository = repository or RepositoryFactory.create_lesson_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, clock=self.clock)
        self.negotiator = RescheduleNegotiator(self.repository, self.clock)

    @BaseService.measure_operation("propose_reschedule")
    def propose(
        self,
        lesson_id: str,
        actor_id: str,
        new_start: datetime,
        new_end: Optional[datetime] = None,
    ) -> LessonSnapshot:
        """
        Propose a new time for a scheduled lesson.

        Args:
            lesson_id: The lesson to move
            actor_id: Tutor or student making the proposal
            new_start: Proposed start
            new_end: Proposed end; defaults to the lesson's current length

        Returns:
            The lesson, now pending_reschedule with the proposal attached

        Raises:
            ForbiddenException: Actor is not a participant
            InvalidStateException: Lesson is not scheduled or start is past
            BookingConflictException: The window collides with another booking
            LockContentionException: Another change holds the lesson lock
        """

        def apply(lesson: LessonSnapshot) -> LessonSnapshot:
            self._require_participant(lesson, actor_id)
            start, end = self._window(lesson, new_start, new_end)
            if lesson.status is LessonStatus.SCHEDULED:
                self._require_free(lesson, start, end, "propose")
            return self.negotiator.propose(lesson.id, start, end, actor_id)

        return self._run(lesson_id, "propose", apply)

    @BaseService.measure_operation("accept_reschedule")
    def accept(self, lesson_id: str, actor_id: str) -> LessonSnapshot:
        """Accept the other participant's pending proposal."""

        def apply(lesson: LessonSnapshot) -> LessonSnapshot:
            self._require_participant(lesson, actor_id)
            self._require_responder(lesson, actor_id)
            return self.negotiator.accept(lesson.id)

        return self._run(lesson_id, "accept", apply)

    @BaseService.measure_operation("reject_reschedule")
    def reject(self, lesson_id: str, actor_id: str) -> LessonSnapshot:
        """Reject the other participant's pending proposal; the original time stands."""

        def apply(lesson: LessonSnapshot) -> LessonSnapshot:
            self._require_participant(lesson, actor_id)
            self._require_responder(lesson, actor_id)
            return self.negotiator.reject(lesson.id)

        return self._run(lesson_id, "reject", apply)

    @BaseService.measure_operation("counter_reschedule")
    def counter(
        self,
        lesson_id: str,
        actor_id: str,
        new_start: datetime,
        new_end: Optional[datetime] = None,
    ) -> LessonSnapshot:
        """Replace the other participant's pending proposal with a new window."""

        def apply(lesson: LessonSnapshot) -> LessonSnapshot:
            self._require_participant(lesson, actor_id)
            self._require_responder(lesson, actor_id)
            start, end = self._window(lesson, new_start, new_end)
            if lesson.status is LessonStatus.PENDING_RESCHEDULE:
                self._require_free(lesson, start, end, "counter")
            return self.negotiator.counter(lesson.id, start, end, actor_id)

        return self._run(lesson_id, "counter", apply)

    # Helpers

    def _run(
        self,
        lesson_id: str,
        transition: str,
        apply: Callable[[LessonSnapshot], LessonSnapshot],
    ) -> LessonSnapshot:
        with lesson_lock(lesson_id) as acquired:
            if not acquired:
                prometheus_metrics.record_reschedule_transition(transition, "locked")
                self.logger.warning(
                    "reschedule_lock_contention",
                    extra={"lesson_id": lesson_id, "transition": transition},
                )
                raise LockContentionException(lesson_id)

            with self.transaction():
                lesson = self.repository.get_lesson(lesson_id, for_update=True)
                if lesson is None:
                    raise NotFoundException(
                        "Lesson not found", code="LESSON_NOT_FOUND", details={"lesson_id": lesson_id}
                    )
                return apply(lesson)

    @staticmethod
    def _require_participant(lesson: LessonSnapshot, actor_id: str) -> None:
        if actor_id not in (lesson.tutor_id, lesson.student_id):
            raise ForbiddenException(
                "Only the lesson's tutor or student can reschedule it",
                code="NOT_A_PARTICIPANT",
                details={"lesson_id": lesson.id},
            )

    @staticmethod
    def _require_responder(lesson: LessonSnapshot, actor_id: str) -> None:
        proposal = lesson.proposal
        if proposal is not None and proposal.status is ProposalStatus.PENDING and proposal.proposed_by == actor_id:
            raise ForbiddenException(
                "You cannot respond to your own reschedule proposal",
                code="OWN_PROPOSAL",
                details={"lesson_id": lesson.id},
            )

    @staticmethod
    def _window(
        lesson: LessonSnapshot, new_start: datetime, new_end: Optional[datetime]
    ) -> tuple[datetime, datetime]:
        if new_end is None:
            new_end = new_start + (lesson.end_time - lesson.start_time)
        return RescheduleNegotiator.validate_window(new_start, new_end)

    def _require_free(
        self, lesson: LessonSnapshot, start: datetime, end: datetime, transition: str
    ) -> None:
        if not settings.reschedule_requires_free_slot:
            return
        conflicts = self.conflict_checker.find_conflicts(
            lesson.tutor_id, start, end, exclude_lesson_id=lesson.id
        )
        if conflicts:
            prometheus_metrics.record_reschedule_transition(transition, "conflict")
            raise BookingConflictException(
                details={
                    "lesson_id": lesson.id,
                    "conflicts": [
                        {
                            "source": interval.source,
                            "source_id": interval.source_id,
                            "start_time": interval.start.isoformat(),
                            "end_time": interval.end.isoformat(),
                        }
                        for interval in conflicts
                    ],
                }
            )
