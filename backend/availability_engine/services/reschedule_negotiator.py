"""
Reschedule negotiation state machine.

    scheduled --propose--> pending_reschedule --accept--> scheduled (new time)
                                              --reject--> scheduled (original time)
                                              --counter-> pending_reschedule (new proposal)

The negotiator validates everything before its first write, so a rejected
transition leaves the lesson untouched. Callers run each transition under a
per-lesson lock and a single transaction.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import logging
from typing import Optional, Protocol

from ..core.clock import Clock
from ..core.enums import LessonStatus, ProposalStatus
from ..core.exceptions import InvalidStateException, NotFoundException, ValidationException
from ..core.timezone_utils import ensure_aware
from ..domain.types import LessonSnapshot, RescheduleProposal
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


class LessonStore(Protocol):
    """Atomic single-record lesson operations."""

    def get_lesson(self, lesson_id: str) -> Optional[LessonSnapshot]: ...

    def update_lesson_time(self, lesson_id: str, start: datetime, end: datetime) -> None: ...

    def set_lesson_status(self, lesson_id: str, status: LessonStatus) -> None: ...

    def set_reschedule_proposal(
        self, lesson_id: str, proposal: Optional[RescheduleProposal]
    ) -> None: ...


class RescheduleNegotiator:
    def __init__(self, store: LessonStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or Clock()

    def propose(
        self, lesson_id: str, new_start: datetime, new_end: datetime, proposer: str
    ) -> LessonSnapshot:
        lesson = self._load(lesson_id)
        new_start, new_end = self.validate_window(new_start, new_end)
        self._require_status(lesson, LessonStatus.SCHEDULED, "propose")
        self._require_future(lesson, new_start, "propose")

        self._write_proposal(lesson, new_start, new_end, proposer)
        self.store.set_lesson_status(lesson.id, LessonStatus.PENDING_RESCHEDULE)
        return self._done("propose", lesson.id)

    def accept(self, lesson_id: str) -> LessonSnapshot:
        lesson = self._load(lesson_id)
        proposal = self._require_pending_proposal(lesson, "accept")

        self.store.update_lesson_time(
            lesson.id, proposal.proposed_start_time, proposal.proposed_end_time
        )
        self.store.set_lesson_status(lesson.id, LessonStatus.SCHEDULED)
        self.store.set_reschedule_proposal(lesson.id, replace(proposal, status=ProposalStatus.ACCEPTED))
        return self._done("accept", lesson.id)

    def reject(self, lesson_id: str) -> LessonSnapshot:
        lesson = self._load(lesson_id)
        self._require_pending_proposal(lesson, "reject")

        self.store.set_lesson_status(lesson.id, LessonStatus.SCHEDULED)
        self.store.set_reschedule_proposal(lesson.id, None)
        return self._done("reject", lesson.id)

    def counter(
        self, lesson_id: str, new_start: datetime, new_end: datetime, proposer: str
    ) -> LessonSnapshot:
        """Reject the pending proposal and propose a new window in one step."""
        lesson = self._load(lesson_id)
        new_start, new_end = self.validate_window(new_start, new_end)
        self._require_pending_proposal(lesson, "counter")
        self._require_future(lesson, new_start, "counter")

        # Status stays pending_reschedule; only the proposal is replaced
        self._write_proposal(lesson, new_start, new_end, proposer)
        return self._done("counter", lesson.id)

    # Helpers

    def _load(self, lesson_id: str) -> LessonSnapshot:
        lesson = self.store.get_lesson(lesson_id)
        if lesson is None:
            raise NotFoundException("Lesson not found", code="LESSON_NOT_FOUND", details={"lesson_id": lesson_id})
        return lesson

    def _done(self, transition: str, lesson_id: str) -> LessonSnapshot:
        prometheus_metrics.record_reschedule_transition(transition, "success")
        logger.info("reschedule_%s", transition, extra={"lesson_id": lesson_id})
        return self._load(lesson_id)

    def _reject_transition(self, transition: str, lesson: LessonSnapshot, message: str, **kwargs) -> None:
        prometheus_metrics.record_reschedule_transition(transition, "invalid_state")
        logger.warning(
            "reschedule_invalid_state",
            extra={"lesson_id": lesson.id, "transition": transition, "status": lesson.status.value},
        )
        raise InvalidStateException(message, current_status=lesson.status.value, **kwargs)

    def _require_status(self, lesson: LessonSnapshot, expected: LessonStatus, transition: str) -> None:
        if lesson.status is not expected:
            self._reject_transition(
                transition,
                lesson,
                f"Cannot {transition} a reschedule for a lesson that is {lesson.status.value}",
            )

    def _require_pending_proposal(self, lesson: LessonSnapshot, transition: str) -> RescheduleProposal:
        self._require_status(lesson, LessonStatus.PENDING_RESCHEDULE, transition)
        proposal = lesson.proposal
        if proposal is None or proposal.status is not ProposalStatus.PENDING:
            self._reject_transition(transition, lesson, "This lesson has no pending reschedule proposal")
        return proposal

    def _require_future(self, lesson: LessonSnapshot, new_start: datetime, transition: str) -> None:
        if new_start < self.clock.now():
            self._reject_transition(
                transition,
                lesson,
                "A lesson cannot be rescheduled into the past",
                code="RESCHEDULE_IN_PAST",
                details={"proposed_start_time": new_start.isoformat()},
            )

    @staticmethod
    def validate_window(new_start: datetime, new_end: datetime) -> tuple[datetime, datetime]:
        new_start, new_end = ensure_aware(new_start), ensure_aware(new_end)
        if new_end <= new_start:
            raise ValidationException(
                "Proposed end time must be after the proposed start time",
                code="INVALID_TIME_RANGE",
                details={"proposed_start_time": new_start.isoformat(), "proposed_end_time": new_end.isoformat()},
            )
        return new_start, new_end

    def _write_proposal(
        self, lesson: LessonSnapshot, new_start: datetime, new_end: datetime, proposer: str
    ) -> None:
        self.store.set_reschedule_proposal(
            lesson.id,
            RescheduleProposal(
                proposed_start_time=new_start,
                proposed_end_time=new_end,
                proposed_by=proposer,
                status=ProposalStatus.PENDING,
                proposed_at=self.clock.now(),
            ),
        )
