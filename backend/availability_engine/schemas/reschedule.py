# backend/availability_engine/schemas/reschedule.py
"""Reschedule negotiation request and lesson response schemas."""

import datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from ..core.enums import LessonStatus, ProposalStatus
from ..domain.types import LessonSnapshot
from ._strict_base import StrictModel, StrictRequestModel

DateTimeType = datetime.datetime


class RescheduleActionRequest(StrictRequestModel):
    """Accept or reject a pending proposal."""

    actor_id: str = Field(..., min_length=1, max_length=64, description="Tutor or student responding")


class RescheduleProposeRequest(RescheduleActionRequest):
    """Propose (or counter with) a new lesson window."""

    proposed_start_time: DateTimeType
    proposed_end_time: Optional[DateTimeType] = Field(
        default=None, description="Defaults to the start plus the lesson's current length"
    )

    @field_validator("proposed_end_time")
    @classmethod
    def validate_time_order(cls, v: Optional[DateTimeType], info: Any) -> Optional[DateTimeType]:
        """Ensure end time is after start time when both are naive or both aware."""
        start = info.data.get("proposed_start_time") if isinstance(getattr(info, "data", None), dict) else None
        if v is not None and start is not None and (v.tzinfo is None) == (start.tzinfo is None) and v <= start:
            raise ValueError("proposed_end_time must be after proposed_start_time")
        return v


class RescheduleProposalOut(StrictModel):
    proposed_start_time: DateTimeType
    proposed_end_time: DateTimeType
    proposed_by: str
    status: ProposalStatus
    proposed_at: Optional[DateTimeType] = None


class LessonResponse(StrictModel):
    id: str
    tutor_id: str
    student_id: str
    start_time: DateTimeType
    end_time: DateTimeType
    duration_minutes: int
    status: LessonStatus
    reschedule_proposal: Optional[RescheduleProposalOut] = None

    @classmethod
    def from_domain(cls, lesson: LessonSnapshot) -> "LessonResponse":
        proposal = lesson.proposal
        return cls(
            id=lesson.id,
            tutor_id=lesson.tutor_id,
            student_id=lesson.student_id,
            start_time=lesson.start_time,
            end_time=lesson.end_time,
            duration_minutes=lesson.duration_minutes,
            status=lesson.status,
            reschedule_proposal=(
                RescheduleProposalOut(
                    proposed_start_time=proposal.proposed_start_time,
                    proposed_end_time=proposal.proposed_end_time,
                    proposed_by=proposal.proposed_by,
                    status=proposal.status,
                    proposed_at=proposal.proposed_at,
                )
                if proposal is not None
                else None
            ),
        )
