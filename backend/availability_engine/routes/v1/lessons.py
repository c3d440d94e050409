# backend/availability_engine/routes/v1/lessons.py
"""
Lesson reschedule routes - API v1

Versioned negotiation endpoints under /api/v1/lessons.
All business logic delegated to RescheduleService.

Endpoints:
    POST /{lesson_id}/reschedule - Propose a new time
    POST /{lesson_id}/reschedule/accept - Accept the pending proposal
    POST /{lesson_id}/reschedule/reject - Reject the pending proposal
    POST /{lesson_id}/reschedule/counter - Replace the pending proposal
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, Path

from ...api.dependencies import get_reschedule_service
from ...core.exceptions import DomainException
from ...schemas.reschedule import LessonResponse, RescheduleActionRequest, RescheduleProposeRequest
from ...services.reschedule_service import RescheduleService
from .availability import handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["lessons-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"

NEGOTIATION_RESPONSES = {
    403: {"description": "Not a participant, or responding to own proposal"},
    404: {"description": "Lesson not found"},
    409: {"description": "Wrong lesson state, lock contention or time conflict"},
    503: {"description": "Lesson store unavailable"},
}


@router.post("/{lesson_id}/reschedule", response_model=LessonResponse, responses=NEGOTIATION_RESPONSES)
async def propose_reschedule(
    lesson_id: str = Path(..., description="Lesson ULID", pattern=ULID_PATH_PATTERN),
    payload: RescheduleProposeRequest = Body(...),
    reschedule_service: RescheduleService = Depends(get_reschedule_service),
) -> LessonResponse:
    """Propose a new time; the original slot stays booked until the proposal resolves."""
    try:
        lesson = await asyncio.to_thread(
            reschedule_service.propose,
            lesson_id,
            payload.actor_id,
            payload.proposed_start_time,
            payload.proposed_end_time,
        )
        return LessonResponse.from_domain(lesson)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{lesson_id}/reschedule/accept", response_model=LessonResponse, responses=NEGOTIATION_RESPONSES)
async def accept_reschedule(
    lesson_id: str = Path(..., description="Lesson ULID", pattern=ULID_PATH_PATTERN),
    payload: RescheduleActionRequest = Body(...),
    reschedule_service: RescheduleService = Depends(get_reschedule_service),
) -> LessonResponse:
    """Accept the pending proposal; the lesson moves to the proposed time."""
    try:
        lesson = await asyncio.to_thread(reschedule_service.accept, lesson_id, payload.actor_id)
        return LessonResponse.from_domain(lesson)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{lesson_id}/reschedule/reject", response_model=LessonResponse, responses=NEGOTIATION_RESPONSES)
async def reject_reschedule(
    lesson_id: str = Path(..., description="Lesson ULID", pattern=ULID_PATH_PATTERN),
    payload: RescheduleActionRequest = Body(...),
    reschedule_service: RescheduleService = Depends(get_reschedule_service),
) -> LessonResponse:
    """Reject the pending proposal; the lesson keeps its original time."""
    try:
        lesson = await asyncio.to_thread(reschedule_service.reject, lesson_id, payload.actor_id)
        return LessonResponse.from_domain(lesson)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{lesson_id}/reschedule/counter", response_model=LessonResponse, responses=NEGOTIATION_RESPONSES)
async def counter_reschedule(
    lesson_id: str = Path(..., description="Lesson ULID", pattern=ULID_PATH_PATTERN),
    payload: RescheduleProposeRequest = Body(...),
    reschedule_service: RescheduleService = Depends(get_reschedule_service),
) -> LessonResponse:
    """Replace the other side's pending proposal with a new window."""
    try:
        lesson = await asyncio.to_thread(
            reschedule_service.counter,
            lesson_id,
            payload.actor_id,
            payload.proposed_start_time,
            payload.proposed_end_time,
        )
        return LessonResponse.from_domain(lesson)
    except DomainException as e:
        handle_domain_exception(e)
