# backend/availability_engine/routes/v1/availability.py
"""
Tutor availability routes - API v1

Versioned availability endpoints under /api/v1/tutors.
All business logic delegated to AvailabilityService.

Endpoints:
    GET /{tutor_id}/availability - Stored blocks (legacy and stale filtered)
    PUT /{tutor_id}/availability - Save an edited week (merge by date)
    PUT /{tutor_id}/availability/selection - Save an editor selection
    GET /{tutor_id}/slots - Computed slots for one date
    GET /{tutor_id}/slots/week - Computed slots for seven days
    GET /{tutor_id}/slots/mutual - Slots free for the tutor and a student
"""

import asyncio
from datetime import date
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status
import ulid

from ...api.dependencies import get_availability_service
from ...core.exceptions import DomainException
from ...core.timezone_utils import local_date
from ...schemas.availability import (
    AvailabilityBlockIn,
    AvailabilityBlockOut,
    AvailabilityResponse,
    AvailabilitySelectionSave,
    AvailabilityWeekSave,
    DaySlotsResponse,
    SlotOut,
    WeekSlotsResponse,
    blocks_from_payload,
)
from ...services.availability_service import AvailabilityService
from ...utils.weekday import week_dates

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["availability-v1"])

TUTOR_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _availability_response(tutor_id: str, blocks) -> AvailabilityResponse:
    return AvailabilityResponse(
        tutor_id=tutor_id,
        blocks=[AvailabilityBlockOut.from_domain(block) for block in blocks],
    )


@router.get("/{tutor_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    tutor_id: str = Path(..., pattern=TUTOR_ID_PATTERN),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    """Get a tutor's availability blocks."""
    try:
        blocks = await asyncio.to_thread(availability_service.get_blocks, tutor_id)
        return _availability_response(tutor_id, blocks)
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/{tutor_id}/availability",
    response_model=AvailabilityResponse,
    responses={400: {"description": "Invalid block"}, 503: {"description": "Store unavailable"}},
)
async def save_availability(
    tutor_id: str = Path(..., pattern=TUTOR_ID_PATTERN),
    payload: AvailabilityWeekSave = Body(...),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    """
    Save an edited week.

    One-off blocks replace the stored one-off blocks of the same dates;
    recurring blocks and other dates are kept.
    """
    tz = availability_service.clock.tz

    def generate_id(item: AvailabilityBlockIn) -> str:
        if item.absolute_start is not None:
            return f"{local_date(item.absolute_start, tz).isoformat()}-{ulid.ULID()}"
        return str(ulid.ULID())

    try:
        blocks = blocks_from_payload(payload.blocks, generate_id)
        saved = await asyncio.to_thread(
            availability_service.save_week, tutor_id, blocks, payload.replace_dates
        )
        return _availability_response(tutor_id, saved)
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/{tutor_id}/availability/selection", response_model=AvailabilityResponse)
async def save_availability_selection(
    tutor_id: str = Path(..., pattern=TUTOR_ID_PATTERN),
    payload: AvailabilitySelectionSave = Body(...),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    """Encode an editor selection into date-pinned blocks and save its week."""
    try:
        cells = [(cell.day, cell.slot_index) for cell in payload.cells]
        saved = await asyncio.to_thread(
            availability_service.save_selection, tutor_id, cells, week_dates(payload.week_start)
        )
        return _availability_response(tutor_id, saved)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{tutor_id}/slots", response_model=DaySlotsResponse)
async def get_slots_for_date(
    tutor_id: str = Path(..., pattern=TUTOR_ID_PATTERN),
    target_date: date = Query(..., alias="date"),
    duration: Optional[int] = Query(None, ge=1, le=24 * 60, description="Lesson length in minutes"),
    include_unbookable: bool = Query(False, description="Return every slot with its flags"),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> DaySlotsResponse:
    """Get computed slots for one date in the viewer's timezone."""
    try:
        slots = await asyncio.to_thread(
            availability_service.compute_slots_for_date,
            tutor_id,
            target_date,
            duration,
            include_unbookable,
        )
        return DaySlotsResponse(
            tutor_id=tutor_id,
            date=target_date,
            duration=duration,
            timezone=availability_service.clock.timezone_name,
            slots=[SlotOut.from_domain(slot) for slot in slots],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{tutor_id}/slots/week", response_model=WeekSlotsResponse)
async def get_week_slots(
    tutor_id: str = Path(..., pattern=TUTOR_ID_PATTERN),
    week_start: date = Query(...),
    duration: Optional[int] = Query(None, ge=1, le=24 * 60),
    include_unbookable: bool = Query(False),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> WeekSlotsResponse:
    """Get computed slots for the seven days starting at ``week_start``."""
    try:
        by_day = await asyncio.to_thread(
            availability_service.compute_week_slots,
            tutor_id,
            week_start,
            duration,
            include_unbookable,
        )
        timezone_name = availability_service.clock.timezone_name
        return WeekSlotsResponse(
            tutor_id=tutor_id,
            week_start=week_start,
            duration=duration,
            timezone=timezone_name,
            days=[
                DaySlotsResponse(
                    tutor_id=tutor_id,
                    date=day,
                    duration=duration,
                    timezone=timezone_name,
                    slots=[SlotOut.from_domain(slot) for slot in slots],
                )
                for day, slots in by_day.items()
            ],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{tutor_id}/slots/mutual", response_model=DaySlotsResponse)
async def get_mutual_slots(
    tutor_id: str = Path(..., pattern=TUTOR_ID_PATTERN),
    student_id: str = Query(..., pattern=TUTOR_ID_PATTERN),
    target_date: date = Query(..., alias="date"),
    duration: Optional[int] = Query(None, ge=1, le=24 * 60),
    exclude_lesson_id: Optional[str] = Query(None, description="Lesson being rescheduled"),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> DaySlotsResponse:
    """Get slots of one date that neither the tutor nor the student has booked."""
    try:
        slots = await asyncio.to_thread(
            availability_service.compute_mutual_slots,
            tutor_id,
            student_id,
            target_date,
            duration,
            exclude_lesson_id,
        )
        return DaySlotsResponse(
            tutor_id=tutor_id,
            date=target_date,
            duration=duration,
            timezone=availability_service.clock.timezone_name,
            slots=[SlotOut.from_domain(slot) for slot in slots],
        )
    except DomainException as e:
        handle_domain_exception(e)
