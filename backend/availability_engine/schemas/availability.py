# backend/availability_engine/schemas/availability.py
"""
Availability block and slot schemas.

Blocks travel as local wall-clock "HH:mm" strings with a Sunday-first
weekday. Block ends are exclusive and may be "24:00".
"""

import datetime
import re
from typing import Any, List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.enums import BlockType
from ..domain.types import AvailabilityBlock, ComputedSlot
from ._strict_base import StrictModel, StrictRequestModel

# Type aliases for clarity
DateType = datetime.date
DateTimeType = datetime.datetime

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class AvailabilityBlockIn(StrictRequestModel):
    """A block as submitted by the availability editor."""

    id: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Block id; one-off blocks may use a 'YYYY-MM-DD-' prefix. Generated when omitted.",
    )
    day: int = Field(..., ge=0, le=6, description="Weekday, Sunday = 0")
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["17:00"])
    type: BlockType = BlockType.AVAILABLE
    absolute_start: Optional[DateTimeType] = None
    absolute_end: Optional[DateTimeType] = None

    @field_validator("start_time")
    @classmethod
    def validate_start_format(cls, v: str) -> str:
        if not _HHMM.match(v):
            raise ValueError("start_time must be HH:mm (24-hour, zero-padded)")
        return v

    @field_validator("end_time")
    @classmethod
    def validate_end_format(cls, v: str) -> str:
        if v != "24:00" and not _HHMM.match(v):
            raise ValueError("end_time must be HH:mm (24-hour, zero-padded) or 24:00")
        return v

    @model_validator(mode="after")
    def validate_ranges(self) -> "AvailabilityBlockIn":
        if self.end_time != "24:00" and self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        if (self.absolute_start is None) != (self.absolute_end is None):
            raise ValueError("absolute_start and absolute_end must be given together")
        return self


class AvailabilityBlockOut(StrictModel):
    id: str
    day: int
    start_time: str
    end_time: str
    type: BlockType
    absolute_start: Optional[DateTimeType] = None
    absolute_end: Optional[DateTimeType] = None

    @classmethod
    def from_domain(cls, block: AvailabilityBlock) -> "AvailabilityBlockOut":
        return cls(
            id=block.id,
            day=block.day,
            start_time=block.start_time,
            end_time=block.end_time,
            type=block.type,
            absolute_start=block.absolute_start,
            absolute_end=block.absolute_end,
        )


class AvailabilityWeekSave(StrictRequestModel):
    """Blocks of an edited week, merged into the stored list by date."""

    blocks: List[AvailabilityBlockIn] = Field(default_factory=list)
    replace_dates: List[DateType] = Field(
        default_factory=list,
        description="Dates whose existing one-off blocks are cleared even if no new block covers them",
    )


class SelectedCell(StrictRequestModel):
    day: int = Field(..., ge=0, le=6, description="Weekday, Sunday = 0")
    slot_index: int = Field(..., ge=0, le=47)


class AvailabilitySelectionSave(StrictRequestModel):
    """Editor selection for one Sunday-first week."""

    week_start: DateType
    cells: List[SelectedCell] = Field(default_factory=list)

    @field_validator("week_start")
    @classmethod
    def validate_week_start(cls, v: DateType) -> DateType:
        if v.isoweekday() != 7:
            raise ValueError("week_start must be a Sunday")
        return v


class AvailabilityResponse(StrictModel):
    tutor_id: str
    blocks: List[AvailabilityBlockOut]


class SlotOut(StrictModel):
    slot_index: int
    time: str
    available: bool
    booked: bool
    is_past: bool
    bookable: bool

    @classmethod
    def from_domain(cls, slot: ComputedSlot) -> "SlotOut":
        return cls(
            slot_index=slot.slot_index,
            time=slot.label,
            available=slot.available,
            booked=slot.booked,
            is_past=slot.is_past,
            bookable=slot.bookable,
        )


class DaySlotsResponse(StrictModel):
    tutor_id: str
    date: DateType
    duration: Optional[int] = None
    timezone: str
    slots: List[SlotOut]


class WeekSlotsResponse(StrictModel):
    tutor_id: str
    week_start: DateType
    duration: Optional[int] = None
    timezone: str
    days: List[DaySlotsResponse]


def blocks_from_payload(items: List[AvailabilityBlockIn], generate_id: Any) -> List[AvailabilityBlock]:
    """Map request blocks to domain blocks, filling missing ids with ``generate_id(item)``."""
    return [
        AvailabilityBlock(
            id=item.id or generate_id(item),
            day=item.day,
            start_time=item.start_time,
            end_time=item.end_time,
            type=item.type,
            absolute_start=item.absolute_start,
            absolute_end=item.absolute_end,
        )
        for item in items
    ]
