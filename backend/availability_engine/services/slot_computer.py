"""
Slot computation: bookable slots for a date.

Combines declared availability with the booked-key index. Past slots are
still emitted (flagged ``is_past``) so the caller can grey them out.
"""

from __future__ import annotations

from datetime import date, timedelta
import logging
import math
from typing import List, Optional, Sequence, Set

from ..core.clock import Clock
from ..core.constants import SLOT_MINUTES, SLOTS_PER_DAY
from ..core.exceptions import ValidationException
from ..domain.types import AvailabilityBlock, ComputedSlot, SlotOptions
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..utils.time_grid import slot_datetime, slot_index_to_label, validate_slot_index
from .availability_resolver import AvailabilityResolver
from .booking_index import buffer_minutes, slot_keys

logger = logging.getLogger(__name__)


def required_steps(duration_minutes: int) -> int:
    """Number of 30-minute slots a booking of ``duration_minutes`` spans, buffer included."""
    return math.ceil((duration_minutes + buffer_minutes(duration_minutes)) / SLOT_MINUTES)


def is_slot_booked(booked_set: Set[str], target: date, slot_index: int) -> bool:
    weekday_key, dated_key = slot_keys(target, slot_index_to_label(slot_index))
    return weekday_key in booked_set or dated_key in booked_set


def is_date_booked(booked_set: Set[str], day: date, slot_index: int) -> bool:
    return slot_keys(day, slot_index_to_label(slot_index))[1] in booked_set


class SlotComputer:
    def __init__(self, resolver: AvailabilityResolver, clock: Optional[Clock] = None):
        self.resolver = resolver
        self.clock = clock or Clock(str(resolver.tz))

    def has_consecutive_free_time(
        self, target: date, slot_index: int, duration_minutes: int, booked_set: Set[str]
    ) -> bool:
        """
        Check that a booking of ``duration_minutes`` starting at ``slot_index`` fits.

        Walks forward one slot at a time and fails on the first booked slot
        in the span. After 23:30 it rolls into the next day, where only date
        keys count.
        """
        validate_slot_index(slot_index)
        for step in range(required_steps(duration_minutes)):
            offset = slot_index + step
            if offset < SLOTS_PER_DAY:
                if is_slot_booked(booked_set, target, offset):
                    return False
                continue
            day = target + timedelta(days=offset // SLOTS_PER_DAY)
            if is_date_booked(booked_set, day, offset % SLOTS_PER_DAY):
                return False
        return True

    def compute_slots_for_date(
        self,
        target: date,
        blocks: Sequence[AvailabilityBlock],
        booked_set: Set[str],
        opts: Optional[SlotOptions] = None,
    ) -> List[ComputedSlot]:
        opts = opts or SlotOptions()
        if opts.filter_by_duration and (opts.duration is None or opts.duration <= 0):
            raise ValidationException(
                "A positive duration is required when filtering by duration",
                code="INVALID_DURATION",
                details={"duration_minutes": opts.duration},
            )

        now = self.clock.now()
        available_indexes = set(self.resolver.available_slot_indexes(blocks, target))

        slots: List[ComputedSlot] = []
        for slot_index in range(SLOTS_PER_DAY):
            available = slot_index in available_indexes
            booked = is_slot_booked(booked_set, target, slot_index)
            bookable = available and not booked
            if bookable and opts.filter_by_duration:
                bookable = self.has_consecutive_free_time(
                    target, slot_index, opts.duration, booked_set
                )
            if not bookable and not opts.include_unbookable:
                continue
            slots.append(
                ComputedSlot(
                    slot_index=slot_index,
                    available=available,
                    booked=booked,
                    is_past=slot_datetime(target, slot_index, self.resolver.tz) < now,
                    bookable=bookable,
                )
            )

        prometheus_metrics.record_computed_slots(len(slots), opts.filter_by_duration)
        logger.debug(
            "slots_computed",
            extra={"date": target.isoformat(), "slots": len(slots), "booked_keys": len(booked_set)},
        )
        return slots
