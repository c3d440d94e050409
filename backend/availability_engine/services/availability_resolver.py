"""
Availability resolution: which slots of a date a tutor has declared available.

Pure computation over a block list. Blocks apply to a date in one of three
ways, checked in order:

- absolute range: same weekday and the date's midnight falls within
  ``[midnight(absolute_start), midnight(absolute_end)]``
- date-prefixed id (``"YYYY-MM-DD-..."``): same weekday and exactly that date
- neither: a weekly recurring pattern for that weekday

Coverage of applicable blocks is OR-ed together.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Sequence

import pytz

from ..core.constants import SLOT_MINUTES, SLOTS_PER_DAY
from ..core.enums import BlockType
from ..core.timezone_utils import get_timezone, local_date
from ..domain.types import AvailabilityBlock
from ..utils.time_grid import minutes_since_midnight
from ..utils.weekday import sunday_index

_SUBTRACTING_TYPES = frozenset({BlockType.UNAVAILABLE.value, BlockType.BREAK.value})


def _type_value(block: AvailabilityBlock) -> str:
    return getattr(block.type, "value", block.type)


class AvailabilityResolver:
    """Decides availability of slots for a calendar date in the viewer's timezone."""

    def __init__(
        self,
        tz: pytz.BaseTzInfo | None = None,
        *,
        unavailable_blocks_take_precedence: bool = False,
    ):
        self.tz = tz or get_timezone()
        self.unavailable_blocks_take_precedence = unavailable_blocks_take_precedence

    def is_block_applicable(self, block: AvailabilityBlock, target: date) -> bool:
        if sunday_index(target) != block.day:
            return False

        if block.has_absolute_range:
            first = local_date(block.absolute_start, self.tz)
            last = local_date(block.absolute_end, self.tz)
            return first <= target <= last

        pinned = block.id_date
        if pinned is not None:
            return pinned == target

        return True

    def _covering(
        self, blocks: Iterable[AvailabilityBlock], target: date, types: frozenset
    ) -> List[tuple[int, int]]:
        ranges = []
        for block in blocks:
            if _type_value(block) not in types:
                continue
            if not self.is_block_applicable(block, target):
                continue
            ranges.append(
                (minutes_since_midnight(block.start_time), minutes_since_midnight(block.end_time))
            )
        return ranges

    def is_available(self, blocks: Sequence[AvailabilityBlock], target: date, slot_index: int) -> bool:
        minute = slot_index * SLOT_MINUTES
        available = any(
            start <= minute < end
            for start, end in self._covering(blocks, target, frozenset({BlockType.AVAILABLE.value}))
        )
        if not available or not self.unavailable_blocks_take_precedence:
            return available
        return not any(
            start <= minute < end for start, end in self._covering(blocks, target, _SUBTRACTING_TYPES)
        )

    def available_slot_indexes(self, blocks: Sequence[AvailabilityBlock], target: date) -> List[int]:
        """All available slot indexes of ``target``, ascending."""
        available = self._covering(blocks, target, frozenset({BlockType.AVAILABLE.value}))
        if not available:
            return []
        excluded = (
            self._covering(blocks, target, _SUBTRACTING_TYPES)
            if self.unavailable_blocks_take_precedence
            else []
        )

        indexes = []
        for slot_index in range(SLOTS_PER_DAY):
            minute = slot_index * SLOT_MINUTES
            if not any(start <= minute < end for start, end in available):
                continue
            if any(start <= minute < end for start, end in excluded):
                continue
            indexes.append(slot_index)
        return indexes
