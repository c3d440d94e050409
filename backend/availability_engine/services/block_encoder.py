"""
Run-length encoding of an editor selection into date-pinned availability blocks.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pytz
import ulid

from ..core.constants import DAYS_PER_WEEK
from ..core.enums import BlockType
from ..core.exceptions import ValidationException
from ..core.timezone_utils import ensure_aware, get_timezone, local_midnight
from ..domain.types import AvailabilityBlock
from ..utils.time_grid import (
    parse_time_of_day,
    slot_end_label,
    slot_index_to_label,
    validate_slot_index,
)
from ..utils.weekday import sunday_index

logger = logging.getLogger(__name__)


def run_lengths(indexes: Iterable[int]) -> List[Tuple[int, int]]:
    """Merge slot indexes into half-open ``[start, end)`` runs."""
    runs: List[Tuple[int, int]] = []
    ordered = sorted(set(indexes))
    if not ordered:
        return runs
    start, end = ordered[0], ordered[0] + 1
    for idx in ordered[1:]:
        if idx == end:
            end += 1
            continue
        runs.append((start, end))
        start, end = idx, idx + 1
    runs.append((start, end))
    return runs


def encode_to_blocks(
    selected: Iterable[Tuple[int, int]],
    week_dates: Sequence[date],
    tz: Optional[pytz.BaseTzInfo] = None,
) -> List[AvailabilityBlock]:
    """
    Encode ``(day, slot_index)`` cells into one block per contiguous run.

    Args:
        selected: Selected cells; ``day`` indexes ``week_dates``
        week_dates: The seven calendar dates of the edited week
        tz: Timezone the blocks' absolute range is pinned in

    Returns:
        Blocks ordered by day then start time, each pinned to its date

    Raises:
        ValidationException: On a malformed week or out-of-range cell
    """
    if len(week_dates) != DAYS_PER_WEEK:
        raise ValidationException(
            f"Expected {DAYS_PER_WEEK} week dates, got {len(week_dates)}",
            code="INVALID_WEEK",
        )
    tz = tz or get_timezone()

    by_day: Dict[int, List[int]] = defaultdict(list)
    for day, slot_index in selected:
        if not isinstance(day, int) or not 0 <= day < DAYS_PER_WEEK:
            raise ValidationException(
                f"Day must be between 0 and {DAYS_PER_WEEK - 1}",
                code="INVALID_WEEKDAY",
                details={"day": day},
            )
        by_day[day].append(validate_slot_index(slot_index))

    blocks: List[AvailabilityBlock] = []
    for day in sorted(by_day):
        target = week_dates[day]
        pinned = local_midnight(target, tz)
        for start, end in run_lengths(by_day[day]):
            blocks.append(
                AvailabilityBlock(
                    id=f"{target.isoformat()}-{ulid.ULID()}",
                    day=sunday_index(target),
                    start_time=slot_index_to_label(start),
                    end_time=slot_end_label(end),
                    type=BlockType.AVAILABLE,
                    absolute_start=pinned,
                    absolute_end=pinned,
                )
            )

    logger.debug("selection_encoded", extra={"days": len(by_day), "blocks": len(blocks)})
    return blocks


def validate_block(block: AvailabilityBlock) -> AvailabilityBlock:
    """
    Reject blocks the resolver must never see.

    Raises:
        ValidationException: Bad weekday, time format, inverted or empty range,
            or an absolute range that ends before it starts
    """
    if not isinstance(block.day, int) or not 0 <= block.day < DAYS_PER_WEEK:
        raise ValidationException(
            f"Day must be between 0 and {DAYS_PER_WEEK - 1}",
            code="INVALID_WEEKDAY",
            details={"block_id": block.id, "day": block.day},
        )
    start = parse_time_of_day(block.start_time)
    end = parse_time_of_day(block.end_time, allow_end_of_day=True)
    if start >= end:
        raise ValidationException(
            "Block start time must be before its end time",
            code="INVALID_TIME_RANGE",
            details={"block_id": block.id, "start_time": block.start_time, "end_time": block.end_time},
        )
    if (block.absolute_start is None) != (block.absolute_end is None):
        raise ValidationException(
            "Absolute start and end must be given together",
            code="INVALID_ABSOLUTE_RANGE",
            details={"block_id": block.id},
        )
    if block.has_absolute_range and ensure_aware(block.absolute_end) < ensure_aware(block.absolute_start):
        raise ValidationException(
            "Absolute end must not be before absolute start",
            code="INVALID_ABSOLUTE_RANGE",
            details={"block_id": block.id},
        )
    return block
