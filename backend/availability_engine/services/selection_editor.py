"""
Availability editor selection state for one tutor editing session.

Cells are ``(day, slot_index)`` pairs where ``day`` is the Sunday-first
weekday of the displayed week. A drag always re-derives its rectangle from
the anchor, so overshooting and coming back shrinks the selection exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple

from ..core.clock import Clock
from ..core.constants import (
    BUSINESS_DAYS_MONDAY_FIRST,
    BUSINESS_HOURS_END,
    BUSINESS_HOURS_START,
    DAYS_PER_WEEK,
)
from ..core.exceptions import ValidationException
from ..domain.types import AvailabilityBlock
from ..utils.time_grid import slot_datetime, time_to_slot_index, validate_slot_index
from ..utils.weekday import WeekdayConvention, sunday_index, to_sunday_first, week_dates
from .availability_resolver import AvailabilityResolver

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]


@dataclass(frozen=True)
class DragAnchor:
    day: int
    slot_index: int


def selection_rectangle(anchor: DragAnchor, day: int, slot_index: int) -> FrozenSet[Cell]:
    """Every cell between the anchor and the current pointer cell, inclusive."""
    first_day, last_day = sorted((anchor.day, day))
    first_slot, last_slot = sorted((anchor.slot_index, slot_index))
    return frozenset(
        (d, s) for d in range(first_day, last_day + 1) for s in range(first_slot, last_slot + 1)
    )


class SelectionEditor:
    """Mutable selection owned by an editing session; render from ``snapshot()``."""

    def __init__(self, week_start: date, clock: Optional[Clock] = None):
        if sunday_index(week_start) != 0:
            raise ValidationException(
                "Editor weeks start on Sunday",
                code="INVALID_WEEK_START",
                details={"week_start": week_start.isoformat()},
            )
        self.week_dates: List[date] = week_dates(week_start)
        self.clock = clock or Clock()
        self._selected: Set[Cell] = set()
        self._anchor: Optional[DragAnchor] = None
        # Cells the current drag added that were not selected before it
        self._provisional: Set[Cell] = set()

    @property
    def drag_anchor(self) -> Optional[DragAnchor]:
        return self._anchor

    def snapshot(self) -> FrozenSet[Cell]:
        return frozenset(self._selected)

    def is_selected(self, day: int, slot_index: int) -> bool:
        return (day, slot_index) in self._selected

    def is_past(self, day: int, slot_index: int) -> bool:
        self._check_cell(day, slot_index)
        return slot_datetime(self.week_dates[day], slot_index, self.clock.tz) < self.clock.now()

    # Drag / click

    def start_selection(self, day: int, slot_index: int) -> None:
        if self.is_past(day, slot_index):
            return
        self._anchor = DragAnchor(day, slot_index)
        self._provisional = set()
        self._toggle((day, slot_index))

    def continue_selection(self, day: int, slot_index: int) -> None:
        if self._anchor is None:
            return
        self._check_cell(day, slot_index)

        self._selected -= self._provisional
        added: Set[Cell] = set()
        for cell in selection_rectangle(self._anchor, day, slot_index):
            if cell in self._selected or self.is_past(*cell):
                continue
            self._selected.add(cell)
            added.add(cell)
        self._provisional = added

    def end_selection(self) -> None:
        self._anchor = None
        self._provisional = set()

    def toggle_slot(self, day: int, slot_index: int) -> None:
        if self.is_past(day, slot_index):
            return
        self._toggle((day, slot_index))

    # Bulk operations

    def set_business_hours(self) -> None:
        """Replace the selection with Monday-Friday 09:00-18:00."""
        first = time_to_slot_index(BUSINESS_HOURS_START)
        last = time_to_slot_index(BUSINESS_HOURS_END)
        days = [to_sunday_first(d, WeekdayConvention.MONDAY_FIRST) for d in BUSINESS_DAYS_MONDAY_FIRST]
        self._replace((day, s) for day in days for s in range(first, last))

    def clear_all(self) -> None:
        self._selected.clear()
        self.end_selection()

    def copy_weekday_to_all(self, source_day: int) -> None:
        """Replace the whole selection with ``source_day``'s pattern on every day."""
        self._check_cell(source_day, 0)
        pattern = sorted(s for d, s in self._selected if d == source_day)
        self._replace((day, s) for day in range(DAYS_PER_WEEK) for s in pattern)

    def load_blocks(self, blocks: Iterable[AvailabilityBlock], resolver: AvailabilityResolver) -> None:
        """Seed the selection from stored blocks as they resolve on the displayed week."""
        blocks = list(blocks)
        for day, target in enumerate(self.week_dates):
            for slot_index in resolver.available_slot_indexes(blocks, target):
                self._selected.add((day, slot_index))
        logger.debug("editor_loaded", extra={"cells": len(self._selected)})

    # Internals

    def _toggle(self, cell: Cell) -> None:
        if cell in self._selected:
            self._selected.discard(cell)
        else:
            self._selected.add(cell)

    def _replace(self, cells: Iterable[Cell]) -> None:
        self._selected = {cell for cell in cells if not self.is_past(*cell)}
        self.end_selection()

    def _check_cell(self, day: int, slot_index: int) -> None:
        if not isinstance(day, int) or isinstance(day, bool) or not 0 <= day < DAYS_PER_WEEK:
            raise ValidationException(
                f"Day must be between 0 and {DAYS_PER_WEEK - 1}",
                code="INVALID_WEEKDAY",
                details={"day": day},
            )
        validate_slot_index(slot_index)
