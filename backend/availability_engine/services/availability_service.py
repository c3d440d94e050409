# backend/availability_engine/services/availability_service.py
"""
Availability Service for the availability engine

Store-backed entry points around the pure engine:
- Reading a tutor's blocks (legacy and stale blocks filtered out)
- Saving an edited week with merge-by-date semantics
- Computing bookable slots for a date or a displayed week
- Computing slots free for both sides of a lesson being rescheduled
- Checking whether a single start time can be booked
"""

from datetime import date, datetime, timedelta
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import settings
from ..core.constants import DAYS_PER_WEEK
from ..core.enums import BlockType
from ..core.timezone_utils import local_date, local_midnight, to_timezone
from ..domain.types import AvailabilityBlock, ComputedSlot, SlotOptions, WeekWindow
from ..repositories import RepositoryFactory
from ..repositories.availability_repository import AvailabilityRepository
from ..utils.time_grid import floor_to_slot, time_to_slot_index
from ..utils.weekday import week_dates
from .availability_resolver import AvailabilityResolver
from .base import BaseService
from .block_encoder import encode_to_blocks, validate_block
from .conflict_checker import BOOKED_SET_ROLLOVER, ConflictChecker
from .slot_computer import SlotComputer, is_slot_booked

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService):
    """
    Service for tutor availability and slot computation.

    Blocks are read and written through the availability store; booked
    time comes from the ConflictChecker and is recomputed per call.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[AvailabilityRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db)
        self.clock = clock or Clock()
        self.repository = repository or RepositoryFactory.create_availability_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, clock=self.clock)
        self.resolver = AvailabilityResolver(
            self.clock.tz,
            unavailable_blocks_take_precedence=settings.unavailable_blocks_take_precedence,
        )
        self.slot_computer = SlotComputer(self.resolver, self.clock)

    # Blocks

    def pinned_date(self, block: AvailabilityBlock) -> Optional[date]:
        """The local date a one-off block is pinned to, None for recurring blocks."""
        if block.has_absolute_range:
            return local_date(block.absolute_start, self.clock.tz)
        return block.id_date

    def _is_current(self, block: AvailabilityBlock, cutoff: date) -> bool:
        if getattr(block.type, "value", block.type) == BlockType.CLASS.value:
            return False
        # Only an absolute range dates a block for pruning; id-prefixed blocks stay
        if not block.has_absolute_range:
            return True
        return local_date(block.absolute_end, self.clock.tz) >= cutoff

    @BaseService.measure_operation("get_blocks")
    def get_blocks(self, tutor_id: str) -> List[AvailabilityBlock]:
        """
        Get a tutor's blocks for display and slot computation.

        Legacy class placeholders are dropped (classes come from the booking
        source) and so are blocks whose absolute range ended more than
        ``stale_block_days`` ago. Blocks dated only by their id prefix are
        kept.
        """
        with self.upstream_guard("get_blocks"):
            stored = self.repository.get_availability(tutor_id)

        cutoff = self.clock.today() - timedelta(days=settings.stale_block_days)
        blocks = [block for block in stored if self._is_current(block, cutoff)]
        if len(blocks) != len(stored):
            self.logger.debug(
                "availability_blocks_filtered",
                extra={"tutor_id": tutor_id, "stored": len(stored), "kept": len(blocks)},
            )
        return blocks

    @BaseService.measure_operation("save_week")
    def save_week(
        self,
        tutor_id: str,
        blocks: Sequence[AvailabilityBlock],
        replace_dates: Iterable[date] = (),
    ) -> List[AvailabilityBlock]:
        """
        Merge an edited week into the stored list and write it back whole.

        Existing one-off blocks pinned to a date covered by the new list (or
        listed in ``replace_dates``) are replaced; recurring blocks and
        blocks on other dates are kept.

        Args:
            tutor_id: The tutor whose availability is saved
            blocks: New blocks; all are validated before anything is written
            replace_dates: Extra dates to clear, e.g. days emptied in the editor

        Returns:
            The merged list as stored

        Raises:
            ValidationException: If any new block is malformed
            UpstreamUnavailableException: If the store fails
        """
        blocks = [validate_block(block) for block in blocks]

        dates: Set[date] = set(replace_dates)
        dates.update(d for d in (self.pinned_date(block) for block in blocks) if d is not None)
        new_ids = {block.id for block in blocks}

        # Merge over the raw stored list; read filters never prune the store
        with self.upstream_guard("save_week"):
            existing = self.repository.get_availability(tutor_id)
        kept = [
            block
            for block in existing
            if block.id not in new_ids and self.pinned_date(block) not in dates
        ]
        merged = kept + blocks

        with self.transaction():
            self.repository.save_availability(tutor_id, merged)

        self.logger.info(
            "availability_saved",
            extra={
                "tutor_id": tutor_id,
                "new_blocks": len(blocks),
                "kept_blocks": len(kept),
                "replaced_dates": len(dates),
            },
        )
        return merged

    def save_selection(
        self,
        tutor_id: str,
        selected: Iterable[Tuple[int, int]],
        dates: Sequence[date],
    ) -> List[AvailabilityBlock]:
        """Encode an editor selection for ``dates`` and save it as that week."""
        blocks = encode_to_blocks(selected, dates, self.clock.tz)
        return self.save_week(tutor_id, blocks, replace_dates=dates)

    # Slots

    def _window(self, first: date, days: int) -> WeekWindow:
        return WeekWindow(
            start=local_midnight(first, self.clock.tz),
            end=local_midnight(first + timedelta(days=days), self.clock.tz),
        )

    @BaseService.measure_operation("compute_slots_for_date")
    def compute_slots_for_date(
        self,
        tutor_id: str,
        target: date,
        duration: Optional[int] = None,
        include_unbookable: bool = False,
    ) -> List[ComputedSlot]:
        """
        Bookable slots of ``target`` for a tutor.

        Args:
            tutor_id: The tutor
            target: Calendar date in the viewer timezone
            duration: Lesson length; when given, each slot must also have
                enough consecutive free time for it plus its buffer
            include_unbookable: Emit every slot with its flags

        Returns:
            Slots ordered by index
        """
        blocks = self.get_blocks(tutor_id)
        booked = self.conflict_checker.build_booked_set_for_tutor(tutor_id, self._window(target, 1))
        return self.slot_computer.compute_slots_for_date(
            target, blocks, booked, self._options(duration, include_unbookable)
        )

    @BaseService.measure_operation("compute_week_slots")
    def compute_week_slots(
        self,
        tutor_id: str,
        week_start: date,
        duration: Optional[int] = None,
        include_unbookable: bool = False,
    ) -> Dict[date, List[ComputedSlot]]:
        """Slots for the seven days from ``week_start`` with one booked-set build."""
        blocks = self.get_blocks(tutor_id)
        booked = self.conflict_checker.build_booked_set_for_tutor(
            tutor_id, self._window(week_start, DAYS_PER_WEEK)
        )
        opts = self._options(duration, include_unbookable)
        return {
            day: self.slot_computer.compute_slots_for_date(day, blocks, booked, opts)
            for day in week_dates(week_start)
        }

    @BaseService.measure_operation("compute_mutual_slots")
    def compute_mutual_slots(
        self,
        tutor_id: str,
        student_id: str,
        target: date,
        duration: Optional[int] = None,
        exclude_lesson_id: Optional[str] = None,
    ) -> List[ComputedSlot]:
        """
        Slots of ``target`` free for both the tutor and the student.

        Used by the reschedule picker: the lesson being moved is left out of
        both booked sets so its own time can be picked again.
        """
        blocks = self.get_blocks(tutor_id)
        window = self._window(target, 1)
        booked = self.conflict_checker.build_booked_set_for_tutor(tutor_id, window, exclude_lesson_id)
        busy = self.conflict_checker.build_student_busy_set(
            student_id,
            WeekWindow(start=window.start, end=window.end + BOOKED_SET_ROLLOVER),
            exclude_lesson_id,
        )
        return self.slot_computer.compute_slots_for_date(
            target, blocks, booked | busy, self._options(duration, False)
        )

    @BaseService.measure_operation("is_bookable")
    def is_bookable(
        self,
        tutor_id: str,
        start: datetime,
        duration: int,
        exclude_lesson_id: Optional[str] = None,
    ) -> bool:
        """
        Whether a lesson of ``duration`` minutes may start at ``start``.

        The start's slot must be declared available and free, and the
        following slots must stay free for the duration plus its buffer.
        """
        local_start = floor_to_slot(to_timezone(start, self.clock.tz))
        target = local_start.date()
        slot_index = time_to_slot_index(f"{local_start:%H:%M}")

        blocks = self.get_blocks(tutor_id)
        if not self.resolver.is_available(blocks, target, slot_index):
            return False

        booked = self.conflict_checker.build_booked_set_for_tutor(
            tutor_id, self._window(target, 1), exclude_lesson_id
        )
        if is_slot_booked(booked, target, slot_index):
            return False
        return self.slot_computer.has_consecutive_free_time(target, slot_index, duration, booked)

    @staticmethod
    def _options(duration: Optional[int], include_unbookable: bool) -> SlotOptions:
        return SlotOptions(
            filter_by_duration=duration is not None,
            duration=duration,
            include_unbookable=include_unbookable,
        )
