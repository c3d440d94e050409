"""Value types shared by the availability engine components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
import re
from typing import Optional

from ..core.enums import OCCUPYING_STATUSES, BlockType, LessonStatus, ProposalStatus
from ..utils.time_grid import slot_index_to_label

_ID_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-")


def parse_block_id_date(block_id: str) -> Optional[date]:
    """
    Parse the legacy ``"YYYY-MM-DD-<suffix>"`` id prefix as a local calendar date.

    Returns None when the id carries no (valid) date.
    """
    match = _ID_DATE_PREFIX.match(block_id or "")
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


@dataclass(frozen=True)
class AvailabilityBlock:
    """A declaration of available (or unavailable) wall-clock time."""

    id: str
    day: int  # Sunday = 0
    start_time: str  # "HH:mm"
    end_time: str  # "HH:mm", exclusive; "24:00" closes the day
    type: BlockType = BlockType.AVAILABLE
    absolute_start: Optional[datetime] = None
    absolute_end: Optional[datetime] = None

    @property
    def has_absolute_range(self) -> bool:
        return self.absolute_start is not None and self.absolute_end is not None

    @property
    def id_date(self) -> Optional[date]:
        return parse_block_id_date(self.id)

    @property
    def is_recurring(self) -> bool:
        return not self.has_absolute_range and self.id_date is None


@dataclass(frozen=True)
class BookedInterval:
    """Time occupied (or formerly occupied) by a lesson, class or reschedule hold."""

    start: datetime
    end: datetime
    status: str
    duration_minutes: int
    source: str = "lesson"
    source_id: Optional[str] = None

    @property
    def occupies_time(self) -> bool:
        return getattr(self.status, "value", self.status) in OCCUPYING_STATUSES


@dataclass(frozen=True)
class WeekWindow:
    """Displayed date range; intervals entirely outside it are skipped."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class SlotOptions:
    filter_by_duration: bool = False
    duration: Optional[int] = None
    # Emit every slot of the day with its flags instead of only bookable ones
    include_unbookable: bool = False


@dataclass(frozen=True)
class ComputedSlot:
    slot_index: int
    available: bool
    booked: bool
    is_past: bool
    bookable: bool = True

    @property
    def label(self) -> str:
        return slot_index_to_label(self.slot_index)


@dataclass(frozen=True)
class RescheduleProposal:
    proposed_start_time: datetime
    proposed_end_time: datetime
    proposed_by: str
    status: ProposalStatus = ProposalStatus.PENDING
    proposed_at: Optional[datetime] = None


@dataclass(frozen=True)
class LessonSnapshot:
    """Read-only view of a lesson as seen by the negotiator."""

    id: str
    tutor_id: str
    student_id: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: LessonStatus
    proposal: Optional[RescheduleProposal] = field(default=None)
