# backend/availability_engine/core/enums.py
"""
Core enums for the availability engine.

All enums inherit from (str, Enum) so the stored value matches what the
API and bulk imports send over the wire.
"""

from enum import Enum


class BlockType(str, Enum):
    """Kind of availability declaration."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    BREAK = "break"
    CLASS = "class"  # Legacy placeholder for group classes, dropped on read


class LessonStatus(str, Enum):
    """Lesson lifecycle statuses."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    PENDING_RESCHEDULE = "pending_reschedule"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ClassStatus(str, Enum):
    """Group class lifecycle statuses."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ProposalStatus(str, Enum):
    """Reschedule proposal statuses."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# Statuses whose interval occupies time on the calendar
OCCUPYING_STATUSES = frozenset(
    {
        LessonStatus.SCHEDULED.value,
        LessonStatus.IN_PROGRESS.value,
        LessonStatus.PENDING_RESCHEDULE.value,
    }
)
