from .availability import AvailabilityBlockRecord
from .group_class import ClassAttendee, GroupClass
from .lesson import Lesson, LessonRescheduleProposal

__all__ = [
    "AvailabilityBlockRecord",
    "ClassAttendee",
    "GroupClass",
    "Lesson",
    "LessonRescheduleProposal",
]
