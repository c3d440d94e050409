"""Row builders for repository, service and route tests."""

from datetime import datetime, timedelta
from typing import Iterable, Optional

import pytz
from sqlalchemy.orm import Session

from availability_engine.core.enums import ClassStatus, LessonStatus
from availability_engine.models import ClassAttendee, GroupClass, Lesson

TUTOR_ID = "tutor-1"
STUDENT_ID = "student-1"


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return pytz.UTC.localize(datetime(year, month, day, hour, minute))


def add_lesson(
    db: Session,
    start: datetime,
    duration_minutes: int = 50,
    *,
    tutor_id: str = TUTOR_ID,
    student_id: str = STUDENT_ID,
    status: LessonStatus = LessonStatus.SCHEDULED,
    end: Optional[datetime] = None,
) -> Lesson:
    lesson = Lesson(
        tutor_id=tutor_id,
        student_id=student_id,
        start_time=start,
        end_time=end or start + timedelta(minutes=duration_minutes),
        duration_minutes=duration_minutes,
        status=status.value,
    )
    db.add(lesson)
    db.commit()
    return lesson


def add_group_class(
    db: Session,
    start: datetime,
    duration_minutes: int = 60,
    *,
    tutor_id: str = TUTOR_ID,
    status: ClassStatus = ClassStatus.SCHEDULED,
    attendees: Iterable[str] = (),
) -> GroupClass:
    group_class = GroupClass(
        tutor_id=tutor_id,
        name="Conversation club",
        start_time=start,
        end_time=start + timedelta(minutes=duration_minutes),
        duration_minutes=duration_minutes,
        status=status.value,
    )
    group_class.attendees = [ClassAttendee(student_id=student_id) for student_id in attendees]
    db.add(group_class)
    db.commit()
    return group_class
