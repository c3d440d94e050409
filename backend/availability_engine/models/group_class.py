# backend/availability_engine/models/group_class.py
"""Group class models: a tutor-led session with many attending students."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import ClassStatus
from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class GroupClass(Base):
    __tablename__ = "group_classes"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tutor_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String(30), nullable=False, default=ClassStatus.SCHEDULED.value, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    attendees = relationship("ClassAttendee", back_populates="group_class", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<GroupClass {self.id} {self.status} {self.start_time}>"


class ClassAttendee(Base):
    __tablename__ = "class_attendees"

    class_id = Column(String(26), ForeignKey("group_classes.id", ondelete="CASCADE"), primary_key=True)
    student_id = Column(String(64), primary_key=True, index=True)

    group_class = relationship("GroupClass", back_populates="attendees")
