# backend/availability_engine/models/lesson.py
"""
Lesson and reschedule proposal models.

A lesson owns at most one reschedule proposal (satellite table). The
proposal row is replaced on counter-offers, kept with status ``accepted``
after an accept and removed after a reject.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import LessonStatus, ProposalStatus
from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Lesson(Base):
    """One-to-one lesson between a tutor and a student."""

    __tablename__ = "lessons"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tutor_id = Column(String(64), nullable=False, index=True)
    student_id = Column(String(64), nullable=False, index=True)

    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String(30), nullable=False, default=LessonStatus.SCHEDULED.value, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_now_utc)

    reschedule_proposal = relationship(
        "LessonRescheduleProposal",
        back_populates="lesson",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("ix_lessons_tutor_start", "tutor_id", "start_time"),)

    def __repr__(self) -> str:
        return f"<Lesson {self.id} {self.status} {self.start_time}>"


class LessonRescheduleProposal(Base):
    """Active (or last accepted) reschedule proposal for a lesson."""

    __tablename__ = "lesson_reschedule_proposals"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    lesson_id = Column(
        String(26),
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    proposed_start_time = Column(DateTime(timezone=True), nullable=False)
    proposed_end_time = Column(DateTime(timezone=True), nullable=False)
    proposed_by = Column(String(64), nullable=False)
    proposed_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    status = Column(String(20), nullable=False, default=ProposalStatus.PENDING.value)

    lesson = relationship("Lesson", back_populates="reschedule_proposal")

    def __repr__(self) -> str:
        return f"<LessonRescheduleProposal lesson={self.lesson_id} {self.status}>"
