# backend/availability_engine/models/availability.py
"""
Availability block model.

A tutor's availability is a flat list of blocks. Each row is one block; the
list is always replaced as a whole by the availability repository, so rows
carry a ``position`` to keep the stored order stable.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, SmallInteger, String, UniqueConstraint
import ulid

from ..core.enums import BlockType
from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class AvailabilityBlockRecord(Base):
    """Persisted availability declaration for one tutor."""

    __tablename__ = "availability_blocks"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tutor_id = Column(String(64), nullable=False, index=True)
    block_id = Column(String(128), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    day = Column(SmallInteger, nullable=False)  # Sunday = 0
    start_time = Column(String(5), nullable=False)  # "HH:mm"
    end_time = Column(String(5), nullable=False)
    type = Column(String(20), nullable=False, default=BlockType.AVAILABLE.value)

    # Stored as UTC instants; compared by local midnight at read time
    absolute_start = Column(DateTime(timezone=True), nullable=True)
    absolute_end = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (
        UniqueConstraint("tutor_id", "block_id", name="uq_availability_blocks_tutor_block"),
        Index("ix_availability_blocks_tutor_position", "tutor_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<AvailabilityBlock {self.block_id} day={self.day} {self.start_time}-{self.end_time}>"
