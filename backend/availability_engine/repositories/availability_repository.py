# backend/availability_engine/repositories/availability_repository.py
"""
Availability Repository

The availability store. A tutor's blocks are read as an ordered list and
written with full-replace semantics: every save deletes the tutor's rows
and inserts the new list in the same flush.
"""

import logging
from typing import List, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BlockType
from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_aware
from ..domain.types import AvailabilityBlock
from ..models.availability import AvailabilityBlockRecord
from .base_repository import BaseRepository, to_utc

logger = logging.getLogger(__name__)


def record_to_block(record: AvailabilityBlockRecord) -> AvailabilityBlock:
    return AvailabilityBlock(
        id=record.block_id,
        day=record.day,
        start_time=record.start_time,
        end_time=record.end_time,
        type=BlockType(record.type),
        absolute_start=ensure_aware(record.absolute_start) if record.absolute_start else None,
        absolute_end=ensure_aware(record.absolute_end) if record.absolute_end else None,
    )


class AvailabilityRepository(BaseRepository[AvailabilityBlockRecord]):
    """Repository for a tutor's availability blocks."""

    def __init__(self, db: Session):
        super().__init__(db, AvailabilityBlockRecord)

    def get_availability(self, tutor_id: str) -> List[AvailabilityBlock]:
        """
        Get all stored blocks for a tutor in their saved order.

        Args:
            tutor_id: The tutor ID

        Returns:
            List of blocks (possibly empty)
        """
        try:
            records = (
                self.db.query(AvailabilityBlockRecord)
                .filter(AvailabilityBlockRecord.tutor_id == tutor_id)
                .order_by(AvailabilityBlockRecord.position)
                .all()
            )
            return [record_to_block(record) for record in records]
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting availability for tutor {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to get availability: {str(e)}")

    def save_availability(self, tutor_id: str, blocks: Sequence[AvailabilityBlock]) -> int:
        """
        Replace a tutor's whole block list.

        Args:
            tutor_id: The tutor ID
            blocks: The complete new list

        Returns:
            Number of blocks written
        """
        try:
            deleted = (
                self.db.query(AvailabilityBlockRecord)
                .filter(AvailabilityBlockRecord.tutor_id == tutor_id)
                .delete(synchronize_session=False)
            )
            # Deletes must reach the database before reused block ids are inserted
            self.db.flush()
            self.db.add_all(
                AvailabilityBlockRecord(
                    tutor_id=tutor_id,
                    block_id=block.id,
                    position=position,
                    day=block.day,
                    start_time=block.start_time,
                    end_time=block.end_time,
                    type=getattr(block.type, "value", block.type),
                    absolute_start=to_utc(block.absolute_start),
                    absolute_end=to_utc(block.absolute_end),
                )
                for position, block in enumerate(blocks)
            )
            self.db.flush()
            logger.debug(
                "availability_replaced",
                extra={"tutor_id": tutor_id, "deleted": deleted, "written": len(blocks)},
            )
            return len(blocks)
        except SQLAlchemyError as e:
            self.logger.error(f"Error saving availability for tutor {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to save availability: {str(e)}")
