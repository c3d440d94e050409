# backend/availability_engine/repositories/factory.py
"""
Repository Factory for the availability engine

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository
    from .booking_repository import BookingRepository
    from .lesson_repository import LessonRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for the availability store."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for the booking source."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_lesson_repository(db: Session) -> "LessonRepository":
        """Create repository for the lesson store."""
        from .lesson_repository import LessonRepository

        return LessonRepository(db)
