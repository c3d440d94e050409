"""
Repository layer for the availability engine.

Key Components:
- BaseRepository: Foundation for all repositories
- RepositoryFactory: Factory for creating repository instances
- AvailabilityRepository: Availability store (full-replace block lists)
- BookingRepository: Booking source (lessons, classes, reschedule holds)
- LessonRepository: Lesson store used by reschedule negotiation

Usage:
    from availability_engine.repositories import RepositoryFactory

    repository = RepositoryFactory.create_availability_repository(db)
    blocks = repository.get_availability(tutor_id)
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .lesson_repository import LessonRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "BookingRepository",
    "LessonRepository",
    "RepositoryFactory",
]
