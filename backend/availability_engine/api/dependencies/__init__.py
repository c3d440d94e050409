"""
FastAPI dependency providers.

Usage:
    from availability_engine.api.dependencies import get_availability_service
"""

from .database import get_db
from .services import (
    get_availability_service,
    get_clock,
    get_conflict_checker,
    get_reschedule_service,
)

__all__ = [
    "get_availability_service",
    "get_clock",
    "get_conflict_checker",
    "get_db",
    "get_reschedule_service",
]
