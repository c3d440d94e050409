# backend/availability_engine/repositories/base_repository.py
"""
Base Repository Pattern for the availability engine

Provides the foundation for the repository classes with:
- A shared session, model and logger
- Type safety with generics
- Transaction support (managed by services)

Repositories never commit; they flush so the owning service can decide
when the unit of work ends. Every SQLAlchemyError is re-raised as a
RepositoryException so services can translate it for the API.
"""

from datetime import datetime
import logging
from typing import Generic, Optional, Type, TypeVar

import pytz
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_aware

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime for storage; naive values are taken as UTC."""
    if dt is None:
        return None
    return ensure_aware(dt).astimezone(pytz.UTC)


class BaseRepository(Generic[T]):
    """
    Concrete base repository implementation with common data access patterns.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        """
        Initialize repository with database session and model.

        Args:
            db: SQLAlchemy session (managed by service layer)
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def flush(self) -> None:
        """Flush pending ORM changes."""
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error flushing {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to flush {self.model.__name__}: {str(e)}")

