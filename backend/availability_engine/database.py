# backend/availability_engine/database.py
import logging
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .core.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 10,  # Number of persistent connections
        "max_overflow": 10,  # Maximum overflow connections
        "pool_timeout": 30,  # Timeout for getting connection
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_pre_ping": True,  # Test connections before using
    }


def create_db_engine(url: str) -> Engine:
    """Create an engine for ``url`` with dialect-appropriate pooling."""
    return create_engine(url, **_engine_kwargs(url))


engine: Engine = create_db_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables (development and tests; production uses migrations)."""
    from . import models  # noqa: F401 - registers mappers

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ensured")
