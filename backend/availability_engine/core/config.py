# backend/availability_engine/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Set

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


PROD_ENVIRONMENTS: Set[str] = {"prod", "production", "beta", "live"}


class Settings(BaseSettings):
    environment: str = Field(default="development", alias="ENVIRONMENT")
    is_testing: bool = Field(default=False, description="Set by the test suite")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    database_url: str = Field(
        default="sqlite:///./availability_engine.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the availability and lesson stores",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        alias="REDIS_URL",
        description="Redis used for per-lesson negotiation locks",
    )
    lock_namespace: str = Field(default="availability-engine", alias="LOCK_NAMESPACE")
    lesson_lock_ttl_s: int = Field(default=90, ge=1, alias="LESSON_LOCK_TTL_S")

    default_timezone: str = Field(
        default="America/New_York",
        alias="DEFAULT_TIMEZONE",
        description="Viewer timezone used when a request does not supply one",
    )

    # Availability reads
    stale_block_days: int = Field(
        default=7,
        ge=0,
        alias="STALE_BLOCK_DAYS",
        description="Date-pinned blocks that ended more than this many days ago are dropped on read",
    )
    unavailable_blocks_take_precedence: bool = Field(
        default=False,
        alias="UNAVAILABLE_BLOCKS_TAKE_PRECEDENCE",
        description="Let applicable unavailable/break blocks subtract from available coverage",
    )

    # Reschedule negotiation
    reschedule_lookahead_days: int = Field(
        default=60,
        ge=1,
        alias="RESCHEDULE_LOOKAHEAD_DAYS",
        description="How far ahead student busy slots are collected for reschedule pickers",
    )
    reschedule_requires_free_slot: bool = Field(
        default=True,
        alias="RESCHEDULE_REQUIRES_FREE_SLOT",
        description="Reject proposals that collide with another booking of the tutor",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("default_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in PROD_ENVIRONMENTS


settings = Settings()
