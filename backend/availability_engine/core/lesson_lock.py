"""
Per-lesson mutual exclusion for reschedule negotiation.

A short-lived Redis key (SET NX EX) guards each lesson while a transition is
applied. When Redis cannot be reached the lock fails open and the row lock
taken by the lesson repository is the remaining guard.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Iterator, Optional

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _lock_key(lesson_id: str) -> str:
    return f"lesson:{lesson_id}:mutex"


def _namespaced_key(key: str) -> str:
    return f"{settings.lock_namespace}:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except Exception as exc:
            logger.warning("lesson_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def acquire_lesson_lock(lesson_id: str, ttl_s: Optional[int] = None) -> bool:
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_lesson_lock("acquire", "redis_unavailable")
        logger.warning("lesson_lock_redis_unavailable", extra={"lesson_id": lesson_id})
        return True
    try:
        acquired = bool(
            client.set(
                _namespaced_key(_lock_key(lesson_id)),
                str(time.time()),
                nx=True,
                ex=ttl_s or settings.lesson_lock_ttl_s,
            )
        )
    except Exception as exc:
        prometheus_metrics.record_lesson_lock("acquire", "error")
        logger.warning(
            "lesson_lock_acquire_failed",
            extra={
                "lesson_id": lesson_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return True
    prometheus_metrics.record_lesson_lock("acquire", "success" if acquired else "blocked")
    return acquired


def release_lesson_lock(lesson_id: str) -> None:
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_lesson_lock("release", "redis_unavailable")
        return
    try:
        deleted = client.delete(_namespaced_key(_lock_key(lesson_id)))
    except Exception as exc:
        prometheus_metrics.record_lesson_lock("release", "error")
        logger.warning(
            "lesson_lock_release_failed",
            extra={
                "lesson_id": lesson_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return
    prometheus_metrics.record_lesson_lock("release", "success" if deleted else "not_found")


@contextmanager
def lesson_lock(lesson_id: str, ttl_s: Optional[int] = None) -> Iterator[bool]:
    acquired = acquire_lesson_lock(lesson_id, ttl_s=ttl_s)
    try:
        yield acquired
    finally:
        if acquired:
            release_lesson_lock(lesson_id)
