from unittest.mock import MagicMock

from availability_engine.core import lesson_lock as lesson_lock_module
from availability_engine.core.config import settings
from availability_engine.core.lesson_lock import acquire_lesson_lock, lesson_lock, release_lesson_lock
from availability_engine.monitoring.prometheus_metrics import REGISTRY


def lock_count(action, outcome):
    return (
        REGISTRY.get_sample_value(
            "availability_engine_lesson_lock_total", {"action": action, "outcome": outcome}
        )
        or 0.0
    )


def patch_redis(monkeypatch, client):
    monkeypatch.setattr(lesson_lock_module, "_get_sync_redis", lambda: client)


def test_acquire_uses_set_nx_with_ttl(monkeypatch):
    redis = MagicMock()
    redis.set.return_value = True
    patch_redis(monkeypatch, redis)

    assert acquire_lesson_lock("lesson-1", ttl_s=7) is True

    key = redis.set.call_args.args[0]
    assert key == f"{settings.lock_namespace}:lock:lesson:lesson-1:mutex"
    assert redis.set.call_args.kwargs["nx"] is True
    assert redis.set.call_args.kwargs["ex"] == 7


def test_acquire_defaults_to_configured_ttl(monkeypatch):
    redis = MagicMock()
    redis.set.return_value = True
    patch_redis(monkeypatch, redis)

    acquire_lesson_lock("lesson-1")
    assert redis.set.call_args.kwargs["ex"] == settings.lesson_lock_ttl_s


def test_held_lock_blocks(monkeypatch):
    redis = MagicMock()
    redis.set.return_value = None
    patch_redis(monkeypatch, redis)
    before = lock_count("acquire", "blocked")

    with lesson_lock("lesson-1") as acquired:
        assert acquired is False

    redis.delete.assert_not_called()
    assert lock_count("acquire", "blocked") == before + 1


def test_context_manager_releases_after_error(monkeypatch):
    redis = MagicMock()
    redis.set.return_value = True
    redis.delete.return_value = 1
    patch_redis(monkeypatch, redis)

    try:
        with lesson_lock("lesson-1") as acquired:
            assert acquired is True
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    redis.delete.assert_called_once_with(f"{settings.lock_namespace}:lock:lesson:lesson-1:mutex")


def test_fails_open_without_redis():
    before = lock_count("acquire", "redis_unavailable")

    with lesson_lock("lesson-1") as acquired:
        assert acquired is True

    assert lock_count("acquire", "redis_unavailable") == before + 1


def test_fails_open_when_set_errors(monkeypatch):
    redis = MagicMock()
    redis.set.side_effect = ConnectionError("redis down")
    patch_redis(monkeypatch, redis)

    assert acquire_lesson_lock("lesson-1") is True
    assert lock_count("acquire", "error") >= 1


def test_release_swallows_redis_errors(monkeypatch):
    redis = MagicMock()
    redis.delete.side_effect = ConnectionError("redis down")
    patch_redis(monkeypatch, redis)

    release_lesson_lock("lesson-1")
    assert lock_count("release", "error") >= 1
