"""
Tests unitarios para los backends de cache (memoria y tabla cache_entries).
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.infrastructure.cache import build_cache_service
from app.infrastructure.cache.database_cache import DatabaseCacheService, glob_to_like
from app.infrastructure.cache.memory_cache import InMemoryCacheService
from app.infrastructure.repositories.search import escape_like


class _FakeClock:
    """Reloj manual para controlar expiraciones."""

    def __init__(self, start) -> None:
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, delta) -> None:
        self.now = self.now + delta


class TestInMemoryCacheService:
    """Tests para InMemoryCacheService."""

    @pytest.mark.asyncio
    async def test_lock_is_exclusive_until_released(self) -> None:
        cache = InMemoryCacheService()

        assert await cache.acquire_lock("lock", ttl=60) is True
        assert await cache.acquire_lock("lock", ttl=60) is False
        assert await cache.is_locked("lock") is True

        await cache.release_lock("lock")

        assert await cache.is_locked("lock") is False
        assert await cache.acquire_lock("lock", ttl=60) is True

    @pytest.mark.asyncio
    async def test_lock_expires_after_ttl(self) -> None:
        clock = _FakeClock(100.0)
        cache = InMemoryCacheService(clock=clock)

        assert await cache.acquire_lock("lock", ttl=10) is True
        clock.advance(11)

        assert await cache.is_locked("lock") is False
        assert await cache.acquire_lock("lock", ttl=10) is True

    @pytest.mark.asyncio
    async def test_expired_holder_does_not_release_new_holder_lock(self) -> None:
        clock = _FakeClock(100.0)
        cache = InMemoryCacheService(clock=clock)

        assert await cache.acquire_lock("lock", ttl=10, token="first") is True
        clock.advance(11)
        assert await cache.acquire_lock("lock", ttl=10, token="second") is True

        await cache.release_lock("lock", token="first")
        assert await cache.is_locked("lock") is True

        await cache.release_lock("lock", token="second")
        assert await cache.is_locked("lock") is False

    @pytest.mark.asyncio
    async def test_get_set_with_ttl(self) -> None:
        clock = _FakeClock(0.0)
        cache = InMemoryCacheService(clock=clock)

        await cache.set("k", {"a": 1}, ttl=5)
        assert await cache.get("k") == {"a": 1}

        clock.advance(5)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_delete_pattern(self) -> None:
        cache = InMemoryCacheService()
        await cache.set("mec:courses:ies:1", [1])
        await cache.set("mec:courses:ies:2", [2])
        await cache.set("mec:meta:states", ["SP"])

        removed = await cache.delete_pattern("mec:courses:ies:*")

        assert removed == 2
        assert await cache.get("mec:meta:states") == ["SP"]


class TestGlobToLike:
    def test_translates_wildcards_and_escapes(self) -> None:
        assert glob_to_like("mec:courses:*") == "mec:courses:%"
        assert glob_to_like("a_b?") == "a\\_b_"
        assert glob_to_like("100%") == "100\\%"

    def test_escape_like_keeps_wildcards_literal(self) -> None:
        assert escape_like("50%_off") == "50\\%\\_off"
        assert escape_like("a\\b") == "a\\\\b"


class TestDatabaseCacheService:
    """Tests para DatabaseCacheService sobre SQLite en memoria."""

    @pytest.mark.asyncio
    async def test_second_acquire_fails_while_held(self, session_factory) -> None:
        cache = DatabaseCacheService(session_factory)

        assert await cache.acquire_lock("mec:sync:lock", ttl=60) is True
        assert await cache.acquire_lock("mec:sync:lock", ttl=60) is False
        assert await cache.is_locked("mec:sync:lock") is True

    @pytest.mark.asyncio
    async def test_lock_reacquired_after_ttl(self, session_factory) -> None:
        clock = _FakeClock(datetime(2026, 1, 1, tzinfo=timezone.utc))
        cache = DatabaseCacheService(session_factory, clock=clock)

        assert await cache.acquire_lock("lock", ttl=60) is True
        clock.advance(timedelta(seconds=61))

        assert await cache.is_locked("lock") is False
        assert await cache.acquire_lock("lock", ttl=60) is True

    @pytest.mark.asyncio
    async def test_release_allows_new_holder(self, session_factory) -> None:
        cache = DatabaseCacheService(session_factory)

        await cache.acquire_lock("lock", ttl=60)
        await cache.release_lock("lock")

        assert await cache.acquire_lock("lock", ttl=60) is True

    @pytest.mark.asyncio
    async def test_expired_holder_does_not_release_new_holder_lock(self, session_factory) -> None:
        clock = _FakeClock(datetime(2026, 1, 1, tzinfo=timezone.utc))
        instance_a = DatabaseCacheService(session_factory, clock=clock)
        instance_b = DatabaseCacheService(session_factory, clock=clock)

        assert await instance_a.acquire_lock("mec:sync:lock", ttl=60, token="run-a") is True
        clock.advance(timedelta(seconds=61))
        assert await instance_b.acquire_lock("mec:sync:lock", ttl=60, token="run-b") is True

        await instance_a.release_lock("mec:sync:lock", token="run-a")

        assert await instance_b.is_locked("mec:sync:lock") is True
        assert await instance_a.acquire_lock("mec:sync:lock", ttl=60, token="run-c") is False

        await instance_b.release_lock("mec:sync:lock", token="run-b")
        assert await instance_a.is_locked("mec:sync:lock") is False

    @pytest.mark.asyncio
    async def test_set_overwrites_and_get_respects_ttl(self, session_factory) -> None:
        clock = _FakeClock(datetime(2026, 1, 1, tzinfo=timezone.utc))
        cache = DatabaseCacheService(session_factory, clock=clock)

        await cache.set("k", {"v": 1}, ttl=10)
        await cache.set("k", {"v": 2}, ttl=10)
        assert await cache.get("k") == {"v": 2}

        clock.advance(timedelta(seconds=10))
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_value_without_ttl_never_expires(self, session_factory) -> None:
        cache = DatabaseCacheService(session_factory)

        await cache.set("k", ["SP", "RJ"])

        assert await cache.get("k") == ["SP", "RJ"]

    @pytest.mark.asyncio
    async def test_delete_pattern_only_matches_prefix(self, session_factory) -> None:
        cache = DatabaseCacheService(session_factory)
        await cache.set("mec:institutions:uf:SP", [1])
        await cache.set("mec:institutions:uf:RJ", [2])
        await cache.set("mec:institutions:list", [3])

        removed = await cache.delete_pattern("mec:institutions:uf:*")

        assert removed == 2
        assert await cache.get("mec:institutions:list") == [3]

    @pytest.mark.asyncio
    async def test_purge_expired(self, session_factory) -> None:
        clock = _FakeClock(datetime(2026, 1, 1, tzinfo=timezone.utc))
        cache = DatabaseCacheService(session_factory, clock=clock)
        await cache.set("old", 1, ttl=1)
        await cache.set("keep", 2)
        clock.advance(timedelta(seconds=2))

        assert await cache.purge_expired() == 1
        assert await cache.get("keep") == 2


class TestBuildCacheService:
    def test_memory_backend(self) -> None:
        assert isinstance(build_cache_service(backend="memory"), InMemoryCacheService)

    def test_database_backend(self, session_factory) -> None:
        cache = build_cache_service(session_factory, backend="database")

        assert isinstance(cache, DatabaseCacheService)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError):
            build_cache_service(backend="redis")
