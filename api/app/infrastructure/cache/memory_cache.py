"""Cache en memoria thread-safe con TTL por clave (un solo proceso)."""

from __future__ import annotations

import fnmatch
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from app.infrastructure.cache.base import CacheService


class InMemoryCacheService(CacheService):
    """
    Dict de (valor, expires_at) protegido con threading.Lock.

    Solo da exclusion mutua dentro del proceso; para varias instancias usar
    DatabaseCacheService.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _expires_at(self, ttl: Optional[int]) -> Optional[float]:
        return self._clock() + ttl if ttl is not None else None

    def _alive(self, key: str) -> bool:
        # Debe llamarse con self._lock tomado
        entry = self._store.get(key)
        if entry is None:
            return False
        _, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._store[key]
            return False
        return True

    async def acquire_lock(self, key: str, ttl: int, token: Optional[str] = None) -> bool:
        with self._lock:
            if self._alive(key):
                return False
            self._store[key] = (token or "1", self._expires_at(ttl))
            return True

    async def release_lock(self, key: str, token: Optional[str] = None) -> None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return
            if token is not None and entry[0] != token:
                return
            del self._store[key]

    async def is_locked(self, key: str) -> bool:
        with self._lock:
            return self._alive(key)

    async def get(self, key: str) -> Optional[Any]:
        with self._lock:
            if not self._alive(key):
                return None
            return self._store[key][0]

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        with self._lock:
            self._store[key] = (value, self._expires_at(ttl))

    async def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            matched = [k for k in self._store if fnmatch.fnmatchcase(k, pattern)]
            for k in matched:
                del self._store[k]
            return len(matched)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
