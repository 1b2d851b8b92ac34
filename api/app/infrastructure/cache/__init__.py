"""
Servicio de cache (lock del sync, metadata y cache de lectura).
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.infrastructure.cache.base import CacheService
from app.infrastructure.cache.database_cache import DatabaseCacheService
from app.infrastructure.cache.memory_cache import InMemoryCacheService


def build_cache_service(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    backend: Optional[str] = None,
) -> CacheService:
    """
    Construye el backend configurado en CACHE_BACKEND.

    - "database": compartido entre instancias (requerido para el lock en produccion)
    - "memory": un solo proceso (tests/desarrollo)
    """
    backend = (backend or settings.CACHE_BACKEND).lower()
    if backend == "memory":
        return InMemoryCacheService()
    if backend == "database":
        if session_factory is None:
            from app.infrastructure.database.session import AsyncSessionLocal
            session_factory = AsyncSessionLocal
        return DatabaseCacheService(session_factory)
    raise ValueError(f"CACHE_BACKEND no soportado: {backend}")


__all__ = [
    "CacheService",
    "DatabaseCacheService",
    "InMemoryCacheService",
    "build_cache_service",
]
