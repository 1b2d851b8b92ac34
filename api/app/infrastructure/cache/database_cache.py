"""
Cache compartido respaldado por la tabla cache_entries.

Todas las instancias del proceso de sync ven las mismas claves, por lo que el
lock del sync sirve entre instancias. Es exclusion mutua "best effort" acotada
por TTL: si el holder muere, el lock queda tomado hasta que expire. El lock
guarda el token del holder; un holder que tardo mas que el TTL no puede borrar
el lock que otro tomo despues.

Cada operacion abre su propia sesion y hace commit, independiente de la
transaccion del caller.
"""
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from loguru import logger
from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.infrastructure.cache.base import CacheService
from app.infrastructure.database.models import CacheEntryModel
from app.infrastructure.repositories.search import LIKE_ESCAPE, escape_like
from app.shared.utils.datetime_utils import DateTimeUtils


log = logger.bind(context="Cache")


def glob_to_like(pattern: str) -> str:
    """Traduce un glob (`*`, `?`) a patron LIKE con escape `\\`."""
    return escape_like(pattern).replace("*", "%").replace("?", "_")


class DatabaseCacheService(CacheService):
    """Implementacion SQL de CacheService (PostgreSQL en produccion, SQLite en tests)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = DateTimeUtils.now_utc,
    ):
        self._session_factory = session_factory
        self._clock = clock

    def _expires_at(self, ttl: Optional[int]) -> Optional[datetime]:
        return self._clock() + timedelta(seconds=ttl) if ttl is not None else None

    def _is_expired(self, entry: CacheEntryModel) -> bool:
        if entry.expires_at is None:
            return False
        return DateTimeUtils.ensure_utc(entry.expires_at) <= self._clock()

    async def acquire_lock(self, key: str, ttl: int, token: Optional[str] = None) -> bool:
        async with self._session_factory() as session:
            now = self._clock()
            # Un holder expirado no bloquea
            await session.execute(
                delete(CacheEntryModel).where(
                    CacheEntryModel.key == key,
                    CacheEntryModel.expires_at.is_not(None),
                    CacheEntryModel.expires_at <= now,
                )
            )
            session.add(CacheEntryModel(
                key=key,
                value={"token": token, "locked_at": now.isoformat()},
                expires_at=self._expires_at(ttl),
            ))
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                log.debug(f"Lock '{key}' ocupado")
                return False
        log.debug(f"Lock '{key}' adquirido (ttl={ttl}s)")
        return True

    async def release_lock(self, key: str, token: Optional[str] = None) -> None:
        if token is None:
            await self.delete(key)
            return

        async with self._session_factory() as session:
            entry = await session.get(CacheEntryModel, key)
            if entry is None:
                return
            if (entry.value or {}).get("token") != token:
                log.warning(f"Lock '{key}' pertenece a otro holder; no se libera")
                return
            await session.delete(entry)
            await session.commit()

    async def is_locked(self, key: str) -> bool:
        async with self._session_factory() as session:
            entry = await session.get(CacheEntryModel, key)
            return entry is not None and not self._is_expired(entry)

    async def get(self, key: str) -> Optional[Any]:
        async with self._session_factory() as session:
            entry = await session.get(CacheEntryModel, key)
            if entry is None or self._is_expired(entry):
                return None
            return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        async with self._session_factory() as session:
            dialect = session.get_bind().dialect.name
            insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert
            expires_at = self._expires_at(ttl)
            stmt = insert_fn(CacheEntryModel).values(key=key, value=value, expires_at=expires_at)
            stmt = stmt.on_conflict_do_update(
                index_elements=[CacheEntryModel.key],
                set_={"value": stmt.excluded.value, "expires_at": stmt.excluded.expires_at},
            )
            await session.execute(stmt)
            await session.commit()

    async def delete(self, key: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(CacheEntryModel).where(CacheEntryModel.key == key))
            await session.commit()

    async def delete_pattern(self, pattern: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(CacheEntryModel).where(CacheEntryModel.key.like(glob_to_like(pattern), escape=LIKE_ESCAPE))
            )
            await session.commit()
            return result.rowcount or 0

    async def purge_expired(self) -> int:
        """Elimina entradas expiradas. Retorna cuantas."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(CacheEntryModel).where(
                    CacheEntryModel.expires_at.is_not(None),
                    CacheEntryModel.expires_at <= self._clock(),
                )
            )
            await session.commit()
            return result.rowcount or 0
