"""
Contrato del servicio de cache compartido.

Lo usa el orquestador para el lock distribuido y la metadata del sync, y la
capa de lectura para cache-aside. Los valores deben ser serializables a JSON.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class CacheService(ABC):
    """Key-value con TTL + lock exclusivo con expiracion."""

    @abstractmethod
    async def acquire_lock(self, key: str, ttl: int, token: Optional[str] = None) -> bool:
        """
        Intenta tomar el lock. True si se obtuvo, False si otro lo tiene.

        token identifica al holder; release_lock con el mismo token solo
        borra el lock si sigue siendo suyo.
        """

    @abstractmethod
    async def release_lock(self, key: str, token: Optional[str] = None) -> None:
        """
        Libera el lock (no falla si ya expiro).

        Con token, un lock que expiro y fue tomado por otro holder queda intacto.
        """

    @abstractmethod
    async def is_locked(self, key: str) -> bool:
        """True si el lock existe y no expiro."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Valor almacenado o None si no existe o expiro."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Guarda un valor. ttl en segundos; None = sin expiracion."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Elimina una clave."""

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """Elimina las claves que coinciden con un glob (`prefix:*`). Retorna cuantas."""
