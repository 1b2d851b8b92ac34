"""
Repositorio del historial de corridas (mec_sync_logs).
"""
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.infrastructure.database.models import MecSyncLogModel
from app.shared.constants.mec_constants import SyncStatus
from app.shared.utils.datetime_utils import DateTimeUtils


class MecSyncLogRepository:
    """
    Gestiona la tabla mec_sync_logs.
    El orquestador es el unico que escribe aqui.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_run(self, triggered_by: str, source_url: Optional[str] = None) -> MecSyncLogModel:
        """Crea la corrida en estado pending."""
        run = MecSyncLogModel(
            triggered_by=triggered_by,
            status=SyncStatus.PENDING.value,
            started_at=DateTimeUtils.now_utc(),
            source_url=source_url,
        )
        self.db.add(run)
        await self.db.flush()
        await self.db.refresh(run)
        logger.bind(context="MecSync").debug(f"Sync log creado: id={run.id}, triggered_by={triggered_by}")
        return run

    async def update_run(self, run_id: int, **fields: Any) -> Optional[MecSyncLogModel]:
        """Actualiza columnas de la corrida. Retorna None si no existe."""
        run = await self.db.get(MecSyncLogModel, run_id)
        if run is None:
            return None

        for name, value in fields.items():
            if isinstance(value, SyncStatus):
                value = value.value
            setattr(run, name, value)

        await self.db.flush()
        return run

    async def find_by_id(self, run_id: int) -> Optional[MecSyncLogModel]:
        return await self.db.get(MecSyncLogModel, run_id)

    async def find_history(self, limit: int = 10) -> List[MecSyncLogModel]:
        """Corridas mas recientes primero."""
        query = (
            select(MecSyncLogModel)
            .order_by(MecSyncLogModel.started_at.desc(), MecSyncLogModel.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_last_run(self) -> Optional[MecSyncLogModel]:
        runs = await self.find_history(limit=1)
        return runs[0] if runs else None
