"""
Repositorio de instituciones MEC (mec_institutions).
"""
from typing import List, Optional, Sequence, Set, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.entities.mec import NormalizedInstitution
from app.infrastructure.database.models import MecInstitutionModel
from app.infrastructure.repositories.bulk_insert import insert_ignoring_conflicts
from app.infrastructure.repositories.search import LIKE_ESCAPE, contains_pattern


class MecInstitutionRepository:
    """
    Acceso a mec_institutions.

    Escritura: solo insert (append-only) desde el reconciler.
    Lectura: consultas de la capa de lectura.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_all_existing_codes(self) -> Set[int]:
        """Conjunto de codigos ya persistidos (una sola query)."""
        result = await self.db.execute(select(MecInstitutionModel.code))
        return set(result.scalars().all())

    async def bulk_create(self, institutions: Sequence[NormalizedInstitution], batch_size: int = 500) -> int:
        """Inserta en bloques; codigos duplicados se ignoran."""
        return await insert_ignoring_conflicts(
            self.db,
            MecInstitutionModel,
            [institution.to_record() for institution in institutions],
            conflict_column="code",
            batch_size=batch_size,
        )

    async def find_all_active(self) -> List[MecInstitutionModel]:
        query = (
            select(MecInstitutionModel)
            .where(MecInstitutionModel.is_active.is_(True))
            .order_by(MecInstitutionModel.name)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_by_state(self, state_code: str) -> List[MecInstitutionModel]:
        query = (
            select(MecInstitutionModel)
            .where(
                MecInstitutionModel.state_code == state_code.upper(),
                MecInstitutionModel.is_active.is_(True),
            )
            .order_by(MecInstitutionModel.name)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def search_by_name(self, text: str, limit: int = 50) -> List[MecInstitutionModel]:
        """Busqueda por nombre o sigla (case-insensitive)."""
        pattern = contains_pattern(text)
        query = (
            select(MecInstitutionModel)
            .where(
                MecInstitutionModel.is_active.is_(True),
                MecInstitutionModel.name.ilike(pattern, escape=LIKE_ESCAPE)
                | MecInstitutionModel.short_name.ilike(pattern, escape=LIKE_ESCAPE),
            )
            .order_by(MecInstitutionModel.name)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_by_code(self, code: int) -> Optional[MecInstitutionModel]:
        query = select(MecInstitutionModel).where(MecInstitutionModel.code == code)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def find_distinct_states(self) -> List[str]:
        query = (
            select(MecInstitutionModel.state_code)
            .where(MecInstitutionModel.is_active.is_(True))
            .distinct()
            .order_by(MecInstitutionModel.state_code)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_active(self) -> int:
        query = select(func.count()).select_from(MecInstitutionModel).where(
            MecInstitutionModel.is_active.is_(True)
        )
        result = await self.db.execute(query)
        return int(result.scalar_one())

    async def count_by_state(self) -> List[Tuple[str, int]]:
        """Pares (UF, cantidad) ordenados por cantidad descendente."""
        count = func.count(MecInstitutionModel.id)
        query = (
            select(MecInstitutionModel.state_code, count)
            .where(MecInstitutionModel.is_active.is_(True))
            .group_by(MecInstitutionModel.state_code)
            .order_by(count.desc(), MecInstitutionModel.state_code)
        )
        result = await self.db.execute(query)
        return [(state, int(total)) for state, total in result.all()]
