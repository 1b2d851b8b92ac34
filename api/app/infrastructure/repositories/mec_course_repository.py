"""
Repositorio de cursos MEC (mec_courses).
"""
from typing import List, Optional, Sequence, Set, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.entities.mec import NormalizedCourse
from app.infrastructure.database.models import MecCourseModel
from app.infrastructure.repositories.bulk_insert import insert_ignoring_conflicts
from app.infrastructure.repositories.search import LIKE_ESCAPE, contains_pattern


class MecCourseRepository:
    """Acceso a mec_courses. Escritura append-only igual que instituciones."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_all_existing_codes(self) -> Set[int]:
        result = await self.db.execute(select(MecCourseModel.code))
        return set(result.scalars().all())

    async def bulk_create(self, courses: Sequence[NormalizedCourse], batch_size: int = 500) -> int:
        return await insert_ignoring_conflicts(
            self.db,
            MecCourseModel,
            [course.to_record() for course in courses],
            conflict_column="code",
            batch_size=batch_size,
        )

    async def find_by_institution(self, institution_code: int) -> List[MecCourseModel]:
        query = (
            select(MecCourseModel)
            .where(
                MecCourseModel.institution_code == institution_code,
                MecCourseModel.is_active.is_(True),
            )
            .order_by(MecCourseModel.name)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_by_code(self, code: int) -> Optional[MecCourseModel]:
        query = select(MecCourseModel).where(MecCourseModel.code == code)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def search_by_name(
        self,
        text: str,
        institution_code: Optional[int] = None,
        limit: int = 50,
    ) -> List[MecCourseModel]:
        """Busqueda por nombre de curso, opcionalmente dentro de una IES."""
        conditions = [
            MecCourseModel.is_active.is_(True),
            MecCourseModel.name.ilike(contains_pattern(text), escape=LIKE_ESCAPE),
        ]
        if institution_code is not None:
            conditions.append(MecCourseModel.institution_code == institution_code)

        query = select(MecCourseModel).where(*conditions).order_by(MecCourseModel.name).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_distinct_knowledge_areas(self) -> List[str]:
        query = (
            select(MecCourseModel.knowledge_area)
            .where(
                MecCourseModel.is_active.is_(True),
                MecCourseModel.knowledge_area.is_not(None),
            )
            .distinct()
            .order_by(MecCourseModel.knowledge_area)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_active(self) -> int:
        query = select(func.count()).select_from(MecCourseModel).where(MecCourseModel.is_active.is_(True))
        result = await self.db.execute(query)
        return int(result.scalar_one())

    async def count_by_degree(self) -> List[Tuple[str, int]]:
        """Pares (grau, cantidad) ordenados por cantidad descendente."""
        count = func.count(MecCourseModel.id)
        query = (
            select(MecCourseModel.degree_kind, count)
            .where(MecCourseModel.is_active.is_(True))
            .group_by(MecCourseModel.degree_kind)
            .order_by(count.desc(), MecCourseModel.degree_kind)
        )
        result = await self.db.execute(query)
        return [(degree, int(total)) for degree, total in result.all()]
