"""
Capa de lectura del catalogo MEC (cache-aside).

Las claves se invalidan desde el orquestador despues de cada reconciliacion
exitosa (ver mec_constants.MEC_READ_CACHE_PATTERNS).
"""
import hashlib
from typing import Any, Awaitable, Callable, List, Optional, Type, TypeVar

from loguru import logger
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dto.mec_dto import (
    CountByKeyDTO,
    CourseDTO,
    InstitutionDTO,
    InstitutionDetailDTO,
    MecStatsDTO,
)
from app.core.config import settings
from app.infrastructure.cache.base import CacheService
from app.infrastructure.repositories.mec_course_repository import MecCourseRepository
from app.infrastructure.repositories.mec_institution_repository import MecInstitutionRepository
from app.shared.constants.mec_constants import (
    MEC_COURSE_BY_CODE_PREFIX,
    MEC_COURSES_BY_INSTITUTION_PREFIX,
    MEC_COURSES_SEARCH_PREFIX,
    MEC_INSTITUTION_BY_CODE_PREFIX,
    MEC_INSTITUTIONS_BY_STATE_PREFIX,
    MEC_INSTITUTIONS_LIST_KEY,
    MEC_INSTITUTIONS_SEARCH_PREFIX,
    MEC_KNOWLEDGE_AREAS_KEY,
    MEC_STATES_LIST_KEY,
    MEC_STATS_KEY,
    MEC_SYNC_METADATA_KEY,
)


log = logger.bind(context="MecQuery")

DTO = TypeVar("DTO", bound=BaseModel)

MIN_SEARCH_LENGTH = 2
DEFAULT_SEARCH_LIMIT = 20


def search_cache_key(prefix: str, query: str, *parts: Any) -> str:
    """Clave de busqueda: prefijo + md5 (8 chars) de la query normalizada."""
    digest = hashlib.md5(query.encode("utf-8")).hexdigest()[:8]
    suffix = ":".join(str(part) for part in parts)
    return f"{prefix}{digest}:{suffix}" if suffix else f"{prefix}{digest}"


class MecQueryUseCases:
    """Consultas de instituciones y cursos con cache-aside."""

    def __init__(self, db: AsyncSession, cache: CacheService):
        self.db = db
        self.cache = cache
        self.institutions = MecInstitutionRepository(db)
        self.courses = MecCourseRepository(db)

    async def _cached_list(
        self,
        key: str,
        dto: Type[DTO],
        ttl: int,
        loader: Callable[[], Awaitable[List[DTO]]],
    ) -> List[DTO]:
        cached = await self.cache.get(key)
        if cached is not None:
            return [dto.model_validate(item) for item in cached]

        result = await loader()
        await self.cache.set(key, [item.model_dump(mode="json") for item in result], ttl=ttl)
        return result

    async def _cached_values(self, key: str, ttl: int, loader: Callable[[], Awaitable[List[str]]]) -> List[str]:
        cached = await self.cache.get(key)
        if cached is not None:
            return list(cached)

        result = await loader()
        await self.cache.set(key, result, ttl=ttl)
        return result

    # Instituciones

    async def get_all_institutions(self) -> List[InstitutionDTO]:
        async def load() -> List[InstitutionDTO]:
            rows = await self.institutions.find_all_active()
            log.debug(f"{len(rows)} instituciones cargadas desde la base")
            return [InstitutionDTO.model_validate(row) for row in rows]

        return await self._cached_list(
            MEC_INSTITUTIONS_LIST_KEY, InstitutionDTO, settings.MEC_CACHE_TTL_INSTITUTIONS, load
        )

    async def get_institutions_by_state(self, state_code: str) -> List[InstitutionDTO]:
        state_code = state_code.strip().upper()

        async def load() -> List[InstitutionDTO]:
            rows = await self.institutions.find_by_state(state_code)
            return [InstitutionDTO.model_validate(row) for row in rows]

        return await self._cached_list(
            f"{MEC_INSTITUTIONS_BY_STATE_PREFIX}{state_code}",
            InstitutionDTO,
            settings.MEC_CACHE_TTL_INSTITUTIONS,
            load,
        )

    async def search_institutions(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[InstitutionDTO]:
        """Busqueda por nombre o sigla. Menos de 2 caracteres -> []."""
        normalized = query.strip().lower()
        if len(normalized) < MIN_SEARCH_LENGTH:
            return []

        async def load() -> List[InstitutionDTO]:
            rows = await self.institutions.search_by_name(normalized, limit=limit)
            return [InstitutionDTO.model_validate(row) for row in rows]

        return await self._cached_list(
            search_cache_key(MEC_INSTITUTIONS_SEARCH_PREFIX, normalized, limit),
            InstitutionDTO,
            settings.MEC_CACHE_TTL_SEARCH,
            load,
        )

    async def get_institution_by_code(self, code: int) -> Optional[InstitutionDetailDTO]:
        """Institucion con sus cursos activos, o None si no existe."""
        key = f"{MEC_INSTITUTION_BY_CODE_PREFIX}{code}"
        cached = await self.cache.get(key)
        if cached is not None:
            return InstitutionDetailDTO.model_validate(cached)

        institution = await self.institutions.find_by_code(code)
        if institution is None:
            return None

        courses = await self.courses.find_by_institution(code)
        detail = InstitutionDetailDTO(
            **InstitutionDTO.model_validate(institution).model_dump(),
            courses=[CourseDTO.model_validate(course) for course in courses],
        )
        await self.cache.set(key, detail.model_dump(mode="json"), ttl=settings.MEC_CACHE_TTL_INSTITUTIONS)
        return detail

    # Cursos

    async def get_courses_by_institution(self, institution_code: int) -> List[CourseDTO]:
        async def load() -> List[CourseDTO]:
            rows = await self.courses.find_by_institution(institution_code)
            return [CourseDTO.model_validate(row) for row in rows]

        return await self._cached_list(
            f"{MEC_COURSES_BY_INSTITUTION_PREFIX}{institution_code}",
            CourseDTO,
            settings.MEC_CACHE_TTL_COURSES,
            load,
        )

    async def search_courses(
        self,
        query: str,
        institution_code: Optional[int] = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> List[CourseDTO]:
        """Busqueda por nombre de curso. Menos de 2 caracteres -> []."""
        normalized = query.strip().lower()
        if len(normalized) < MIN_SEARCH_LENGTH:
            return []

        async def load() -> List[CourseDTO]:
            rows = await self.courses.search_by_name(normalized, institution_code=institution_code, limit=limit)
            return [CourseDTO.model_validate(row) for row in rows]

        return await self._cached_list(
            search_cache_key(MEC_COURSES_SEARCH_PREFIX, normalized, institution_code or "all", limit),
            CourseDTO,
            settings.MEC_CACHE_TTL_SEARCH,
            load,
        )

    async def get_course_by_code(self, code: int) -> Optional[CourseDTO]:
        key = f"{MEC_COURSE_BY_CODE_PREFIX}{code}"
        cached = await self.cache.get(key)
        if cached is not None:
            return CourseDTO.model_validate(cached)

        course = await self.courses.find_by_code(code)
        if course is None:
            return None

        dto = CourseDTO.model_validate(course)
        await self.cache.set(key, dto.model_dump(mode="json"), ttl=settings.MEC_CACHE_TTL_COURSES)
        return dto

    # Metadatos

    async def get_state_list(self) -> List[str]:
        return await self._cached_values(
            MEC_STATES_LIST_KEY, settings.MEC_CACHE_TTL_INSTITUTIONS, self.institutions.find_distinct_states
        )

    async def get_knowledge_areas(self) -> List[str]:
        return await self._cached_values(
            MEC_KNOWLEDGE_AREAS_KEY, settings.MEC_CACHE_TTL_COURSES, self.courses.find_distinct_knowledge_areas
        )

    async def get_stats(self) -> MecStatsDTO:
        """Totales del catalogo + snapshot del ultimo sync (no cacheado)."""
        cached = await self.cache.get(MEC_STATS_KEY)
        if cached is not None:
            stats = MecStatsDTO.model_validate(cached)
        else:
            stats = MecStatsDTO(
                total_institutions=await self.institutions.count_active(),
                total_courses=await self.courses.count_active(),
                institutions_by_state=[
                    CountByKeyDTO(key=state, count=total)
                    for state, total in await self.institutions.count_by_state()
                ],
                courses_by_degree=[
                    CountByKeyDTO(key=degree, count=total)
                    for degree, total in await self.courses.count_by_degree()
                ],
            )
            await self.cache.set(MEC_STATS_KEY, stats.model_dump(mode="json"), ttl=settings.MEC_CACHE_TTL_INSTITUTIONS)

        stats.last_sync = await self.cache.get(MEC_SYNC_METADATA_KEY)
        return stats
