"""
Reconciliacion del resultado del parseo contra la base relacional.

Politica append-only: solo se insertan claves nuevas; las filas existentes no
se actualizan (updated = 0 siempre). Los cambios de nombre o estado en el
MEC no se reflejan en filas ya existentes.
"""
from typing import Iterable, List, Set

from loguru import logger

from app.domain.entities.mec import NormalizedCourse, NormalizedInstitution, ReconcileCounts
from app.infrastructure.repositories.mec_course_repository import MecCourseRepository
from app.infrastructure.repositories.mec_institution_repository import MecInstitutionRepository


log = logger.bind(context="MecReconciler")


class MecDataReconciler:
    """
    Inserta instituciones y cursos nuevos en bloques.
    Instituciones primero: los cursos necesitan que su IES exista.
    """

    def __init__(
        self,
        institution_repository: MecInstitutionRepository,
        course_repository: MecCourseRepository,
        batch_size: int = 500,
    ):
        self.institution_repository = institution_repository
        self.course_repository = course_repository
        self.batch_size = batch_size

    async def sync_institutions(self, institutions: Iterable[NormalizedInstitution]) -> ReconcileCounts:
        institutions = list(institutions)
        log.info(f"Sincronizando {len(institutions)} instituciones...")

        existing_codes = await self.institution_repository.find_all_existing_codes()
        new_institutions = [i for i in institutions if i.code not in existing_codes]

        inserted = 0
        if new_institutions:
            inserted = await self.institution_repository.bulk_create(new_institutions, self.batch_size)

        log.info(
            f"Instituciones: {inserted} insertadas, "
            f"{len(institutions) - len(new_institutions)} ya existentes"
        )
        return ReconcileCounts(inserted=inserted)

    async def sync_courses(self, courses: Iterable[NormalizedCourse]) -> ReconcileCounts:
        courses = list(courses)
        log.info(f"Sincronizando {len(courses)} cursos...")

        existing_codes = await self.course_repository.find_all_existing_codes()
        # Releer: incluye las instituciones recien insertadas
        institution_codes = await self.institution_repository.find_all_existing_codes()

        new_courses = self._filter_new_courses(courses, existing_codes, institution_codes)

        inserted = 0
        if new_courses:
            inserted = await self.course_repository.bulk_create(new_courses, self.batch_size)

        log.info(f"Cursos: {inserted} insertados de {len(courses)} leidos")
        return ReconcileCounts(inserted=inserted)

    def _filter_new_courses(
        self,
        courses: List[NormalizedCourse],
        existing_codes: Set[int],
        institution_codes: Set[int],
    ) -> List[NormalizedCourse]:
        """Cursos con codigo nuevo y IES conocida, sin duplicados (gana el primero)."""
        seen: Set[int] = set()
        orphans = 0
        new_courses: List[NormalizedCourse] = []

        for course in courses:
            if course.code in existing_codes or course.code in seen:
                continue
            if course.institution_code not in institution_codes:
                orphans += 1
                continue
            seen.add(course.code)
            new_courses.append(course)

        if orphans:
            log.warning(f"{orphans} cursos omitidos por IES inexistente")
        return new_courses
