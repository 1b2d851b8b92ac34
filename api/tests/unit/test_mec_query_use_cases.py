"""
Tests unitarios para la capa de lectura del catalogo MEC (cache-aside).
"""
from __future__ import annotations

import pytest
import pytest_asyncio

from app.application.use_cases.mec_query_use_cases import MecQueryUseCases, search_cache_key
from app.domain.entities.mec import NormalizedCourse, NormalizedInstitution
from app.infrastructure.repositories.mec_course_repository import MecCourseRepository
from app.infrastructure.repositories.mec_institution_repository import MecInstitutionRepository
from app.shared.constants.mec_constants import (
    MEC_INSTITUTIONS_LIST_KEY,
    MEC_STATS_KEY,
    MEC_SYNC_METADATA_KEY,
)


@pytest_asyncio.fixture
async def seeded_session(db_session):
    """Dos instituciones (SP, RJ) y tres cursos."""
    await MecInstitutionRepository(db_session).bulk_create([
        NormalizedInstitution(
            code=1, name="Universidade de São Paulo", short_name="USP",
            organization_kind="Universidade", category="Pública Estadual", state_code="SP",
        ),
        NormalizedInstitution(
            code=2, name="Universidade Federal do Rio de Janeiro", short_name="UFRJ",
            organization_kind="Universidade", category="Pública Federal", state_code="RJ",
        ),
    ])
    await MecCourseRepository(db_session).bulk_create([
        NormalizedCourse(
            code=10, institution_code=1, name="Direito", degree_kind="Bacharelado",
            modality="Presencial", status_kind="Em atividade", knowledge_area="Direito",
        ),
        NormalizedCourse(
            code=11, institution_code=1, name="Medicina", degree_kind="Bacharelado",
            modality="Presencial", status_kind="Em atividade", knowledge_area="Saúde",
        ),
        NormalizedCourse(
            code=20, institution_code=2, name="Pedagogia", degree_kind="Licenciatura",
            modality="A distância", status_kind="Em atividade", knowledge_area="Educação",
        ),
    ])
    await db_session.commit()
    return db_session


@pytest.fixture
def queries(seeded_session, memory_cache) -> MecQueryUseCases:
    return MecQueryUseCases(seeded_session, memory_cache)


class TestSearchCacheKey:
    def test_key_is_stable_and_short(self) -> None:
        key = search_cache_key("mec:courses:search:", "direito", "all", 20)

        assert key == search_cache_key("mec:courses:search:", "direito", "all", 20)
        assert key.startswith("mec:courses:search:")
        assert key.endswith(":all:20")
        assert len(key.split(":")[3]) == 8


class TestInstitutionQueries:
    """Tests de consultas de instituciones."""

    @pytest.mark.asyncio
    async def test_all_institutions_are_cached(self, queries, memory_cache) -> None:
        first = await queries.get_all_institutions()

        assert sorted(i.code for i in first) == [1, 2]
        assert len(await memory_cache.get(MEC_INSTITUTIONS_LIST_KEY)) == 2

    @pytest.mark.asyncio
    async def test_cache_hit_does_not_touch_database(self, queries, memory_cache) -> None:
        await memory_cache.set(MEC_INSTITUTIONS_LIST_KEY, [{
            "code": 99, "name": "Somente Cache", "organization_kind": "Faculdade",
            "category": "Privada", "state_code": "MT",
        }])

        result = await queries.get_all_institutions()

        assert [i.code for i in result] == [99]

    @pytest.mark.asyncio
    async def test_by_state_is_case_insensitive(self, queries) -> None:
        result = await queries.get_institutions_by_state(" rj ")

        assert [i.short_name for i in result] == ["UFRJ"]

    @pytest.mark.asyncio
    async def test_search_by_short_name(self, queries) -> None:
        result = await queries.search_institutions("usp")

        assert [i.code for i in result] == [1]

    @pytest.mark.asyncio
    async def test_like_wildcards_are_matched_literally(self, queries) -> None:
        assert await queries.search_institutions("%%") == []
        assert await queries.search_institutions("__") == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", " ", "u"])
    async def test_short_query_returns_empty(self, queries, memory_cache, query: str) -> None:
        assert await queries.search_institutions(query) == []
        assert await queries.search_courses(query) == []

    @pytest.mark.asyncio
    async def test_detail_includes_courses(self, queries) -> None:
        detail = await queries.get_institution_by_code(1)

        assert detail.name == "Universidade de São Paulo"
        assert sorted(c.code for c in detail.courses) == [10, 11]

    @pytest.mark.asyncio
    async def test_unknown_institution_returns_none(self, queries) -> None:
        assert await queries.get_institution_by_code(404) is None


class TestCourseQueries:
    """Tests de consultas de cursos."""

    @pytest.mark.asyncio
    async def test_courses_by_institution(self, queries) -> None:
        result = await queries.get_courses_by_institution(1)

        assert [c.name for c in result] == ["Direito", "Medicina"]

    @pytest.mark.asyncio
    async def test_search_courses_filtered_by_institution(self, queries) -> None:
        assert [c.code for c in await queries.search_courses("dagog")] == [20]
        assert await queries.search_courses("dagog", institution_code=1) == []

    @pytest.mark.asyncio
    async def test_underscore_does_not_match_any_character(self, queries) -> None:
        assert await queries.search_courses("di_eito") == []
        assert await queries.search_courses("%%") == []
        assert [c.code for c in await queries.search_courses("direito")] == [10]

    @pytest.mark.asyncio
    async def test_course_by_code(self, queries) -> None:
        course = await queries.get_course_by_code(11)

        assert course.knowledge_area == "Saúde"
        assert await queries.get_course_by_code(404) is None


class TestMetadataQueries:
    """Tests de listas auxiliares y estadisticas."""

    @pytest.mark.asyncio
    async def test_state_list_and_knowledge_areas(self, queries) -> None:
        assert await queries.get_state_list() == ["RJ", "SP"]
        assert await queries.get_knowledge_areas() == ["Direito", "Educação", "Saúde"]

    @pytest.mark.asyncio
    async def test_stats_attach_last_sync_snapshot(self, queries, memory_cache) -> None:
        await memory_cache.set(MEC_SYNC_METADATA_KEY, {"last_sync_status": "success"})

        stats = await queries.get_stats()

        assert stats.total_institutions == 2
        assert stats.total_courses == 3
        assert {(c.key, c.count) for c in stats.institutions_by_state} == {("SP", 1), ("RJ", 1)}
        assert stats.courses_by_degree[0].key == "Bacharelado"
        assert stats.courses_by_degree[0].count == 2
        assert stats.last_sync == {"last_sync_status": "success"}

        cached = await memory_cache.get(MEC_STATS_KEY)
        assert cached["last_sync"] is None
