"""
Configuración de fixtures para pytest.
"""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Registrar modelos en Base.metadata
import app.infrastructure.database  # noqa: F401
from app.infrastructure.cache.memory_cache import InMemoryCacheService
from app.infrastructure.database.session import Base


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

CSV_HEADER = (
    "CODIGO_IES,NOME_IES,CATEGORIA_ADMINISTRATIVA,ORGANIZACAO_ACADEMICA,CODIGO_CURSO,"
    "NOME_CURSO,GRAU,AREA_OCDE,MODALIDADE,SITUACAO_CURSO,CARGA_HORARIA,AREA_OCDE_CINE,"
    "CODIGO_MUNICIPIO,MUNICIPIO,UF"
)


def csv_line(
    ies: str = "1",
    ies_name: str = "UNIVERSIDADE FEDERAL DE MATO GROSSO",
    course: str = "100",
    course_name: str = "DIREITO",
    uf: str = "MT",
    category: str = "1",
    organization: str = "1",
    degree: str = "1",
    modality: str = "1",
    status: str = "1",
    hours: str = "3700",
    area: str = "Direito",
    municipality_code: str = "5103403",
    municipality: str = "CUIABA",
) -> str:
    """Linea CSV con el layout del dataset 2022."""
    return ",".join([
        ies, ies_name, category, organization, course, course_name, degree,
        area, modality, status, hours, area, municipality_code, municipality, uf,
    ])


def build_csv(*lines: str, crlf: bool = False) -> str:
    newline = "\r\n" if crlf else "\n"
    return newline.join([CSV_HEADER, *lines]) + newline


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Engine SQLite en memoria por test.
    StaticPool: todas las sesiones comparten la misma conexion (y la misma base).
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sesión de base de datos para tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def memory_cache() -> InMemoryCacheService:
    return InMemoryCacheService()


@pytest.fixture
def make_csv_line():
    """Fabrica de lineas CSV (ver csv_line)."""
    return csv_line


@pytest.fixture
def make_csv():
    """Fabrica de CSV completos con header (ver build_csv)."""
    return build_csv
