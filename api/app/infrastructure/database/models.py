"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import Column, String, Integer, BigInteger, DateTime, Text, JSON, Boolean, ForeignKey
from sqlalchemy.sql import func

from app.infrastructure.database.session import Base
from app.shared.constants.mec_constants import SyncStatus


class MecInstitutionModel(Base):
    """
    Institucion de ensino superior (IES) del dataset MEC.

    `code` es la clave natural (CO_IES). El reconciler solo inserta filas nuevas,
    nunca actualiza las existentes.
    """

    __tablename__ = "mec_institutions"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(Integer, nullable=False, unique=True, index=True)
    name = Column(String(500), nullable=False, index=True)
    short_name = Column(String(50), nullable=True)
    organization_kind = Column(String(100), nullable=False)
    category = Column(String(100), nullable=False)
    state_code = Column(String(2), nullable=False, index=True)
    municipality = Column(String(255), nullable=True)
    municipality_code = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<MecInstitution(code={self.code}, name={self.name}, uf={self.state_code})>"


class MecCourseModel(Base):
    """Curso de graduacion. `institution_code` referencia mec_institutions.code."""

    __tablename__ = "mec_courses"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(Integer, nullable=False, unique=True, index=True)
    institution_code = Column(
        Integer,
        ForeignKey("mec_institutions.code", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(500), nullable=False, index=True)
    degree_kind = Column(String(100), nullable=False)
    modality = Column(String(50), nullable=False)
    knowledge_area = Column(String(255), nullable=True, index=True)
    hours_load = Column(Integer, nullable=True)
    status_kind = Column(String(50), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<MecCourse(code={self.code}, name={self.name}, ies={self.institution_code})>"


class MecSyncLogModel(Base):
    """
    Historial de corridas de sincronizacion.

    Se crea en estado pending al inicio y se actualiza una sola vez a success/failed.
    Nunca se borra.
    """

    __tablename__ = "mec_sync_logs"

    id = Column(Integer, primary_key=True, index=True)
    triggered_by = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default=SyncStatus.PENDING.value, index=True)
    started_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    institutions_inserted = Column(Integer, nullable=False, default=0)
    institutions_updated = Column(Integer, nullable=False, default=0)
    courses_inserted = Column(Integer, nullable=False, default=0)
    courses_updated = Column(Integer, nullable=False, default=0)
    total_rows_processed = Column(Integer, nullable=False, default=0)
    parse_errors_count = Column(Integer, nullable=False, default=0)
    source_file_size = Column(BigInteger, nullable=True)
    source_url = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    error_details = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<MecSyncLog(id={self.id}, status={self.status}, triggered_by={self.triggered_by})>"


class CacheEntryModel(Base):
    """
    Entradas de cache compartidas entre instancias (lock del sync, metadata,
    cache de lectura). `expires_at` NULL = sin expiracion.
    """

    __tablename__ = "cache_entries"

    key = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)

    def __repr__(self):
        return f"<CacheEntry(key={self.key}, expires_at={self.expires_at})>"
