"""
DTOs del Sync Engine MEC (historial de corridas y capa de lectura).

Todos se serializan con model_dump(mode="json") para guardarse en cache.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SyncRunDTO(BaseModel):
    """Una corrida de mec_sync_logs."""

    id: int
    triggered_by: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    institutions_inserted: int = 0
    institutions_updated: int = 0
    courses_inserted: int = 0
    courses_updated: int = 0
    total_rows_processed: int = 0
    parse_errors_count: int = 0
    source_file_size: Optional[int] = None
    source_url: Optional[str] = None
    error_message: Optional[str] = None
    error_details: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class SyncStatusDTO(BaseModel):
    """Payload de estado: lock, snapshot de metadata, ultima corrida y cache local."""

    is_running: bool
    metadata: Optional[Dict[str, Any]] = None
    last_run: Optional[SyncRunDTO] = None
    csv_cache_fresh: bool = False
    csv_cache_path: Optional[str] = None


class CourseDTO(BaseModel):
    code: int
    institution_code: int
    name: str
    degree_kind: str
    modality: str
    knowledge_area: Optional[str] = None
    hours_load: Optional[int] = None
    status_kind: str

    class Config:
        from_attributes = True


class InstitutionDTO(BaseModel):
    code: int
    name: str
    short_name: Optional[str] = None
    organization_kind: str
    category: str
    state_code: str
    municipality: Optional[str] = None
    municipality_code: Optional[int] = None

    class Config:
        from_attributes = True


class InstitutionDetailDTO(InstitutionDTO):
    """Institucion con sus cursos activos."""

    courses: List[CourseDTO] = Field(default_factory=list)


class CountByKeyDTO(BaseModel):
    key: str
    count: int


class MecStatsDTO(BaseModel):
    """Totales del catalogo para dashboards."""

    total_institutions: int
    total_courses: int
    institutions_by_state: List[CountByKeyDTO] = Field(default_factory=list)
    courses_by_degree: List[CountByKeyDTO] = Field(default_factory=list)
    last_sync: Optional[Dict[str, Any]] = None
