"""
Entidades del dominio MEC (instituciones y cursos de graduacion).

Son estructuras inmutables producidas por el Entity Normalizer y consumidas
por el Reconciler. No realizan I/O.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class NormalizedInstitution:
    """
    Institucion de ensino superior (IES) normalizada.

    Invariante: `code` es entero positivo; `name` y `state_code` no vacios.
    """

    code: int
    name: str
    organization_kind: str
    category: str
    state_code: str
    short_name: Optional[str] = None
    municipality: Optional[str] = None
    municipality_code: Optional[int] = None

    def to_record(self) -> Dict[str, Any]:
        """Columnas listas para insert en mec_institutions."""
        return asdict(self)


@dataclass(frozen=True)
class NormalizedCourse:
    """Curso de graduacion normalizado. `institution_code` referencia la IES."""

    code: int
    institution_code: int
    name: str
    degree_kind: str
    modality: str
    status_kind: str
    knowledge_area: Optional[str] = None
    hours_load: Optional[int] = None

    def to_record(self) -> Dict[str, Any]:
        """Columnas listas para insert en mec_courses."""
        return asdict(self)


@dataclass(frozen=True)
class SyncError:
    """Error de una fila (numero de linea 1-based, el header es la linea 1)."""

    row: int
    message: str


@dataclass
class ParseResult:
    """Salida del Row Processor."""

    institutions: Dict[int, NormalizedInstitution]
    courses: List[NormalizedCourse]
    errors: List[SyncError]
    total_rows: int
    file_size: int


@dataclass(frozen=True)
class ReconcileCounts:
    inserted: int
    updated: int = 0


@dataclass
class SyncResult:
    """Resultado visible para quien dispara sync()."""

    run_id: int
    institutions_inserted: int
    institutions_updated: int
    courses_inserted: int
    courses_updated: int
    total_rows_processed: int
    duration_ms: int
    errors: List[SyncError] = field(default_factory=list)


@dataclass
class SyncMetadata:
    """
    Snapshot O(1) del ultimo sync, guardado en cache con TTL.
    Se reconstruye al terminar cada corrida (exito o fallo).
    """

    last_sync_at: datetime
    last_sync_status: str
    last_sync_duration: int
    total_institutions: int
    total_courses: int
    triggered_by: str

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario serializable (JSON) para la cache."""
        return {
            "last_sync_at": self.last_sync_at.isoformat(),
            "last_sync_status": self.last_sync_status,
            "last_sync_duration": self.last_sync_duration,
            "total_institutions": self.total_institutions,
            "total_courses": self.total_courses,
            "triggered_by": self.triggered_by,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncMetadata":
        """Crea una instancia desde diccionario."""
        return cls(
            last_sync_at=datetime.fromisoformat(data["last_sync_at"]),
            last_sync_status=data["last_sync_status"],
            last_sync_duration=int(data["last_sync_duration"]),
            total_institutions=int(data["total_institutions"]),
            total_courses=int(data["total_courses"]),
            triggered_by=data["triggered_by"],
        )
