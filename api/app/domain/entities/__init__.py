"""
Entidades del dominio.
"""
from app.domain.entities.mec import (
    NormalizedInstitution,
    NormalizedCourse,
    SyncError,
    ParseResult,
    ReconcileCounts,
    SyncResult,
    SyncMetadata,
)

__all__ = [
    "NormalizedInstitution",
    "NormalizedCourse",
    "SyncError",
    "ParseResult",
    "ReconcileCounts",
    "SyncResult",
    "SyncMetadata",
]
