"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .mec_dto import (
    SyncRunDTO,
    SyncStatusDTO,
    CourseDTO,
    InstitutionDTO,
    InstitutionDetailDTO,
    CountByKeyDTO,
    MecStatsDTO,
)

__all__ = [
    "SyncRunDTO",
    "SyncStatusDTO",
    "CourseDTO",
    "InstitutionDTO",
    "InstitutionDetailDTO",
    "CountByKeyDTO",
    "MecStatsDTO",
]
