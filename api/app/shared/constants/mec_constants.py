"""
Constantes del pipeline MEC.
Define estados de corrida, fases del orquestador y claves de cache.
"""
from enum import Enum


class SyncStatus(str, Enum):
    """Estados persistidos de una corrida (mec_sync_logs.status)."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class SyncPhase(str, Enum):
    """Fases del orquestador. Cualquier fallo salta directo a FINALIZING."""
    IDLE = "idle"
    LOCKED = "locked"
    PARSING = "parsing"
    RECONCILING = "reconciling"
    FINALIZING = "finalizing"


# Claves de estado del sync (propiedad exclusiva del orquestador)
MEC_SYNC_LOCK_KEY = "mec:sync:lock"
MEC_SYNC_METADATA_KEY = "mec:sync:metadata"

# Claves de la capa de lectura (cache-aside)
MEC_INSTITUTIONS_LIST_KEY = "mec:institutions:list"
MEC_INSTITUTIONS_BY_STATE_PREFIX = "mec:institutions:uf:"
MEC_INSTITUTIONS_SEARCH_PREFIX = "mec:institutions:search:"
MEC_INSTITUTION_BY_CODE_PREFIX = "mec:institutions:code:"
MEC_COURSES_BY_INSTITUTION_PREFIX = "mec:courses:ies:"
MEC_COURSES_SEARCH_PREFIX = "mec:courses:search:"
MEC_COURSE_BY_CODE_PREFIX = "mec:courses:code:"
MEC_STATES_LIST_KEY = "mec:meta:states"
MEC_KNOWLEDGE_AREAS_KEY = "mec:meta:areas"
MEC_STATS_KEY = "mec:meta:stats"

# Patrones (glob) que el orquestador invalida tras una reconciliacion exitosa
MEC_READ_CACHE_PATTERNS = (
    f"{MEC_INSTITUTIONS_BY_STATE_PREFIX}*",
    f"{MEC_INSTITUTIONS_SEARCH_PREFIX}*",
    f"{MEC_INSTITUTION_BY_CODE_PREFIX}*",
    f"{MEC_COURSES_BY_INSTITUTION_PREFIX}*",
    f"{MEC_COURSES_SEARCH_PREFIX}*",
    f"{MEC_COURSE_BY_CODE_PREFIX}*",
)
MEC_READ_CACHE_KEYS = (
    MEC_INSTITUTIONS_LIST_KEY,
    MEC_STATES_LIST_KEY,
    MEC_KNOWLEDGE_AREAS_KEY,
    MEC_STATS_KEY,
)

# Valor para codigos desconocidos o vacios en las tablas de lookup
UNSPECIFIED_LABEL = "Não informado"
