"""
Casos de uso de la aplicacion.
"""
from .mec_reconciler import MecDataReconciler
from .mec_sync_use_cases import MecSyncUseCases, build_mec_sync_use_cases
from .mec_query_use_cases import MecQueryUseCases

__all__ = ["MecDataReconciler", "MecSyncUseCases", "build_mec_sync_use_cases", "MecQueryUseCases"]
