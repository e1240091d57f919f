"""
Casos de uso de la aplicacion.
"""
from .store_map_use_cases import StoreMapUseCases
from .sync_history_use_cases import SyncHistoryUseCases
from .sync_job_use_cases import SyncJobUseCases
from .sync_use_cases import SyncReconciler, SyncResult, SyncRunner, build_sync_runner

__all__ = [
    "StoreMapUseCases",
    "SyncHistoryUseCases",
    "SyncJobUseCases",
    "SyncReconciler",
    "SyncResult",
    "SyncRunner",
    "build_sync_runner",
]
