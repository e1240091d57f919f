"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storemap.application.use_cases.store_map_use_cases import StoreMapUseCases
from storemap.application.use_cases.sync_history_use_cases import SyncHistoryUseCases
from storemap.application.use_cases.sync_job_use_cases import SyncJobUseCases
from storemap.application.use_cases.sync_use_cases import SyncRunner, build_sync_runner
from storemap.core.config import Settings, settings
from storemap.infrastructure.database.session import AsyncSessionLocal, get_db


def get_app_settings() -> Settings:
    """Configuracion global (sobrescribible en tests)."""
    return settings


def get_sync_runner(app_settings: Settings = Depends(get_app_settings)) -> SyncRunner:
    """
    Runner de sync con los clientes reales (planilla + Places).

    El job en background abre sus propias sesiones: no reutiliza la de la request.
    """
    return build_sync_runner(app_settings, AsyncSessionLocal)


def get_sync_job_use_cases(runner: SyncRunner = Depends(get_sync_runner)) -> SyncJobUseCases:
    return SyncJobUseCases(runner)


async def get_store_map_use_cases(
    db: AsyncSession = Depends(get_db)
) -> StoreMapUseCases:
    """
    Dependencia para obtener los casos de uso del mapa de tiendas.

    Args:
        db: Sesion de base de datos

    Returns:
        StoreMapUseCases: Instancia de casos de uso de lectura
    """
    return StoreMapUseCases(db)


async def get_sync_history_use_cases(
    db: AsyncSession = Depends(get_db)
) -> SyncHistoryUseCases:
    return SyncHistoryUseCases(db)
