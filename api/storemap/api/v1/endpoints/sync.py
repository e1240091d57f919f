"""
Endpoints de sincronizacion planilla -> base.

- POST /sync/trigger: dispara un sync en background (requiere secreto)
- GET  /sync/jobs/{job_id}: polling del job disparado
- GET  /sync/status y /sync/runs: corridas registradas en sync_runs
"""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from loguru import logger

from storemap.application.dto.sync_dto import SyncJobDTO, SyncRunHistoryDTO, SyncStatusDTO
from storemap.application.use_cases.sync_history_use_cases import SyncHistoryUseCases
from storemap.application.use_cases.sync_job_use_cases import SyncJobUseCases
from storemap.api.v1.dependencies.use_case_deps import (
    get_app_settings,
    get_sync_history_use_cases,
    get_sync_job_use_cases,
)
from storemap.core.config import Settings
from storemap.domain.entities.store import SyncMode


router = APIRouter(prefix="/sync", tags=["Sync"])


def verify_sync_access(
    x_sync_secret: Optional[str] = Header(None, alias="X-Sync-Secret"),
    secret: Optional[str] = Query(None, description="Alternativa al header X-Sync-Secret"),
    app_settings: Settings = Depends(get_app_settings),
) -> None:
    """404 si la API de sync esta deshabilitada; 401 si el secreto no coincide."""
    if not app_settings.ENABLE_SYNC_API:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    provided = x_sync_secret or secret or ""
    expected = app_settings.SYNC_SECRET
    if not expected or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Solicitud de sync rechazada: secreto invalido")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized: secreto invalido")


@router.post(
    "/trigger",
    response_model=SyncJobDTO,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(verify_sync_access)],
    summary="Disparar una sincronizacion manual",
)
async def trigger_sync(
    mode: SyncMode = Query(SyncMode.FULL, description="incremental | full"),
    use_cases: SyncJobUseCases = Depends(get_sync_job_use_cases),
) -> SyncJobDTO:
    """
    Inicia el sync en background y responde de inmediato con el job.
    """
    logger.info(f"Sync manual solicitado (modo {mode.value})")
    return await use_cases.start(mode)


@router.get(
    "/jobs/{job_id}",
    response_model=SyncJobDTO,
    dependencies=[Depends(verify_sync_access)],
    summary="Estado de un job de sync (polling)",
)
async def get_sync_job(
    job_id: str,
    use_cases: SyncJobUseCases = Depends(get_sync_job_use_cases),
) -> SyncJobDTO:
    try:
        return await use_cases.get_job(job_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job no encontrado")


@router.get("/status", response_model=SyncStatusDTO, summary="Ultima sincronizacion exitosa")
async def get_sync_status(
    use_cases: SyncHistoryUseCases = Depends(get_sync_history_use_cases),
) -> SyncStatusDTO:
    return await use_cases.get_status()


@router.get("/runs", response_model=SyncRunHistoryDTO, summary="Historial de corridas")
async def get_sync_runs(
    limit: int = Query(20, ge=1, le=200),
    use_cases: SyncHistoryUseCases = Depends(get_sync_history_use_cases),
) -> SyncRunHistoryDTO:
    return await use_cases.get_history(limit)
