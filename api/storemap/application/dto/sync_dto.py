"""
DTOs para disparar y consultar sincronizaciones.

El disparo manual crea un job en memoria (polling por `job_id`); las corridas
persistidas en `sync_runs` se exponen por separado como historial.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class SyncJobDTO(BaseModel):
    """Estado de un job de sync disparado por API."""

    job_id: str
    mode: str
    status: str
    message: str
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


class SyncRunDTO(BaseModel):
    """Una fila de sync_runs."""

    id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    status: str
    mode: str
    message: Optional[str] = None


class SyncStatusDTO(BaseModel):
    """Última sincronización exitosa."""

    last_success: Optional[SyncRunDTO] = None
    seconds_since_last_success: Optional[float] = None


class SyncRunHistoryDTO(BaseModel):
    total: int
    runs: List[SyncRunDTO]
