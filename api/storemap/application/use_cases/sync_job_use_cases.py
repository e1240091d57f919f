"""
Jobs de sincronización disparados por API.

El endpoint de disparo responde de inmediato (202) y la corrida sigue en
background; el estado se consulta por polling con el `job_id`.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Set

from loguru import logger

from storemap.application.dto.sync_dto import SyncJobDTO
from storemap.application.use_cases.sync_use_cases import SyncRunner
from storemap.domain.entities.store import SyncMode, SyncRunStatus

# Jobs terminados hace más que esto se descartan al crear uno nuevo
JOB_RETENTION = timedelta(hours=24)


@dataclass
class _JobState:
    job_id: str
    mode: str
    status: str
    message: str
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    def to_dto(self) -> SyncJobDTO:
        return SyncJobDTO(
            job_id=self.job_id,
            mode=self.mode,
            status=self.status,
            message=self.message,
            created_at=self.created_at,
            updated_at=self.updated_at,
            completed_at=self.completed_at,
            error=self.error,
        )


class SyncJobUseCases:
    """
    Orquestador de jobs de sync.

    Los jobs viven en memoria (dict de clase), compartidos entre requests.
    No hay exclusión entre jobs: dos disparos seguidos corren en paralelo.
    Los jobs terminados se conservan JOB_RETENTION para poder consultarlos.
    """

    _jobs: Dict[str, _JobState] = {}
    _tasks: Set[asyncio.Task] = set()
    _jobs_lock = asyncio.Lock()

    def __init__(self, runner: SyncRunner):
        self.runner = runner

    async def start(self, mode: SyncMode) -> SyncJobDTO:
        job_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        job = _JobState(
            job_id=job_id,
            mode=mode.value,
            status=SyncRunStatus.RUNNING.value,
            message="Sincronizacion en curso",
            created_at=now,
            updated_at=now,
        )

        async with self._jobs_lock:
            self._evict_finished(now)
            self._jobs[job_id] = job

        # Referencia fuerte a la task: el loop solo guarda referencias débiles
        task = asyncio.create_task(self._run_job(job_id, mode))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(f"Job de sync {job_id} iniciado (modo {mode.value})")
        return job.to_dto()

    def _evict_finished(self, now: datetime) -> None:
        """Descarta jobs terminados antes de `now - JOB_RETENTION`. Requiere el lock."""
        cutoff = now - JOB_RETENTION
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.completed_at is not None and job.completed_at < cutoff
        ]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            logger.debug(f"Jobs de sync descartados: {len(expired)}")

    async def get_job(self, job_id: str) -> SyncJobDTO:
        async with self._jobs_lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise KeyError("job_not_found")
        return job.to_dto()

    async def _update_job(self, job_id: str, **changes: Any) -> None:
        async with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            for k, v in changes.items():
                setattr(job, k, v)
            job.updated_at = datetime.now(timezone.utc)

    async def _run_job(self, job_id: str, mode: SyncMode) -> None:
        try:
            result = await self.runner.run(mode)
        except Exception as e:
            logger.error(f"Job de sync {job_id} fallido: {e}")
            await self._update_job(
                job_id,
                status=SyncRunStatus.FAILED.value,
                message="Sincronizacion fallida",
                error=str(e),
                completed_at=datetime.now(timezone.utc),
            )
            return

        await self._update_job(
            job_id,
            status=SyncRunStatus.SUCCESS.value,
            message=result.summary(),
            completed_at=datetime.now(timezone.utc),
        )
