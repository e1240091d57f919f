"""
Repositorio de registros de ejecución del sync (tabla sync_runs).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storemap.domain.entities.store import SyncMode, SyncRunStatus
from storemap.infrastructure.database.models import SyncRunModel

RUN_STARTED_MESSAGE = "Sincronizacion iniciada"


@dataclass(frozen=True)
class SyncRunRecord:
    """Registro tipado de una corrida."""

    id: int
    start_time: datetime
    end_time: Optional[datetime]
    status: str
    mode: str
    message: Optional[str]

    @classmethod
    def from_model(cls, model: SyncRunModel) -> "SyncRunRecord":
        return cls(
            id=model.id,
            start_time=model.start_time,
            end_time=model.end_time,
            status=model.status,
            mode=model.mode,
            message=model.message,
        )


class SyncRunRepository:
    """
    Gestiona la tabla sync_runs.

    El caller controla commits.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def start_run(self, mode: SyncMode, started_at: datetime) -> int:
        """Inserta la corrida en estado 'running' y retorna su id."""
        run = SyncRunModel(
            start_time=started_at,
            status=SyncRunStatus.RUNNING.value,
            mode=mode.value,
            message=RUN_STARTED_MESSAGE,
        )
        self.db.add(run)
        await self.db.flush()
        return run.id

    async def finish_run(
        self,
        run_id: int,
        *,
        status: SyncRunStatus,
        message: str,
        ended_at: datetime,
    ) -> bool:
        """Cierra la corrida. Retorna False si el id no existe."""
        result = await self.db.execute(
            update(SyncRunModel)
            .where(SyncRunModel.id == run_id)
            .values(end_time=ended_at, status=status.value, message=message)
        )
        return bool(result.rowcount)

    async def get_by_id(self, run_id: int) -> Optional[SyncRunRecord]:
        run = await self.db.get(SyncRunModel, run_id)
        return SyncRunRecord.from_model(run) if run else None

    async def get_last_success(self) -> Optional[SyncRunRecord]:
        """Última corrida exitosa (por start_time)."""
        result = await self.db.execute(
            select(SyncRunModel)
            .where(SyncRunModel.status == SyncRunStatus.SUCCESS.value)
            .order_by(SyncRunModel.start_time.desc())
            .limit(1)
        )
        run = result.scalars().first()
        return SyncRunRecord.from_model(run) if run else None

    async def get_history(self, limit: int = 20) -> List[SyncRunRecord]:
        """Corridas más recientes primero."""
        result = await self.db.execute(
            select(SyncRunModel)
            .order_by(SyncRunModel.start_time.desc(), SyncRunModel.id.desc())
            .limit(limit)
        )
        return [SyncRunRecord.from_model(run) for run in result.scalars().all()]
