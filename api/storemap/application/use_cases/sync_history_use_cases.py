"""
Consultas sobre corridas de sync registradas (sync_runs).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from storemap.application.dto.sync_dto import SyncRunDTO, SyncRunHistoryDTO, SyncStatusDTO
from storemap.infrastructure.repositories.sync_run_repository import (
    SyncRunRecord,
    SyncRunRepository,
)


def _to_dto(record: SyncRunRecord) -> SyncRunDTO:
    return SyncRunDTO(
        id=record.id,
        start_time=record.start_time,
        end_time=record.end_time,
        status=record.status,
        mode=record.mode,
        message=record.message,
    )


def seconds_since(moment: datetime, now: datetime) -> float:
    """Segundos transcurridos; fechas naive se asumen UTC (SQLite no guarda tz)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return max(0.0, (now - moment).total_seconds())


class SyncHistoryUseCases:
    def __init__(self, db: AsyncSession):
        self.repo = SyncRunRepository(db)

    async def get_status(self, now: Optional[datetime] = None) -> SyncStatusDTO:
        """Última corrida exitosa y tiempo transcurrido desde su fin (o inicio)."""
        last = await self.repo.get_last_success()
        if last is None:
            return SyncStatusDTO()
        now = now or datetime.now(timezone.utc)
        reference = last.end_time or last.start_time
        return SyncStatusDTO(
            last_success=_to_dto(last),
            seconds_since_last_success=seconds_since(reference, now),
        )

    async def get_history(self, limit: int = 20) -> SyncRunHistoryDTO:
        runs = [_to_dto(r) for r in await self.repo.get_history(limit)]
        return SyncRunHistoryDTO(total=len(runs), runs=runs)
