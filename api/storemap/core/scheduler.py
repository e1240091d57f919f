"""
Programación del sync diario con APScheduler.

Un único job cron a SCHEDULE_HOUR:SCHEDULE_MINUTE. El día FULL_SYNC_DAY de
cada mes la corrida es completa (vuelve a geocodificar todo); el resto de
los días es incremental.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storemap.core.config import Settings
from storemap.domain.entities.store import SyncMode
from storemap.infrastructure.repositories.sync_run_repository import SyncRunRepository

SYNC_JOB_ID = "store_sync"

RunSync = Callable[[SyncMode], Awaitable[Any]]


def choose_sync_mode(today: date, full_sync_day: int) -> SyncMode:
    """Completo el día configurado del mes, incremental el resto."""
    if today.day == full_sync_day:
        return SyncMode.FULL
    return SyncMode.INCREMENTAL


def build_scheduler(app_settings: Settings, run_sync: RunSync) -> AsyncIOScheduler:
    """
    Crea (sin iniciar) el scheduler con el job de sync.

    `max_instances=1` evita que una corrida lenta se solape con la siguiente;
    `coalesce=True` junta disparos perdidos en uno solo.
    """
    hour, minute = app_settings.schedule_time
    full_sync_day = app_settings.full_sync_day

    async def scheduled_sync() -> None:
        mode = choose_sync_mode(date.today(), full_sync_day)
        logger.info(f"Sync programado disparado (modo {mode.value})")
        try:
            await run_sync(mode)
        except Exception as e:
            # El runner ya dejó el fallo en sync_runs; el scheduler sigue vivo
            logger.error(f"Sync programado fallido: {e}")

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        scheduled_sync,
        trigger=CronTrigger(hour=hour, minute=minute),
        id=SYNC_JOB_ID,
        name="Sync planilla -> base",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info(
        f"Scheduler configurado: todos los dias {hour:02d}:{minute:02d}, "
        f"sync completo el dia {full_sync_day} de cada mes"
    )
    return scheduler


async def log_last_success(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Loguea la hora de la última sincronización exitosa (si existe)."""
    try:
        async with session_factory() as session:
            last = await SyncRunRepository(session).get_last_success()
    except Exception as e:
        logger.warning(f"No se pudo consultar la ultima sincronizacion: {e}")
        return

    if last is None:
        logger.info("Aun no hay sincronizaciones exitosas registradas")
        return

    started = last.start_time
    if started.tzinfo is None:
        started = started.replace(tzinfo=timezone.utc)
    hours = (datetime.now(timezone.utc) - started).total_seconds() / 3600
    logger.info(
        f"Ultima sincronizacion exitosa: {started:%Y-%m-%d %H:%M:%S} ({hours:.1f} horas atras)"
    )
