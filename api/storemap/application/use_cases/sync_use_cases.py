"""
Casos de uso del pipeline de sincronización: planilla -> geocoding -> base.

Diseño (resumen):
- Lee todas las hojas configuradas y arma el mapa nombre -> StoreData
- Modo incremental: reutiliza la ubicación de tiendas ya geocodificadas
  y solo busca las nuevas; modo completo: busca todas
- UPSERT transaccional de tiendas y despachos
- Cada corrida queda registrada en sync_runs (running -> success/failed)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storemap.core.config import Settings
from storemap.domain.entities.store import (
    ExistingLocation,
    StoreData,
    SyncMode,
    SyncRunStatus,
)
from storemap.infrastructure.external.google_places.geocode_enricher import GeocodeEnricher
from storemap.infrastructure.external.google_places.places_client import PlacesClient
from storemap.infrastructure.external.google_sheets.sheets_client import (
    GoogleSheetsClient,
    SpreadsheetReader,
)
from storemap.infrastructure.external.google_sheets.source_config import SheetSourceConfig
from storemap.infrastructure.repositories.store_repository import SaveResult, StoreRepository
from storemap.infrastructure.repositories.sync_run_repository import SyncRunRepository

SessionFactory = async_sessionmaker[AsyncSession]


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


@dataclass
class SyncResult:
    """Resumen de una corrida del reconciliador."""

    mode: SyncMode
    stores_read: int = 0
    reused_from_index: int = 0
    lookups_requested: int = 0
    lookups_resolved: int = 0
    stores_saved: int = 0
    shipments_saved: int = 0
    shipments_skipped: int = 0

    def summary(self) -> str:
        label = "incremental" if self.mode is SyncMode.INCREMENTAL else "completa"
        return (
            f"Sincronizacion {label} exitosa: {self.stores_saved} tiendas, "
            f"{self.shipments_saved} despachos, "
            f"{self.lookups_resolved}/{self.lookups_requested} ubicaciones buscadas, "
            f"{self.reused_from_index} reutilizadas"
        )


def partition_by_existing_location(
    store_map: dict[str, StoreData],
    index: dict[str, ExistingLocation],
) -> tuple[list[str], dict[str, StoreData]]:
    """
    Separa las tiendas según si ya tienen ubicación guardada.

    Las que están en el índice reciben sus cuatro campos de ubicación
    (se mutan en el lugar). Las demás se devuelven en un sub-mapa
    para pasar por el geocoding.

    Returns:
        (nombres reutilizados, sub-mapa que necesita búsqueda)
    """
    reused: list[str] = []
    needs_lookup: dict[str, StoreData] = {}

    for name, store in store_map.items():
        location = index.get(name)
        if location is None:
            needs_lookup[name] = store
            continue
        store.apply_location(location)
        reused.append(name)

    return reused, needs_lookup


class SyncReconciler:
    """
    Orquestador de una pasada de sync.

    No tiene lock propio: dos corridas simultáneas sobre la misma base
    no se excluyen entre sí (se serializa desde el invocador).
    """

    def __init__(
        self,
        *,
        reader: SpreadsheetReader,
        source: SheetSourceConfig,
        enricher: GeocodeEnricher,
        session_factory: SessionFactory,
    ) -> None:
        self._reader = reader
        self._source = source
        self._enricher = enricher
        self._session_factory = session_factory

    async def reconcile(self, mode: SyncMode) -> SyncResult:
        """
        Ejecuta lectura -> partición -> geocoding -> persistencia.

        Raises:
            PersistenceError: si falla la escritura (la transacción se revierte)
        """
        logger.info("Leyendo planilla de despachos...")
        # requests es bloqueante: la lectura va a un thread para no frenar el loop
        store_map = await asyncio.to_thread(self._reader.load_stores, self._source)
        result = SyncResult(mode=mode, stores_read=len(store_map))
        logger.info(f"Tiendas leidas: {len(store_map)}")
        if not store_map:
            logger.warning("La planilla no devolvio tiendas; no hay nada que guardar")

        needs_lookup = store_map
        if mode is SyncMode.INCREMENTAL:
            index = await self._load_existing_locations()
            if index is not None:
                reused, needs_lookup = partition_by_existing_location(store_map, index)
                result.reused_from_index = len(reused)
                logger.info(
                    f"Ubicaciones reutilizadas: {len(reused)}, tiendas nuevas a buscar: {len(needs_lookup)}"
                )

        if needs_lookup:
            enrichment = await self._enricher.enrich(needs_lookup)
            result.lookups_requested = enrichment.requested
            result.lookups_resolved = len(enrichment.resolved)
        else:
            logger.info("Todas las tiendas ya tienen ubicacion; se omite la busqueda")

        logger.info("Guardando datos en la base...")
        saved = await self._persist(list(store_map.values()))
        result.stores_saved = saved.stores
        result.shipments_saved = saved.shipments_upserted
        result.shipments_skipped = saved.shipments_skipped

        logger.success(result.summary())
        return result

    async def _load_existing_locations(self) -> Optional[dict[str, ExistingLocation]]:
        """Índice de ubicaciones guardadas, o None si no se pudo leer."""
        try:
            async with self._session_factory() as session:
                return await StoreRepository(session).get_stores_with_location()
        except Exception as e:
            logger.warning(
                f"No se pudieron leer las ubicaciones existentes ({type(e).__name__}: {e}); "
                f"se buscaran todas las tiendas"
            )
            return None

    async def _persist(self, stores: list[StoreData]) -> SaveResult:
        async with self._session_factory() as session:
            return await StoreRepository(session).save_stores(stores)

    async def aclose(self) -> None:
        await self._enricher.aclose()


ReconcilerFactory = Callable[[], SyncReconciler]


class SyncRunner:
    """
    Ejecuta el reconciliador y deja registro en sync_runs.

    Los errores al escribir el registro solo se loguean: nunca bloquean
    ni hacen fallar el sync. Cada escritura usa su propia sesión, separada
    de la transacción del UPSERT.
    """

    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        reconciler_factory: ReconcilerFactory,
    ) -> None:
        self._session_factory = session_factory
        self._reconciler_factory = reconciler_factory

    async def run(self, mode: SyncMode) -> SyncResult:
        """
        Corre una sincronización completa y registra su resultado.

        Raises:
            ConfigurationError, PersistenceError u otro error terminal de la corrida
        """
        started_at = utc_now()
        run_id = await self._log_start(mode, started_at)

        logger.info("=" * 50)
        logger.info(f"Sync {mode.value} disparado (run_id={run_id})")

        try:
            reconciler = self._reconciler_factory()
            try:
                result = await reconciler.reconcile(mode)
            finally:
                await reconciler.aclose()
        except Exception as e:
            elapsed = (utc_now() - started_at).total_seconds()
            logger.error(f"Sync {mode.value} fallido tras {elapsed:.1f}s: {e}")
            await self._log_end(run_id, SyncRunStatus.FAILED, str(e)[:2000])
            logger.info("=" * 50)
            raise

        elapsed = (utc_now() - started_at).total_seconds()
        logger.info(f"Sync {mode.value} completado en {elapsed:.1f}s")
        await self._log_end(run_id, SyncRunStatus.SUCCESS, result.summary())
        logger.info("=" * 50)
        return result

    async def _log_start(self, mode: SyncMode, started_at: datetime) -> Optional[int]:
        try:
            async with self._session_factory() as session:
                run_id = await SyncRunRepository(session).start_run(mode, started_at)
                await session.commit()
                return run_id
        except Exception as e:
            logger.warning(f"No se pudo registrar el inicio del sync: {e}")
            return None

    async def _log_end(self, run_id: Optional[int], status: SyncRunStatus, message: str) -> None:
        if run_id is None:
            return
        try:
            async with self._session_factory() as session:
                await SyncRunRepository(session).finish_run(
                    run_id, status=status, message=message, ended_at=utc_now()
                )
                await session.commit()
        except Exception as e:
            logger.warning(f"No se pudo registrar el fin del sync (run_id={run_id}): {e}")


def build_sync_runner(app_settings: Settings, session_factory: SessionFactory) -> SyncRunner:
    """
    Arma el runner “oficial” a partir de la configuración.

    La configuración de origen se valida al inicio de cada corrida, de modo
    que un ConfigurationError queda registrado como corrida fallida.
    """

    def _reconciler_factory() -> SyncReconciler:
        source = SheetSourceConfig.from_lists(
            app_settings.GOOGLE_SHEET_ID,
            app_settings.sheet_gids,
            app_settings.sheet_names,
        )
        enricher = GeocodeEnricher(
            PlacesClient(app_settings.GOOGLE_PLACES_API_KEY),
            concurrency=app_settings.GEOCODE_CONCURRENCY,
            delay_seconds=app_settings.GEOCODE_DELAY_MS / 1000,
            query_prefix=app_settings.PLACES_QUERY_PREFIX,
        )
        return SyncReconciler(
            reader=SpreadsheetReader(GoogleSheetsClient()),
            source=source,
            enricher=enricher,
            session_factory=session_factory,
        )

    return SyncRunner(session_factory=session_factory, reconciler_factory=_reconciler_factory)
