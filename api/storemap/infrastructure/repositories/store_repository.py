"""
Repositorio de tiendas y despachos.

Maneja:
- índice de tiendas ya geocodificadas (para el sync incremental)
- UPSERT transaccional de tiendas + despachos
- proyección de despachos recientes para la API de lectura

Los resultados de consultas se decodifican aquí a dataclasses tipados;
las capas superiores no ven filas de SQLAlchemy.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from storemap.domain.entities.store import (
    NO_SHIPMENT_QUANTITIES,
    ExistingLocation,
    StoreData,
    is_no_shipment,
)
from storemap.infrastructure.database.models import ShipmentModel, StoreModel
from storemap.shared.exceptions.sync import DateParseError, PersistenceError
from storemap.shared.utils.date_utils import parse_shipment_date


@dataclass(frozen=True)
class RecentShipmentRow:
    """Fila de la proyección de despachos recientes (join tienda + despacho)."""

    store_name: str
    address: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    product_type: str
    shipment_date: date
    quantity: str


@dataclass
class SaveResult:
    """Conteos de una escritura de tiendas."""

    stores: int = 0
    shipments_upserted: int = 0
    shipments_cleared: int = 0
    shipments_skipped: int = 0


class StoreRepository:
    """Repositorio para tiendas y despachos."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self, model):
        """INSERT con soporte ON CONFLICT según el dialecto de la sesión."""
        dialect = self.db.bind.dialect.name
        if dialect == "postgresql":
            return pg_insert(model)
        if dialect == "sqlite":
            return sqlite_insert(model)
        raise PersistenceError(f"Dialecto no soportado para UPSERT: {dialect}")

    async def get_stores_with_location(self) -> dict[str, ExistingLocation]:
        """
        Tiendas con place_id no vacío y ambas coordenadas, indexadas por nombre.
        """
        result = await self.db.execute(
            select(
                StoreModel.name,
                StoreModel.place_id,
                StoreModel.formatted_address,
                StoreModel.latitude,
                StoreModel.longitude,
            ).where(
                StoreModel.place_id.is_not(None),
                StoreModel.place_id != "",
                StoreModel.latitude.is_not(None),
                StoreModel.longitude.is_not(None),
            )
        )
        return {
            row.name: ExistingLocation(
                place_id=row.place_id,
                formatted_address=row.formatted_address or "",
                latitude=row.latitude,
                longitude=row.longitude,
            )
            for row in result.all()
        }

    async def save_stores(self, stores: Iterable[StoreData]) -> SaveResult:
        """
        UPSERT de tiendas y sus despachos en una única transacción.

        - Tienda por `name`. Si la tienda entrante no trae ubicación, no se
          pisan los datos de ubicación ya guardados.
        - Despacho por (store_id, product_type, shipment_date), la cantidad
          se sobreescribe. Cantidades "sin despacho" ("" / "0") nunca crean
          filas nuevas; solo actualizan una fila existente.
        - Fechas no reconocidas se saltan (se loguean).

        Requiere una sesión sin transacción activa. Cualquier error de base
        revierte todo y se relanza como PersistenceError.
        """
        result = SaveResult()
        try:
            async with self.db.begin():
                for store in stores:
                    store_id = await self._upsert_store(store)
                    await self._save_shipments(store_id, store, result)
                    result.stores += 1
                    logger.debug(f"Guardada tienda {store.name}")
        except SQLAlchemyError as e:
            raise PersistenceError(f"Error guardando tiendas: {e}") from e

        logger.info(
            f"Tiendas guardadas: {result.stores}, despachos: {result.shipments_upserted}, "
            f"sin despacho actualizados: {result.shipments_cleared}, "
            f"fechas invalidas: {result.shipments_skipped}"
        )
        return result

    async def _upsert_store(self, store: StoreData) -> int:
        has_location = store.has_location
        stmt = self._insert(StoreModel).values(
            name=store.name,
            place_id=store.place_id if has_location else None,
            formatted_address=store.formatted_address if has_location else None,
            latitude=store.latitude if has_location else None,
            longitude=store.longitude if has_location else None,
            updated_at=func.now(),
        )

        set_ = {"updated_at": func.now()}
        if has_location:
            set_.update(
                place_id=stmt.excluded.place_id,
                formatted_address=stmt.excluded.formatted_address,
                latitude=stmt.excluded.latitude,
                longitude=stmt.excluded.longitude,
            )

        stmt = stmt.on_conflict_do_update(
            index_elements=[StoreModel.name],
            set_=set_,
        ).returning(StoreModel.id)
        return (await self.db.execute(stmt)).scalar_one()

    async def _save_shipments(self, store_id: int, store: StoreData, result: SaveResult) -> None:
        for category, shipment in store.iter_shipments():
            try:
                shipment_date = parse_shipment_date(shipment.date)
            except DateParseError as e:
                result.shipments_skipped += 1
                logger.warning(f"Saltando despacho de {store.name} ({category.value}): {e.message}")
                continue

            quantity = (shipment.quantity or "").strip()
            key = (
                ShipmentModel.store_id == store_id,
                ShipmentModel.product_type == category.value,
                ShipmentModel.shipment_date == shipment_date,
            )

            if is_no_shipment(quantity):
                cleared = await self.db.execute(
                    update(ShipmentModel).where(*key).values(quantity=quantity)
                )
                result.shipments_cleared += cleared.rowcount or 0
                continue

            stmt = self._insert(ShipmentModel).values(
                store_id=store_id,
                product_type=category.value,
                shipment_date=shipment_date,
                quantity=quantity,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[
                    ShipmentModel.store_id,
                    ShipmentModel.product_type,
                    ShipmentModel.shipment_date,
                ],
                set_={"quantity": stmt.excluded.quantity},
            )
            await self.db.execute(stmt)
            result.shipments_upserted += 1

    async def get_recent_shipments(self, since: date) -> list[RecentShipmentRow]:
        """
        Despachos con fecha >= `since` y cantidad presente y distinta de cero.

        Ordenados por tienda, tipo de producto y fecha descendente.
        """
        result = await self.db.execute(
            select(
                StoreModel.name,
                StoreModel.formatted_address,
                StoreModel.latitude,
                StoreModel.longitude,
                ShipmentModel.product_type,
                ShipmentModel.shipment_date,
                ShipmentModel.quantity,
            )
            .join(ShipmentModel, ShipmentModel.store_id == StoreModel.id)
            .where(
                ShipmentModel.shipment_date >= since,
                ShipmentModel.quantity.is_not(None),
                ShipmentModel.quantity.not_in(sorted(NO_SHIPMENT_QUANTITIES)),
            )
            .order_by(
                StoreModel.name,
                ShipmentModel.product_type,
                ShipmentModel.shipment_date.desc(),
            )
        )
        return [
            RecentShipmentRow(
                store_name=row.name,
                address=row.formatted_address,
                latitude=row.latitude,
                longitude=row.longitude,
                product_type=row.product_type,
                shipment_date=row.shipment_date,
                quantity=row.quantity,
            )
            for row in result.all()
        ]
