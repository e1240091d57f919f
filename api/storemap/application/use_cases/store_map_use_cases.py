"""
Caso de uso de lectura: tiendas con despachos recientes para el mapa.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from storemap.application.dto.store_map_dto import ShipmentDTO, StoreMapDTO
from storemap.infrastructure.repositories.store_repository import (
    RecentShipmentRow,
    StoreRepository,
)


def group_rows_by_store(rows: List[RecentShipmentRow]) -> List[StoreMapDTO]:
    """
    Agrupa filas (ya ordenadas por tienda) en una entrada por tienda.

    Coordenadas nulas se devuelven como 0.0 y dirección nula como "".
    """
    stores: dict[str, StoreMapDTO] = {}
    for row in rows:
        entry = stores.get(row.store_name)
        if entry is None:
            entry = StoreMapDTO(
                store_name=row.store_name,
                address=row.address or "",
                latitude=row.latitude if row.latitude is not None else 0.0,
                longitude=row.longitude if row.longitude is not None else 0.0,
            )
            stores[row.store_name] = entry
        entry.shipments.append(
            ShipmentDTO(product_type=row.product_type, date=row.shipment_date, quantity=row.quantity)
        )
    return list(stores.values())


class StoreMapUseCases:
    def __init__(self, db: AsyncSession):
        self.repo = StoreRepository(db)

    async def get_store_map(self, days: int, today: Optional[date] = None) -> List[StoreMapDTO]:
        """Tiendas con al menos un despacho desde `hoy - days` (inclusive)."""
        since = (today or date.today()) - timedelta(days=days)
        rows = await self.repo.get_recent_shipments(since)
        return group_rows_by_store(rows)
