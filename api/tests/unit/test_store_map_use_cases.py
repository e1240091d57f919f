from __future__ import annotations

from datetime import date

import pytest

from storemap.application.use_cases.store_map_use_cases import StoreMapUseCases, group_rows_by_store
from storemap.domain.entities.store import ExistingLocation, ProductCategory, Shipment, StoreData
from storemap.infrastructure.repositories.store_repository import RecentShipmentRow, StoreRepository


def test_group_rows_uses_zero_and_empty_defaults() -> None:
    rows = [
        RecentShipmentRow("StoreA", None, None, None, "秋葵", date(2024, 3, 6), "2"),
        RecentShipmentRow("StoreA", None, None, None, "秋葵", date(2024, 3, 5), "5"),
        RecentShipmentRow("StoreB", "addr-b", 25.0, 121.0, "產銷絲瓜", date(2024, 3, 5), "1"),
    ]

    stores = group_rows_by_store(rows)

    assert [s.store_name for s in stores] == ["StoreA", "StoreB"]
    assert (stores[0].address, stores[0].latitude, stores[0].longitude) == ("", 0.0, 0.0)
    assert [s.quantity for s in stores[0].shipments] == ["2", "5"]
    assert stores[1].latitude == 25.0


@pytest.mark.asyncio
async def test_get_store_map_applies_day_window(session_factory) -> None:
    store = StoreData(name="StoreA")
    store.apply_location(ExistingLocation("pid", "addr", 25.0, 121.0))
    store.add_shipment(ProductCategory.OKRA, Shipment("2024/03/01", "9"))
    store.add_shipment(ProductCategory.OKRA, Shipment("2024/03/08", "4"))
    async with session_factory() as session:
        await StoreRepository(session).save_stores([store])

    async with session_factory() as session:
        stores = await StoreMapUseCases(session).get_store_map(3, today=date(2024, 3, 10))

    assert len(stores) == 1
    assert [(s.date, s.quantity) for s in stores[0].shipments] == [(date(2024, 3, 8), "4")]
