"""
Tests del repositorio de tiendas sobre SQLite en memoria.

Cada escritura usa una sesión nueva: `save_stores` abre su propia transacción.
"""
from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import func, select, text

from storemap.domain.entities.store import ExistingLocation, ProductCategory, Shipment, StoreData
from storemap.infrastructure.database.models import ShipmentModel, StoreModel
from storemap.infrastructure.repositories.store_repository import StoreRepository
from storemap.shared.exceptions.sync import PersistenceError


def _store(name: str, *okra: tuple[str, str], located: bool = False) -> StoreData:
    store = StoreData(name=name)
    for raw_date, quantity in okra:
        store.add_shipment(ProductCategory.OKRA, Shipment(date=raw_date, quantity=quantity))
    if located:
        store.apply_location(ExistingLocation(f"pid-{name}", f"addr-{name}", 25.0, 121.5))
    return store


async def _save(session_factory, *stores: StoreData):
    async with session_factory() as session:
        return await StoreRepository(session).save_stores(list(stores))


async def _shipment_rows(session_factory):
    async with session_factory() as session:
        result = await session.execute(
            select(ShipmentModel.product_type, ShipmentModel.shipment_date, ShipmentModel.quantity)
            .order_by(ShipmentModel.shipment_date)
        )
        return result.all()


@pytest.mark.asyncio
async def test_upsert_twice_keeps_one_row_with_latest_quantity(session_factory) -> None:
    await _save(session_factory, _store("StoreA", ("2024/03/05", "5")))
    await _save(session_factory, _store("StoreA", ("2024-03-05", "8")))

    rows = await _shipment_rows(session_factory)
    assert rows == [(ProductCategory.OKRA.value, date(2024, 3, 5), "8")]

    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(StoreModel)) == 1


@pytest.mark.asyncio
async def test_no_shipment_quantity_never_creates_rows(session_factory) -> None:
    result = await _save(session_factory, _store("StoreA", ("2024/03/05", "0"), ("2024/03/06", "")))

    assert result.shipments_upserted == 0
    assert await _shipment_rows(session_factory) == []


@pytest.mark.asyncio
async def test_no_shipment_quantity_overwrites_existing_row(session_factory) -> None:
    await _save(session_factory, _store("StoreA", ("2024/03/05", "5")))
    result = await _save(session_factory, _store("StoreA", ("2024/03/05", "0")))

    assert result.shipments_cleared == 1
    assert await _shipment_rows(session_factory) == [(ProductCategory.OKRA.value, date(2024, 3, 5), "0")]


@pytest.mark.asyncio
async def test_unparseable_date_is_skipped_and_rest_saved(session_factory) -> None:
    result = await _save(session_factory, _store("StoreA", ("not-a-date", "4"), ("2024/03/05", "5")))

    assert result.shipments_skipped == 1
    assert result.shipments_upserted == 1
    assert len(await _shipment_rows(session_factory)) == 1


@pytest.mark.asyncio
async def test_index_only_contains_fully_located_stores(session_factory) -> None:
    await _save(session_factory, _store("StoreA", located=True), _store("StoreB"))

    async with session_factory() as session:
        index = await StoreRepository(session).get_stores_with_location()

    assert index == {"StoreA": ExistingLocation("pid-StoreA", "addr-StoreA", 25.0, 121.5)}


@pytest.mark.asyncio
async def test_store_without_location_keeps_saved_location(session_factory) -> None:
    await _save(session_factory, _store("StoreA", located=True))
    await _save(session_factory, _store("StoreA"))

    async with session_factory() as session:
        index = await StoreRepository(session).get_stores_with_location()

    assert index["StoreA"].place_id == "pid-StoreA"


@pytest.mark.asyncio
async def test_recent_shipments_excludes_no_shipment_quantities(session_factory) -> None:
    await _save(
        session_factory,
        _store("StoreA", ("2024/03/04", "1"), ("2024/03/05", "5"), ("2024/03/06", "2"), located=True),
    )
    # "0" sobre una fila existente: la fila queda pero no debe aparecer
    await _save(session_factory, _store("StoreA", ("2024/03/06", "0")))

    async with session_factory() as session:
        rows = await StoreRepository(session).get_recent_shipments(date(2024, 3, 5))

    assert [(r.shipment_date, r.quantity) for r in rows] == [(date(2024, 3, 5), "5")]
    assert rows[0].store_name == "StoreA"
    assert rows[0].address == "addr-StoreA"


@pytest.mark.asyncio
async def test_recent_shipments_ordered_by_store_product_and_date_desc(session_factory) -> None:
    gourd = _store("StoreA", ("2024/03/05", "1"), ("2024/03/06", "2"))
    gourd.add_shipment(ProductCategory.SPONGE_GOURD, Shipment("2024/03/06", "3"))
    await _save(session_factory, _store("StoreB", ("2024/03/06", "9")), gourd)

    async with session_factory() as session:
        rows = await StoreRepository(session).get_recent_shipments(date(2024, 3, 1))

    okra, gourd_label = ProductCategory.OKRA.value, ProductCategory.SPONGE_GOURD.value
    assert [(r.store_name, r.product_type, r.shipment_date.day) for r in rows] == [
        ("StoreA", gourd_label, 6),
        ("StoreA", okra, 6),
        ("StoreA", okra, 5),
        ("StoreB", okra, 6),
    ]


@pytest.mark.asyncio
async def test_database_error_rolls_back_whole_batch(session_factory) -> None:
    async with session_factory() as session:
        repo = StoreRepository(session)
        real_upsert = repo._upsert_store
        calls = []

        async def failing_second_upsert(store: StoreData) -> int:
            calls.append(store.name)
            if len(calls) == 2:
                await session.execute(text("INSERT INTO no_such_table (x) VALUES (1)"))
            return await real_upsert(store)

        repo._upsert_store = failing_second_upsert

        with pytest.raises(PersistenceError):
            await repo.save_stores(
                [
                    _store("StoreA", ("2024/03/05", "5"), located=True),
                    _store("StoreB", ("2024/03/05", "3")),
                ]
            )

    assert calls == ["StoreA", "StoreB"]
    assert await _shipment_rows(session_factory) == []
    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(StoreModel)) == 0
