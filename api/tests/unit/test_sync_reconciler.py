"""
Tests del reconciliador (lectura -> partición -> geocoding -> persistencia)
con lector y buscador de lugares en memoria y SQLite real.
"""
from __future__ import annotations

from datetime import date
from typing import Callable, Dict, List

import pytest
from sqlalchemy import select

from storemap.application.use_cases.sync_use_cases import (
    SyncReconciler,
    partition_by_existing_location,
)
from storemap.domain.entities.store import (
    ExistingLocation,
    PlaceCandidate,
    ProductCategory,
    Shipment,
    StoreData,
    SyncMode,
)
from storemap.infrastructure.database.models import ShipmentModel, StoreModel
from storemap.infrastructure.external.google_places.geocode_enricher import GeocodeEnricher
from storemap.infrastructure.external.google_sheets.source_config import SheetSourceConfig
from storemap.infrastructure.repositories.store_repository import StoreRepository
from storemap.shared.exceptions.sync import PersistenceError


SOURCE = SheetSourceConfig.from_lists("sheet-x", ["1"], ["秋葵"])


class _StubReader:
    """Devuelve un mapa nuevo en cada lectura (el reconciliador lo muta)."""

    def __init__(self, build: Callable[[], Dict[str, StoreData]]) -> None:
        self._build = build
        self.calls = 0

    def load_stores(self, source: SheetSourceConfig) -> Dict[str, StoreData]:
        self.calls += 1
        return self._build()


class _StubSearcher:
    def __init__(self) -> None:
        self.queries: List[str] = []

    async def search_text(self, query: str) -> list[PlaceCandidate]:
        self.queries.append(query)
        name = query.split(" ", 1)[1]
        return [PlaceCandidate(f"pid-{name}", f"addr-{name}", 24.0, 120.0)]


def _okra_store(name: str, *cells: tuple[str, str]) -> StoreData:
    store = StoreData(name=name)
    for raw_date, quantity in cells:
        store.add_shipment(ProductCategory.OKRA, Shipment(raw_date, quantity))
    return store


def _reconciler(session_factory, reader, searcher) -> SyncReconciler:
    return SyncReconciler(
        reader=reader,
        source=SOURCE,
        enricher=GeocodeEnricher(searcher, delay_seconds=0),
        session_factory=session_factory,
    )


async def _seed_located(session_factory, *names: str) -> None:
    stores = []
    for name in names:
        store = StoreData(name=name)
        store.apply_location(ExistingLocation(f"saved-{name}", f"saved-addr-{name}", 25.0, 121.0))
        stores.append(store)
    async with session_factory() as session:
        await StoreRepository(session).save_stores(stores)


def test_partition_applies_index_and_returns_only_missing() -> None:
    store_map = {n: StoreData(name=n) for n in ("StoreA", "StoreB", "StoreC")}
    index = {"StoreB": ExistingLocation("pid-b", "addr-b", 1.0, 2.0)}

    reused, needs_lookup = partition_by_existing_location(store_map, index)

    assert reused == ["StoreB"]
    assert set(needs_lookup) == {"StoreA", "StoreC"}
    b = store_map["StoreB"]
    assert (b.place_id, b.formatted_address, b.latitude, b.longitude) == ("pid-b", "addr-b", 1.0, 2.0)


@pytest.mark.asyncio
async def test_end_to_end_single_store(session_factory) -> None:
    reader = _StubReader(lambda: {"StoreA": _okra_store("StoreA", ("2024/01/01", "5"), ("2024/01/02", "0"))})
    searcher = _StubSearcher()

    result = await _reconciler(session_factory, reader, searcher).reconcile(SyncMode.INCREMENTAL)

    assert searcher.queries == ["全聯 StoreA"]
    assert result.lookups_requested == 1
    async with session_factory() as session:
        rows = (await session.execute(
            select(StoreModel.name, ShipmentModel.product_type, ShipmentModel.shipment_date, ShipmentModel.quantity)
            .join(ShipmentModel, ShipmentModel.store_id == StoreModel.id)
        )).all()
    assert rows == [("StoreA", "秋葵", date(2024, 1, 1), "5")]


@pytest.mark.asyncio
async def test_incremental_reuses_index_without_lookups(session_factory) -> None:
    await _seed_located(session_factory, "StoreA", "StoreB")
    reader = _StubReader(lambda: {
        n: _okra_store(n, ("2024/03/05", "1")) for n in ("StoreA", "StoreB", "StoreC")
    })
    searcher = _StubSearcher()

    result = await _reconciler(session_factory, reader, searcher).reconcile(SyncMode.INCREMENTAL)

    assert searcher.queries == ["全聯 StoreC"]
    assert result.reused_from_index == 2
    assert result.lookups_requested == 1
    async with session_factory() as session:
        index = await StoreRepository(session).get_stores_with_location()
    assert index["StoreA"] == ExistingLocation("saved-StoreA", "saved-addr-StoreA", 25.0, 121.0)
    assert index["StoreC"].place_id == "pid-StoreC"


@pytest.mark.asyncio
async def test_incremental_with_everything_indexed_skips_enricher(session_factory) -> None:
    await _seed_located(session_factory, "StoreA")
    searcher = _StubSearcher()
    reader = _StubReader(lambda: {"StoreA": _okra_store("StoreA", ("2024/03/05", "1"))})

    result = await _reconciler(session_factory, reader, searcher).reconcile(SyncMode.INCREMENTAL)

    assert searcher.queries == []
    assert result.lookups_requested == 0
    assert result.shipments_saved == 1


@pytest.mark.asyncio
async def test_full_mode_looks_up_every_store(session_factory) -> None:
    await _seed_located(session_factory, "StoreA")
    searcher = _StubSearcher()
    reader = _StubReader(lambda: {n: StoreData(name=n) for n in ("StoreA", "StoreB")})

    result = await _reconciler(session_factory, reader, searcher).reconcile(SyncMode.FULL)

    assert sorted(searcher.queries) == ["全聯 StoreA", "全聯 StoreB"]
    assert result.reused_from_index == 0
    async with session_factory() as session:
        index = await StoreRepository(session).get_stores_with_location()
    assert index["StoreA"].place_id == "pid-StoreA"


@pytest.mark.asyncio
async def test_index_failure_degrades_to_full_lookup(session_factory, monkeypatch) -> None:
    async def _broken_index(self):
        raise RuntimeError("base caida")

    monkeypatch.setattr(StoreRepository, "get_stores_with_location", _broken_index)
    searcher = _StubSearcher()
    reader = _StubReader(lambda: {n: StoreData(name=n) for n in ("StoreA", "StoreB")})

    result = await _reconciler(session_factory, reader, searcher).reconcile(SyncMode.INCREMENTAL)

    assert len(searcher.queries) == 2
    assert result.stores_saved == 2


@pytest.mark.asyncio
async def test_persistence_failure_propagates(session_factory, monkeypatch) -> None:
    async def _broken_save(self, stores):
        raise PersistenceError("disco lleno")

    monkeypatch.setattr(StoreRepository, "save_stores", _broken_save)
    reader = _StubReader(lambda: {"StoreA": StoreData(name="StoreA")})

    with pytest.raises(PersistenceError):
        await _reconciler(session_factory, reader, _StubSearcher()).reconcile(SyncMode.FULL)
