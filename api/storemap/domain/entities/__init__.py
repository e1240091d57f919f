"""
Entidades del dominio.
"""
from storemap.domain.entities.store import (
    ExistingLocation,
    PlaceCandidate,
    ProductCategory,
    Shipment,
    StoreData,
    SyncMode,
    SyncRunStatus,
    is_no_shipment,
)

__all__ = [
    "ExistingLocation",
    "PlaceCandidate",
    "ProductCategory",
    "Shipment",
    "StoreData",
    "SyncMode",
    "SyncRunStatus",
    "is_no_shipment",
]
