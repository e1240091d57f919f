"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .store_map_dto import ShipmentDTO, StoreMapDTO
from .sync_dto import SyncJobDTO, SyncRunDTO, SyncRunHistoryDTO, SyncStatusDTO

__all__ = [
    "ShipmentDTO",
    "StoreMapDTO",
    "SyncJobDTO",
    "SyncRunDTO",
    "SyncRunHistoryDTO",
    "SyncStatusDTO",
]
