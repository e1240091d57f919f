"""
DTOs de la API de lectura del mapa de tiendas.
"""

from __future__ import annotations

import datetime
from typing import List

from pydantic import BaseModel, Field


class ShipmentDTO(BaseModel):
    """Despacho reciente de una tienda."""

    product_type: str = Field(..., description="Categoría de producto (etiqueta de la planilla)")
    date: datetime.date
    quantity: str


class StoreMapDTO(BaseModel):
    """Tienda con ubicación y sus despachos recientes."""

    store_name: str
    address: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    shipments: List[ShipmentDTO] = Field(default_factory=list)
