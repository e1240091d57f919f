"""
Entidades del dominio para tiendas y despachos.

Se mantienen libres de I/O: el lector de planillas las construye,
el enriquecedor de geocoding las muta y el repositorio las persiste.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ProductCategory(str, Enum):
    """
    Categorias de producto fijas del sistema.

    El valor es la etiqueta tal como aparece en la planilla y como
    se guarda en `shipments.product_type`.
    """

    OKRA = "秋葵"
    SPONGE_GOURD = "產銷絲瓜"

    @classmethod
    def from_label(cls, label: str) -> "ProductCategory":
        """Resuelve una etiqueta de hoja a su categoria (ValueError si no existe)."""
        return cls(label.strip())


class SyncMode(str, Enum):
    """Modo de ejecucion del pipeline de sincronizacion."""

    INCREMENTAL = "incremental"
    FULL = "full"


class SyncRunStatus(str, Enum):
    """Estados posibles de un registro de sync_runs."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


# Cantidades que significan "sin despacho"
NO_SHIPMENT_QUANTITIES = frozenset({"", "0"})


def is_no_shipment(quantity: Optional[str]) -> bool:
    """Indica si la cantidad representa ausencia de despacho."""
    return quantity is None or quantity.strip() in NO_SHIPMENT_QUANTITIES


@dataclass
class Shipment:
    """Un despacho: fecha y cantidad como texto libre, tal como vienen de la planilla."""

    date: str
    quantity: str


@dataclass(frozen=True)
class PlaceCandidate:
    """Candidato devuelto por la busqueda de lugares."""

    place_id: str
    formatted_address: str
    latitude: float
    longitude: float
    display_name: str = ""


@dataclass(frozen=True)
class ExistingLocation:
    """Snapshot de solo lectura de una tienda ya geocodificada en la base."""

    place_id: str
    formatted_address: str
    latitude: float
    longitude: float


@dataclass
class StoreData:
    """
    Tienda (punto de venta) identificada por su nombre.

    Los campos de geocoding se escriben siempre juntos mediante
    `apply_location`, nunca de forma parcial.
    """

    name: str
    okra_shipments: list[Shipment] = field(default_factory=list)
    sponge_gourd_shipments: list[Shipment] = field(default_factory=list)
    place_id: str = ""
    formatted_address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_location(self) -> bool:
        return bool(self.place_id) and self.latitude is not None and self.longitude is not None

    def apply_location(self, location: PlaceCandidate | ExistingLocation) -> None:
        """Copia los cuatro campos de geocoding desde un candidato o snapshot."""
        self.place_id = location.place_id
        self.formatted_address = location.formatted_address
        self.latitude = location.latitude
        self.longitude = location.longitude

    def shipments_for(self, category: ProductCategory) -> list[Shipment]:
        if category is ProductCategory.OKRA:
            return self.okra_shipments
        return self.sponge_gourd_shipments

    def add_shipment(self, category: ProductCategory, shipment: Shipment) -> None:
        self.shipments_for(category).append(shipment)

    def iter_shipments(self):
        """Itera pares (categoria, despacho) en el orden de la planilla."""
        for category in ProductCategory:
            for shipment in self.shipments_for(category):
                yield category, shipment
