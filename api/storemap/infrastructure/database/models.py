"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storemap.infrastructure.database.session import Base


class StoreModel(Base):
    """
    Tienda (punto de venta) identificada por su nombre.

    Los campos de geocoding (place_id, formatted_address, latitude, longitude)
    estan todos presentes o todos vacios.
    """

    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    place_id = Column(String(255), nullable=True)
    formatted_address = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    shipments = relationship("ShipmentModel", back_populates="store", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Store(id={self.id}, name={self.name}, place_id={self.place_id})>"


class ShipmentModel(Base):
    """
    Despacho de una categoria de producto a una tienda en una fecha.

    Clave natural: (store_id, product_type, shipment_date).
    """

    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False)
    product_type = Column(String(50), nullable=False)
    shipment_date = Column(Date, nullable=False)
    quantity = Column(String(50), nullable=True)

    store = relationship("StoreModel", back_populates="shipments")

    __table_args__ = (
        UniqueConstraint("store_id", "product_type", "shipment_date", name="uq_shipments_store_product_date"),
        Index("ix_shipments_shipment_date", "shipment_date"),
    )

    def __repr__(self):
        return (
            f"<Shipment(store_id={self.store_id}, product_type={self.product_type}, "
            f"date={self.shipment_date}, quantity={self.quantity})>"
        )


class SyncRunModel(Base):
    """
    Registro de una ejecucion del pipeline de sync.

    Estados posibles:
    - running: en curso (end_time NULL)
    - success: terminado correctamente
    - failed: terminado con error (message contiene el error)
    """

    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, index=True)
    mode = Column(String(20), nullable=False, default="incremental")
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_sync_runs_start_time", "start_time"),
    )

    def __repr__(self):
        return f"<SyncRun(id={self.id}, status={self.status}, mode={self.mode})>"
