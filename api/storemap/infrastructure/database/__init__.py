"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base
antes de crear las tablas.
"""
from storemap.infrastructure.database.models import (
    ShipmentModel,
    StoreModel,
    SyncRunModel,
)
