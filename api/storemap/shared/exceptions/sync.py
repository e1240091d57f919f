"""
Excepciones del pipeline de sincronización (planilla -> geocoding -> base).

Política de propagación:
- ConfigurationError y PersistenceError abortan la corrida completa.
- FetchError, GeocodeLookupError y DateParseError se capturan en el borde
  de cada ítem (hoja, tienda, despacho), se loguean y la corrida continúa.
"""
from typing import Any, Dict, Optional

from storemap.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepción base para errores del pipeline de sync."""

    def __init__(
        self,
        message: str,
        error_code: str = "SYNC_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class ConfigurationError(SyncException):
    """Configuración de origen faltante o inconsistente."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="SYNC_CONFIGURATION_ERROR",
            details={"field": field} if field else None,
        )


class FetchError(SyncException):
    """Una hoja de la planilla no pudo descargarse o parsearse."""

    def __init__(self, category: str, gid: str, reason: str):
        super().__init__(
            message=f"No se pudo leer la hoja '{category}' (gid={gid}): {reason}",
            error_code="SHEET_FETCH_ERROR",
            details={"category": category, "gid": gid},
        )


class GeocodeLookupError(SyncException):
    """La búsqueda de lugar para una tienda falló o no devolvió candidatos."""

    def __init__(self, query: str, reason: str):
        self.query = query
        super().__init__(
            message=f"No se encontró ubicación para '{query}': {reason}",
            error_code="GEOCODE_LOOKUP_ERROR",
            details={"query": query},
        )


class DateParseError(SyncException):
    """Fecha de despacho en un formato no reconocido."""

    def __init__(self, raw_value: str):
        self.raw_value = raw_value
        super().__init__(
            message=f"No se pudo parsear la fecha: '{raw_value}'",
            error_code="DATE_PARSE_ERROR",
            details={"value": raw_value},
            status_code=400,
        )


class PersistenceError(SyncException):
    """Fallo de escritura en la base de datos; la transacción se revierte."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="PERSISTENCE_ERROR")
