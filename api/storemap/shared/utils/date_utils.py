"""
Utilidades de fechas para los despachos de la planilla.
"""
from datetime import date, datetime

from storemap.shared.exceptions.sync import DateParseError

# Orden de prueba. strptime acepta mes/dia de un digito con %m/%d,
# asi que "2024/3/5" y "3/5/2024" entran por los mismos formatos.
SHIPMENT_DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y-%m-%d",
    "%m/%d/%Y",
)


def parse_shipment_date(raw_value: str) -> date:
    """
    Parsea la fecha de un despacho probando los formatos aceptados en orden.

    Args:
        raw_value: Texto de la cabecera de la planilla (ej: "2024/03/05")

    Returns:
        date: Fecha calendario

    Raises:
        DateParseError: Si ningun formato coincide
    """
    value = (raw_value or "").strip()
    for fmt in SHIPMENT_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise DateParseError(raw_value)
