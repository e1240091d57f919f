"""
Endpoint de lectura para el mapa: tiendas con despachos recientes.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from loguru import logger

from storemap.application.dto.store_map_dto import StoreMapDTO
from storemap.application.use_cases.store_map_use_cases import StoreMapUseCases
from storemap.api.v1.dependencies.use_case_deps import get_app_settings, get_store_map_use_cases
from storemap.core.config import Settings


router = APIRouter(prefix="/stores", tags=["Stores"])


@router.get(
    "/map",
    response_model=List[StoreMapDTO],
    summary="Tiendas con despachos recientes",
)
async def get_store_map(
    days: Optional[int] = Query(None, ge=0, le=3650, description="Ventana en dias (default RECENT_DAYS)"),
    use_cases: StoreMapUseCases = Depends(get_store_map_use_cases),
    app_settings: Settings = Depends(get_app_settings),
) -> List[StoreMapDTO]:
    """
    Retorna una entrada por tienda con sus despachos cuya fecha es >= hoy - days
    y cuya cantidad no es vacia ni "0".
    """
    window = app_settings.RECENT_DAYS if days is None else days
    logger.info(f"Consultando despachos de los ultimos {window} dias")
    return await use_cases.get_store_map(window)
