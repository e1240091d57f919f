"""
Router principal de la API v1.
"""
from fastapi import APIRouter

from storemap.api.v1.endpoints import store_map, sync


api_router = APIRouter(prefix="/v1")

api_router.include_router(store_map.router)
api_router.include_router(sync.router)
