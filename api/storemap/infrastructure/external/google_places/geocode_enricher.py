"""
Enriquecimiento de tiendas con datos de ubicación (place id, dirección, coordenadas).

Concurrencia:
- Un semáforo limita las búsquedas en vuelo (default: 10).
- Cada worker espera `delay_seconds` tras su búsqueda sin soltar el cupo,
  para no consumir la cuota de la API demasiado rápido.
- `enrich` retorna solo cuando todas las búsquedas terminaron.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

from loguru import logger

from storemap.domain.entities.store import PlaceCandidate, StoreData
from storemap.shared.exceptions.sync import GeocodeLookupError

DEFAULT_GEOCODE_CONCURRENCY = 10
DEFAULT_GEOCODE_DELAY_SECONDS = 0.15
DEFAULT_QUERY_PREFIX = "全聯"


class PlaceSearcher(Protocol):
    async def search_text(self, query: str) -> list[PlaceCandidate]:
        ...


@dataclass
class EnrichmentResult:
    """Resumen de una tanda de búsquedas."""

    requested: int = 0
    resolved: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def build_search_query(prefix: str, store_name: str) -> str:
    """Texto de búsqueda: marca + nombre de la tienda."""
    if not prefix:
        return store_name
    return f"{prefix} {store_name}"


class GeocodeEnricher:
    """Busca la ubicación de cada tienda y la escribe sobre el StoreData."""

    def __init__(
        self,
        searcher: PlaceSearcher,
        *,
        concurrency: int = DEFAULT_GEOCODE_CONCURRENCY,
        delay_seconds: float = DEFAULT_GEOCODE_DELAY_SECONDS,
        query_prefix: str = DEFAULT_QUERY_PREFIX,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency debe ser >= 1")
        self._searcher = searcher
        self._concurrency = concurrency
        self._delay_seconds = max(0.0, delay_seconds)
        self._query_prefix = query_prefix

    async def enrich(self, store_map: dict[str, StoreData]) -> EnrichmentResult:
        """
        Lanza una búsqueda por tienda (acotadas por el semáforo) y espera a todas.

        Las tiendas cuya búsqueda falla quedan sin datos de ubicación.
        """
        result = EnrichmentResult(requested=len(store_map))
        if not store_map:
            return result

        # Se crea por llamada: asyncio.Semaphore debe vivir en el loop activo
        semaphore = asyncio.Semaphore(self._concurrency)

        await asyncio.gather(
            *(self._enrich_one(name, store, semaphore, result) for name, store in store_map.items())
        )

        logger.info(
            f"Busqueda de ubicaciones completada: {len(result.resolved)} encontradas, "
            f"{len(result.failed)} sin resultado (de {result.requested})"
        )
        return result

    async def _enrich_one(
        self,
        name: str,
        store: StoreData,
        semaphore: asyncio.Semaphore,
        result: EnrichmentResult,
    ) -> None:
        query = build_search_query(self._query_prefix, name)
        async with semaphore:
            try:
                logger.debug(f"Buscando tienda: {query}")
                candidates = await self._searcher.search_text(query)
                store.apply_location(candidates[0])
                result.resolved.append(name)
                logger.info(
                    f"Encontrada {name}: {store.formatted_address} "
                    f"({store.latitude:.6f}, {store.longitude:.6f})"
                )
            except GeocodeLookupError as e:
                result.failed.append(name)
                logger.warning(e.message)
            except Exception as e:
                # Un fallo inesperado de una tienda no debe tumbar la tanda
                result.failed.append(name)
                logger.warning(f"Error buscando ubicacion de '{query}': {type(e).__name__}: {e}")

            if self._delay_seconds:
                await asyncio.sleep(self._delay_seconds)

    async def aclose(self) -> None:
        """Cierra el searcher si expone `aclose` (p.ej. PlacesClient)."""
        close = getattr(self._searcher, "aclose", None)
        if close is not None:
            await close()
