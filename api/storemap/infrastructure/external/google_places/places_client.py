"""
Cliente para la API de Google Places (Text Search, v1).
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from storemap.domain.entities.store import PlaceCandidate
from storemap.shared.exceptions.sync import ConfigurationError, GeocodeLookupError

PLACES_SEARCH_TEXT_URL = "https://places.googleapis.com/v1/places:searchText"
PLACES_FIELD_MASK = "places.displayName,places.id,places.formattedAddress,places.location"


def parse_places_response(payload: dict[str, Any]) -> list[PlaceCandidate]:
    """Convierte la respuesta JSON de searchText en candidatos tipados."""
    candidates = []
    for place in payload.get("places") or []:
        location = place.get("location") or {}
        if not place.get("id"):
            continue
        if "latitude" not in location or "longitude" not in location:
            continue
        candidates.append(
            PlaceCandidate(
                place_id=place["id"],
                formatted_address=place.get("formattedAddress", ""),
                latitude=float(location["latitude"]),
                longitude=float(location["longitude"]),
                display_name=(place.get("displayName") or {}).get("text", ""),
            )
        )
    return candidates


class PlacesClient:
    """
    Cliente async de búsqueda de lugares por texto.

    Se puede inyectar un `httpx.AsyncClient` (ej. con MockTransport en tests);
    si no, se crea uno propio que se cierra con `aclose()`.
    """

    def __init__(
        self,
        api_key: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        endpoint: str = PLACES_SEARCH_TEXT_URL,
        timeout_s: float = 15.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Falta GOOGLE_PLACES_API_KEY", field="GOOGLE_PLACES_API_KEY")
        self._api_key = api_key
        self._endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def search_text(self, query: str) -> list[PlaceCandidate]:
        """
        Busca lugares por texto libre.

        Returns:
            Lista no vacía de candidatos, en el orden devuelto por Google.

        Raises:
            GeocodeLookupError: error de transporte, status != 200,
                cuerpo inválido o sin resultados.
        """
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": PLACES_FIELD_MASK,
        }
        try:
            response = await self._client.post(self._endpoint, json={"textQuery": query}, headers=headers)
        except httpx.HTTPError as e:
            raise GeocodeLookupError(query, f"error de transporte: {e}") from e

        if response.status_code != 200:
            raise GeocodeLookupError(
                query, f"Google API status {response.status_code}: {response.text[:200]}"
            )

        try:
            candidates = parse_places_response(response.json())
        except (ValueError, TypeError) as e:
            raise GeocodeLookupError(query, f"respuesta inválida: {e}") from e

        if not candidates:
            raise GeocodeLookupError(query, "sin resultados")
        return candidates

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
