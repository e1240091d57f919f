"""
Cliente mínimo para exportar hojas de Google Sheets como CSV y
lector que arma el mapa de tiendas a partir de las tablas cruzadas.

Requisitos cubiertos:
- requests (export CSV público por gid)
- rate-limit/backoff (429, 5xx)
- parseo tolerante (filas de largo variable, comillas sueltas)
"""

from __future__ import annotations

import csv
import io
import time
from typing import Optional

import requests
from loguru import logger

from storemap.domain.entities.store import ProductCategory, Shipment, StoreData
from storemap.shared.exceptions.sync import FetchError

from .source_config import SheetSourceConfig, SheetTab


class SheetsApiError(RuntimeError):
    """Error HTTP al exportar una hoja."""


def parse_csv(text: str) -> list[list[str]]:
    """
    Parsea el CSV exportado y recorta espacios en cada celda.

    Las filas pueden tener distinta cantidad de columnas.
    """
    reader = csv.reader(io.StringIO(text), skipinitialspace=True)
    return [[cell.strip() for cell in row] for row in reader]


def parse_cross_table(
    rows: list[list[str]],
    category: ProductCategory,
    store_map: dict[str, StoreData],
) -> int:
    """
    Vuelca una tabla cruzada sobre `store_map` (mutándolo).

    Formato:
    - fila 0: cabecera; desde la columna 1 son fechas
    - filas siguientes: columna 0 = nombre de tienda, resto = cantidades
      alineadas por posición con las fechas de la cabecera

    Returns:
        int: cantidad de despachos agregados
    """
    if len(rows) < 2:
        return 0

    header = rows[0]
    added = 0
    for row in rows[1:]:
        if not row or not row[0]:
            continue

        store_name = row[0]
        store = store_map.get(store_name)
        if store is None:
            store = StoreData(name=store_name)
            store_map[store_name] = store

        for k in range(1, min(len(row), len(header))):
            store.add_shipment(category, Shipment(date=header[k], quantity=row[k]))
            added += 1

    return added


class GoogleSheetsClient:
    """
    Cliente HTTP de export CSV. No interpreta el contenido: eso lo hace
    `parse_cross_table`.
    """

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://docs.google.com/spreadsheets/d",
        timeout_s: int = 30,
        max_retries: int = 3,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._session = session or requests.Session()

    def export_url(self, sheet_id: str, gid: str) -> str:
        return f"{self._base_url}/{sheet_id}/export?format=csv&gid={gid}"

    def fetch_rows(self, sheet_id: str, gid: str) -> list[list[str]]:
        """Descarga una hoja y retorna sus filas ya recortadas."""
        return parse_csv(self._request_text(self.export_url(sheet_id, gid)))

    def _request_text(self, url: str) -> str:
        """
        GET con backoff para 429/5xx.

        - 429: respeta Retry-After si existe, si no exponencial.
        - 5xx: exponencial.
        - 4xx (no 429): error inmediato (hoja privada o gid inexistente).
        """
        for attempt in range(self._max_retries + 1):
            resp = self._session.get(url, timeout=self._timeout_s)

            if 200 <= resp.status_code < 300:
                # El export siempre es UTF-8 (a veces con BOM) aunque el header no lo diga
                try:
                    return resp.content.decode("utf-8-sig")
                except UnicodeDecodeError as e:
                    raise SheetsApiError(f"Google Sheets export no es UTF-8 valido: {e}") from e

            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise SheetsApiError(
                        f"Google Sheets error {resp.status_code} tras {attempt} reintentos"
                    )

                retry_after = resp.headers.get("Retry-After")
                try:
                    sleep_s = float(retry_after) if retry_after else None
                except ValueError:
                    sleep_s = None
                if sleep_s is None:
                    sleep_s = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))

                time.sleep(sleep_s)
                continue

            raise SheetsApiError(f"Google Sheets export falló {resp.status_code}: {resp.text[:200]}")

        raise SheetsApiError("Google Sheets export sin respuesta")


class SpreadsheetReader:
    """
    Lee todas las hojas configuradas y arma el mapa nombre -> StoreData.

    Una hoja que falla se omite (se loguea); las demás continúan.
    """

    def __init__(self, client: GoogleSheetsClient) -> None:
        self._client = client

    def load_stores(self, source: SheetSourceConfig) -> dict[str, StoreData]:
        store_map: dict[str, StoreData] = {}

        for tab in source.tabs:
            try:
                added = self._load_tab(source.sheet_id, tab, store_map)
            except FetchError as e:
                logger.error(e.message)
                continue
            logger.info(f"Hoja '{tab.category.value}' (gid={tab.gid}): {added} despachos leidos")

        return store_map

    def _load_tab(self, sheet_id: str, tab: SheetTab, store_map: dict[str, StoreData]) -> int:
        try:
            rows = self._client.fetch_rows(sheet_id, tab.gid)
        except (requests.RequestException, SheetsApiError, csv.Error) as e:
            raise FetchError(tab.category.value, tab.gid, str(e)) from e

        if len(rows) < 2:
            logger.warning(f"Hoja '{tab.category.value}' (gid={tab.gid}) sin filas de datos")
            return 0

        return parse_cross_table(rows, tab.category, store_map)
