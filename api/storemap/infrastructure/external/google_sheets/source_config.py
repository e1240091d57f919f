"""
Configuración del origen de despachos (planilla -> categorías).

Este módulo no realiza I/O: solo valida y describe qué hojas leer
y a qué categoría de producto corresponde cada una.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from storemap.domain.entities.store import ProductCategory
from storemap.shared.exceptions.sync import ConfigurationError


@dataclass(frozen=True)
class SheetTab:
    """Una hoja de la planilla (gid) y la categoría que contiene."""

    gid: str
    category: ProductCategory


@dataclass(frozen=True)
class SheetSourceConfig:
    """
    Planilla origen y sus hojas.

    Se construye normalmente con `from_lists`, que recibe las listas
    paralelas de gids y etiquetas tal como vienen de la configuración.
    """

    sheet_id: str
    tabs: tuple[SheetTab, ...]

    @classmethod
    def from_lists(
        cls,
        sheet_id: str,
        gids: Sequence[str],
        names: Sequence[str],
    ) -> "SheetSourceConfig":
        """
        Valida y arma la configuración.

        Raises:
            ConfigurationError: id faltante, listas vacías, largos distintos
                o etiqueta de categoría desconocida.
        """
        sheet_id = (sheet_id or "").strip()
        gids = [g.strip() for g in gids or []]
        names = [n.strip() for n in names or []]

        if not sheet_id:
            raise ConfigurationError("Falta el id de la planilla (GOOGLE_SHEET_ID)", field="GOOGLE_SHEET_ID")
        if not gids or not names:
            raise ConfigurationError(
                "Faltan las hojas a leer (GOOGLE_SHEET_GIDS / GOOGLE_SHEET_NAMES)",
                field="GOOGLE_SHEET_GIDS",
            )
        if len(gids) != len(names):
            raise ConfigurationError(
                f"La cantidad de gids ({len(gids)}) no coincide con la de nombres ({len(names)})",
                field="GOOGLE_SHEET_NAMES",
            )

        tabs = []
        for gid, name in zip(gids, names):
            try:
                category = ProductCategory.from_label(name)
            except ValueError:
                valid = ", ".join(c.value for c in ProductCategory)
                raise ConfigurationError(
                    f"Categoría desconocida '{name}' (válidas: {valid})",
                    field="GOOGLE_SHEET_NAMES",
                ) from None
            tabs.append(SheetTab(gid=gid, category=category))

        return cls(sheet_id=sheet_id, tabs=tuple(tabs))
