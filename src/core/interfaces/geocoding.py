"""Contratos de proveedores de geocoding (primario + fallback)."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ReverseGeocoder(Protocol):
    """Reverse geocoding de un punto.

    Devuelve un dict con claves opcionales: city, town, village, suburb,
    neighbourhood, hamlet, locality, municipality, county, state_district,
    formatted. Un dict vacío significa "sin resultado".
    """

    name: str

    def reverse_geocode(self, lat: float, lng: float) -> dict[str, Any]:
        ...


@runtime_checkable
class PlaceSearch(Protocol):
    """Búsqueda textual de lugares con sesgo de proximidad opcional."""

    def text_search(
        self,
        query: str,
        bias_lat: float | None = None,
        bias_lng: float | None = None,
        radius: int | None = None,
    ) -> list[dict[str, Any]]:
        """Devuelve items con `name`, `lat`, `lng`, `address`."""

        ...
