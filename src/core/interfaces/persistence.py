"""Contrato del colaborador de persistencia de lugares."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.models import PlaceRecord


@runtime_checkable
class PlaceRepository(Protocol):
    """Find-or-create de lugares: primero por coordenadas, luego por nombre."""

    def find_by_coordinates(self, lat: float, lng: float, tolerance: float) -> PlaceRecord | None:
        ...

    def find_by_name(self, name: str) -> PlaceRecord | None:
        """Match exacto (case-insensitive)."""

        ...

    def create(self, attributes: dict[str, Any]) -> PlaceRecord:
        ...
